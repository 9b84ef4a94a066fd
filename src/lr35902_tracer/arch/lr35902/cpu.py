# lr35902_tracer/arch/lr35902/cpu.py
"""
LR35902 CPUエミュレーションの中心モジュール。

このモジュールはLR35902 CPUの具体的な実装を提供し、
AbstractCpuインターフェースを実装します。
"""
import logging
from typing import Dict, List, Optional, Tuple

from lr35902_tracer.core.cpu import AbstractCpu
from lr35902_tracer.core.snapshot import Operation, Metadata, Snapshot
from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.common.errors import IllegalOpcodeError
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from lr35902_tracer.arch.lr35902.instructions import (
    PREFIX_BYTE, Lr35902Operation, decode, execute_instruction, build_operation
)
from lr35902_tracer.arch.lr35902.disassembler import disassemble as disassemble_range

logger = logging.getLogger(__name__)


# @intent:responsibility LR35902 CPUの具体的なエミュレーションロジックを提供します。
class Lr35902Cpu(AbstractCpu):
    """
    LR35902 CPUをエミュレートするクラス。
    AbstractCpuを継承し、プレフィックス付きデコード、EIの遅延、HALT/STOPによる停止を実装します。
    """
    _state: Lr35902CpuState

    # @intent:pre-condition `bus`はMemoryBusを実装している必要があります。
    def __init__(self, bus: MemoryBus):
        super().__init__(bus)

    # @intent:responsibility ブートROM終了直後の状態を初期状態として生成します。
    def _create_initial_state(self) -> Lr35902CpuState:
        return Lr35902CpuState.post_boot()

    # @intent:responsibility 現在のPCからオペコードをフェッチします。PCの更新は実行後に行います。
    def _fetch(self) -> int:
        return self._bus.read_byte(self._state.pc)

    # @intent:responsibility オペコードを命令に解決し、デコード記録を生成します。
    # @intent:post-condition デコードに失敗した場合はIllegalOpcodeErrorを送出し、PCを含む状態は変更されません。
    def _decode(self, opcode: int) -> Operation:
        pc = self._state.pc
        prefixed = opcode == PREFIX_BYTE
        if prefixed:
            opcode = self._bus.read_byte((pc + 1) & 0xFFFF)
        instruction = decode(opcode, prefixed)
        if instruction is None:
            raise IllegalOpcodeError(opcode, prefixed, pc)
        return build_operation(self._bus, pc, instruction)

    # @intent:responsibility デコードされた命令を実行し、次のPCを返します。
    # @intent:rationale EIの効果は「EIの次の命令」の実行が完了した時点で有効になる。
    #                  命令実行前に保留が立っていた場合のみ、実行後にIMEを確定させる。
    def _execute(self, operation: Operation) -> int:
        if not isinstance(operation, Lr35902Operation):
            raise TypeError(f"Expected Lr35902Operation, got {type(operation).__name__}")
        enable_after = self._state.ime_pending
        next_pc = execute_instruction(operation.instruction, self._state, self._bus)
        if enable_after and self._state.ime_pending:
            self._state.ime = True
            self._state.ime_pending = False
        return next_pc

    # @intent:responsibility HALT/STOP中はフェッチを行わず、PCを維持したまま停止中のSnapshotを返します。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        if not (self._state.halted or self._state.stopped):
            return None
        mnemonic = "HALT (suspended)" if self._state.halted else "STOP (suspended)"
        opcode_hex = "76" if self._state.halted else "10"
        operation = Operation(opcode_hex=opcode_hex, mnemonic=mnemonic, length=0, address=current_pc)
        return Snapshot(
            state=self._state.clone(),
            operation=operation,
            metadata=Metadata(step_count=self._step_count, symbol_info=f"PC: {current_pc:#06x} -> {mnemonic}"),
            bus_activity=[],
        )

    # @intent:responsibility 割り込みやボタン入力などの外部要因によりHALT/STOPから復帰させます。
    # @intent:rationale 割り込みの配送自体はこのコアの外側の責務。ここでは停止ラッチを解除するだけ。
    def request_wake(self) -> None:
        if self._state.halted or self._state.stopped:
            logger.debug("Wake requested at PC=%04X", self._state.pc)
        self._state.halted = False
        self._state.stopped = False

    @property
    def is_suspended(self) -> bool:
        return self._state.halted or self._state.stopped

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        r = s.registers
        return {
            "A": r.a, "F": r.f.to_byte(), "B": r.b, "C": r.c, "D": r.d, "E": r.e, "H": r.h, "L": r.l,
            "AF": r.af, "BC": r.bc, "DE": r.de, "HL": r.hl,
            "SP": s.sp, "PC": s.pc,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        f = self._state.registers.f
        return {
            "Z": f.zero,
            "N": f.subtract,
            "H": f.half_carry,
            "C": f.carry,
        }

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassemble_range(self._bus, start_addr, length)
