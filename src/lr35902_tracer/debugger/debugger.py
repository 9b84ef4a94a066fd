# lr35902_tracer/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。不正オペコードに対する回復ポリシーも
このホスト側で適用します。
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from lr35902_tracer.core.cpu import AbstractCpu
from lr35902_tracer.core.snapshot import Snapshot, Operation
from lr35902_tracer.core.state import CpuState
from lr35902_tracer.transport.bus import Bus, BusAccessType
from lr35902_tracer.common.errors import IllegalOpcodeError
from lr35902_tracer.common.types import IllegalOpcodePolicy

logger = logging.getLogger(__name__)

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    register_nameはCPUのレジスタマップのキー（"A", "HL", "SP" など）で指定します。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True                  # 有効/無効状態

# @intent:responsibility run() が停止した理由。
class StopReason(Enum):
    BREAKPOINT = "BREAKPOINT"
    SUSPENDED = "SUSPENDED"           # HALT / STOP
    ILLEGAL_OPCODE = "ILLEGAL_OPCODE"
    MAX_STEPS = "MAX_STEPS"
    STOPPED = "STOPPED"               # stop() による中断

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    """
    def __init__(self, cpu: AbstractCpu, illegal_opcode_policy: IllegalOpcodePolicy = IllegalOpcodePolicy.RAISE):
        self._cpu = cpu
        self._policy = illegal_opcode_policy
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_registers: Dict[str, int] = self._cpu.get_register_map()
        self._last_snapshot: Optional[Snapshot] = None
        self._last_error: Optional[IllegalOpcodeError] = None
        # @intent:responsibility 実行履歴を保持し、ステップバックをサポートします。
        self._history: List[Snapshot] = []
        # @intent:responsibility 履歴が尽きた時に戻るための初期状態を保持します。
        self._initial_state: CpuState = self._cpu.get_state().clone()
        # @intent:responsibility メモリの巻き戻しには書き込み前の値を記録するBusが必要です。
        self._memory_undo: bool = isinstance(self._cpu.get_bus(), Bus)
        if not self._memory_undo:
            logger.warning("Bus does not record write history; step_back restores registers only")

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        """
        ブレークポイント条件を追加します。
        """
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # @intent:responsibility 直近のrun()をILLEGAL_OPCODEで停止させた例外を返します。
    def get_last_error(self) -> Optional[IllegalOpcodeError]:
        return self._last_error

    def _pc_breakpoint_at(self, pc: int) -> bool:
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc
            for bp in self._breakpoints
        )

    def _check_other_breakpoints(self, snapshot: Snapshot) -> bool:
        """
        Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
        """
        registers = self._cpu.get_register_map()

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                if bp.address in snapshot.written_addresses():
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                name = (bp.register_name or "").upper()
                if name in registers and registers[name] == bp.value:
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                name = (bp.register_name or "").upper()
                if name in registers and registers[name] != self._previous_registers.get(name):
                    return True
        return False

    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。
        不正オペコードはポリシーがNOPの場合のみここで読み飛ばし、それ以外は例外を伝播します。
        """
        self._previous_registers = self._cpu.get_register_map()
        try:
            snapshot = self._cpu.step()
        except IllegalOpcodeError as e:
            if self._policy != IllegalOpcodePolicy.NOP:
                raise
            snapshot = self._skip_illegal(e)
        self._last_snapshot = snapshot

        # 履歴に追加
        self._history.append(snapshot)

        return snapshot

    # @intent:responsibility 不正オペコードを1バイトのデータとして読み飛ばした結果のSnapshotを生成します。
    def _skip_illegal(self, error: IllegalOpcodeError) -> Snapshot:
        logger.warning("%s; skipping", error)
        skip = 2 if error.prefixed else 1
        operation = Operation(
            opcode_hex=f"{error.opcode:02X}",
            mnemonic="DB",
            operands=[f"${error.opcode:02X}"],
            length=skip,
            address=error.address,
            prefixed=error.prefixed,
        )
        return self._cpu.skip_operation(operation)

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1つ戻り、CPUとメモリの状態を復元します。
        メモリの復元はBus（書き込み前の値を記録し、loadを持つ）上でのみ行われ、
        その他のMemoryBus実装ではレジスタのみが復元されます。
        """
        if not self._history:
            return None

        snapshot_to_revert = self._history.pop()

        # 書き込みを逆順に取り消す。Bus.loadはROMも復元でき、ログにも残らない
        if self._memory_undo:
            bus = self._cpu.get_bus()
            for access in reversed(snapshot_to_revert.bus_activity):
                if access.access_type == BusAccessType.WRITE and access.previous_data is not None:
                    bus.load(access.address, access.previous_data)

        if self._history:
            previous_snapshot = self._history[-1]
            self._cpu.restore_state(previous_snapshot.state)
            self._last_snapshot = previous_snapshot
            return previous_snapshot

        # 履歴が尽きた場合は初期状態に復元
        self._cpu.restore_state(self._initial_state)
        self._last_snapshot = None
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """
        ブレークポイント、HALT/STOP、不正オペコード、またはmax_stepsに達するまでCPUの実行を継続します。
        """
        self._running = True
        self._last_error = None
        steps = 0

        # 現在のPCにあるブレークポイントで即座に止まらないよう、最初の1命令は無条件に実行する
        skip_pc_check = self._pc_breakpoint_at(self._cpu.get_state().pc)

        while self._running:
            time.sleep(0)

            if max_steps is not None and steps >= max_steps:
                self._running = False
                return StopReason.MAX_STEPS

            current_pc = self._cpu.get_state().pc
            if not skip_pc_check and self._pc_breakpoint_at(current_pc):
                self._running = False
                print(f"Breakpoint hit at PC: {current_pc:#06x}")
                return StopReason.BREAKPOINT
            skip_pc_check = False

            if self._cpu.is_suspended:
                self._running = False
                return StopReason.SUSPENDED

            try:
                snapshot = self.step_instruction()
            except IllegalOpcodeError as e:
                if self._policy == IllegalOpcodePolicy.RAISE:
                    self._running = False
                    raise
                self._last_error = e
                self._running = False
                print(f"Illegal opcode: {e}")
                return StopReason.ILLEGAL_OPCODE
            steps += 1

            if self._check_other_breakpoints(snapshot):
                self._running = False
                print(f"Breakpoint hit at PC: {snapshot.state.pc:#06x}")
                return StopReason.BREAKPOINT

        return StopReason.STOPPED

    def stop(self) -> None:
        self._running = False
