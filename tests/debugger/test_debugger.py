# tests/debugger/test_debugger.py
"""
lr35902_tracer.debugger.debuggerモジュールの単体テスト。
Debuggerの実行制御、ブレークポイント管理、不正オペコードのポリシー、ステップバックを検証します。
"""
import pytest
from unittest.mock import patch

from lr35902_tracer.transport.bus import Bus, RAM, ROM, MemoryBus
from lr35902_tracer.arch.lr35902.cpu import Lr35902Cpu
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from lr35902_tracer.core.snapshot import Snapshot, Operation, Metadata
from lr35902_tracer.common.errors import IllegalOpcodeError
from lr35902_tracer.common.types import IllegalOpcodePolicy
from lr35902_tracer.debugger.debugger import (
    Debugger, BreakpointCondition, BreakpointConditionType, StopReason
)

# @intent:test_suite デバッガのブレークポイントと実行制御機能の検証。

def load_program(bus, address, program):
    for i, byte in enumerate(program):
        bus.load(address + i, byte)

class FlatMemory(MemoryBus):
    """アクセスを記録しない最小のMemoryBus実装。"""
    def __init__(self, program):
        self.memory = bytearray(0x10000)
        self.memory[0x0100:0x0100 + len(program)] = bytes(program)

    def read_byte(self, address):
        return self.memory[address]

    def write_byte(self, address, value):
        self.memory[address] = value

class TestDebugger:
    @pytest.fixture
    def setup_debugger(self):
        bus = Bus()
        ram = RAM(0x10000)
        bus.register_device(0x0000, 0xFFFF, ram)
        cpu = Lr35902Cpu(bus)
        debugger = Debugger(cpu)
        return debugger, cpu, bus

    # @intent:test_case_add_remove_breakpoint ブレークポイントの追加と削除が正しく行われることを検証します。
    def test_add_remove_breakpoint(self, setup_debugger):
        debugger, _, _ = setup_debugger
        bp1 = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x1000)
        bp2 = BreakpointCondition(BreakpointConditionType.MEMORY_WRITE, address=0x2000)

        debugger.add_breakpoint(bp1)
        debugger.add_breakpoint(bp2)
        debugger.add_breakpoint(bp1)  # 重複追加は無視される
        assert debugger.get_breakpoints() == [bp1, bp2]

        debugger.remove_breakpoint(bp1)
        debugger.remove_breakpoint(bp1)  # 存在しないブレークポイントの削除はエラーにならない
        assert debugger.get_breakpoints() == [bp2]

    # @intent:test_case_step_instruction step_instructionがcpu.stepを呼び出し、履歴に積むことを検証します。
    def test_step_instruction(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        fake = Snapshot(
            state=Lr35902CpuState(pc=0x0101),
            operation=Operation(opcode_hex="00", mnemonic="NOP"),
            metadata=Metadata(step_count=1),
        )
        with patch.object(cpu, 'step', return_value=fake) as mock_step:
            snapshot = debugger.step_instruction()
            mock_step.assert_called_once()
        assert snapshot is fake
        assert debugger.get_history() == [fake]
        assert debugger.get_last_snapshot() is fake

    # @intent:test_case_pc_match_breakpoint PC_MATCHブレークポイントで停止し、再開時には同じ位置で止まらないことを検証します。
    def test_pc_match_breakpoint(self, setup_debugger, capsys):
        debugger, cpu, bus = setup_debugger
        load_program(bus, 0x0100, [0x00, 0x00, 0x00, 0x18, 0xFB])  # NOP x3; JR -5
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x0102))

        assert debugger.run(max_steps=100) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0102
        assert "Breakpoint hit at PC: 0x0102" in capsys.readouterr().out

        assert debugger.run(max_steps=100) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0102
        assert len(debugger.get_history()) == 6

    def test_memory_write_breakpoint(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        load_program(bus, 0x0100, [0x00, 0xEA, 0x00, 0xC0, 0x00])  # NOP; LD ($C000),A; NOP
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.MEMORY_WRITE, address=0xC000))
        assert debugger.run(max_steps=10) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0104

    def test_memory_read_breakpoint(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        load_program(bus, 0x0100, [0x00, 0x7E, 0x00])  # NOP; LD A,(HL); NOP
        cpu.get_state().registers.hl = 0xC000
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.MEMORY_READ, address=0xC000))
        assert debugger.run(max_steps=10) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0102

    def test_register_value_and_change_breakpoints(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        load_program(bus, 0x0100, [0x3C, 0x3C, 0x3C, 0x04])  # INC A x3; INC B
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_VALUE, register_name="a", value=0x03))
        assert debugger.run(max_steps=10) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0102

        debugger = Debugger(cpu)
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_CHANGE, register_name="B"))
        assert debugger.run(max_steps=10) == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x0104

    def test_run_stops_on_halt(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        load_program(bus, 0x0100, [0x00, 0x76, 0x00])
        assert debugger.run(max_steps=10) == StopReason.SUSPENDED
        assert cpu.get_state().pc == 0x0102

    def test_run_stops_at_max_steps(self, setup_debugger):
        debugger, _, _ = setup_debugger
        assert debugger.run(max_steps=3) == StopReason.MAX_STEPS
        assert len(debugger.get_history()) == 3

    # @intent:test_case_step_back ステップバックでメモリ（ROMを含む）とレジスタが復元されることを検証します。
    def test_step_back_restores_memory_and_state(self):
        bus = Bus()
        bus.register_device(0x0000, 0x7FFF, ROM(0x8000))
        bus.register_device(0x8000, 0xFFFF, RAM(0x8000))
        cpu = Lr35902Cpu(bus)
        debugger = Debugger(cpu)
        load_program(bus, 0x0100, [0x3E, 0x42, 0xEA, 0x00, 0xC0])  # LD A,$42; LD ($C000),A
        load_program(bus, 0xC000, [0x99])

        first = debugger.step_instruction()
        debugger.step_instruction()
        assert bus.peek(0xC000) == 0x42

        restored = debugger.step_back()
        assert restored is first
        assert bus.peek(0xC000) == 0x99
        assert cpu.get_state().pc == 0x0102
        assert cpu.get_state().registers.a == 0x42

        assert debugger.step_back() is None
        assert cpu.get_state().pc == 0x0100
        assert cpu.get_state().registers.a == 0x01
        assert debugger.step_back() is None

    # @intent:test_case_step_back_plain_bus 書き込み履歴を持たないバスではレジスタのみ復元されることを検証します。
    def test_step_back_on_plain_memory_bus_restores_registers_only(self, caplog):
        memory = FlatMemory([0x3E, 0x42, 0xEA, 0x00, 0xC0])  # LD A,$42; LD ($C000),A
        cpu = Lr35902Cpu(memory)
        debugger = Debugger(cpu)
        assert "step_back restores registers only" in caplog.text

        debugger.step_instruction()
        debugger.step_instruction()
        debugger.step_back()
        assert cpu.get_state().pc == 0x0102
        assert memory.memory[0xC000] == 0x42

class TestIllegalOpcodePolicy:
    @pytest.fixture
    def bus(self):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        load_program(bus, 0x0100, [0x00, 0xDD, 0x3C])  # NOP; (illegal); INC A
        return bus

    def test_raise_policy_propagates(self, bus):
        debugger = Debugger(Lr35902Cpu(bus), IllegalOpcodePolicy.RAISE)
        with pytest.raises(IllegalOpcodeError):
            debugger.run(max_steps=10)

    def test_halt_policy_stops(self, bus):
        cpu = Lr35902Cpu(bus)
        debugger = Debugger(cpu, IllegalOpcodePolicy.HALT)
        assert debugger.run(max_steps=10) == StopReason.ILLEGAL_OPCODE
        assert debugger.get_last_error().opcode == 0xDD
        assert cpu.get_state().pc == 0x0101

    def test_nop_policy_skips_byte(self, bus, caplog):
        cpu = Lr35902Cpu(bus)
        debugger = Debugger(cpu, IllegalOpcodePolicy.NOP)
        debugger.step_instruction()
        skipped = debugger.step_instruction()
        assert skipped.operation.text == "DB $DD"
        assert "Illegal opcode DD at 0x0101" in caplog.text
        debugger.step_instruction()
        assert cpu.get_state().registers.a == 0x02
        assert cpu.get_state().pc == 0x0103

    # @intent:test_case_skip_step_count 読み飛ばしたバイトも1ステップとして数えられることを検証します。
    def test_nop_policy_keeps_step_count_consistent(self, bus):
        debugger = Debugger(Lr35902Cpu(bus), IllegalOpcodePolicy.NOP)
        counts = [debugger.step_instruction().metadata.step_count for _ in range(3)]
        assert counts == [1, 2, 3]
        assert debugger.get_last_snapshot().operation.address == 0x0102
