# tests/arch/lr35902/test_lr35902_cpu.py
import pytest
from lr35902_tracer.transport.bus import Bus, RAM, BusAccessType
from lr35902_tracer.arch.lr35902.cpu import Lr35902Cpu
from lr35902_tracer.common.errors import IllegalOpcodeError
from lr35902_tracer.core.snapshot import Operation

# @intent:test_suite 実行エンジン（step、不正オペコード、EI遅延、HALT/STOP）を検証します。

def load_program(bus, address, program):
    for i, byte in enumerate(program):
        bus.load(address + i, byte)

class TestLr35902Cpu:
    @pytest.fixture
    def setup_cpu(self):
        bus = Bus()
        ram = RAM(0x10000)
        bus.register_device(0x0000, 0xFFFF, ram)
        cpu = Lr35902Cpu(bus)
        return cpu, bus

    def test_initial_state_is_post_boot(self, setup_cpu):
        cpu, _ = setup_cpu
        regs = cpu.get_register_map()
        assert regs["PC"] == 0x0100
        assert regs["SP"] == 0xFFFE
        assert regs["AF"] == 0x01B0
        assert cpu.get_flag_state() == {"Z": True, "N": False, "H": True, "C": True}

    def test_step_returns_decoded_operation(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x3E, 0x42])  # LD A,$42
        snapshot = cpu.step()
        assert cpu.get_state().registers.a == 0x42
        assert cpu.get_state().pc == 0x0102
        assert snapshot.operation.opcode_hex == "3E"
        assert snapshot.operation.text == "LD A,$42"
        assert snapshot.operation.operand_bytes == [0x42]
        assert snapshot.operation.address == 0x0100
        # フェッチと即値読み込みの2回
        assert [a.address for a in snapshot.bus_activity] == [0x0100, 0x0101]

    def test_prefixed_step_consumes_two_bytes(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0xCB, 0x7C])  # BIT 7,H
        cpu.get_state().registers.h = 0x80
        snapshot = cpu.step()
        assert snapshot.operation.opcode_hex == "CB 7C"
        assert snapshot.operation.prefixed is True
        assert cpu.get_state().pc == 0x0102
        assert cpu.get_state().registers.f.zero is False

    # @intent:test_case_illegal 不正オペコードでは例外が送出され、状態が一切変わらないことを検証します。
    @pytest.mark.parametrize("opcode", [0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD])
    def test_illegal_opcode_leaves_state_untouched(self, setup_cpu, opcode):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [opcode])
        before = cpu.get_state().clone()
        with pytest.raises(IllegalOpcodeError) as excinfo:
            cpu.step()
        assert excinfo.value.opcode == opcode
        assert excinfo.value.prefixed is False
        assert excinfo.value.address == 0x0100
        assert cpu.get_state() == before

    def test_fetch_wraps_at_end_of_address_space(self, setup_cpu):
        cpu, bus = setup_cpu
        cpu.get_state().pc = 0xFFFF
        load_program(bus, 0xFFFF, [0x3E])  # LD A,d8 (即値は0x0000)
        load_program(bus, 0x0000, [0x99])
        cpu.step()
        assert cpu.get_state().registers.a == 0x99
        assert cpu.get_state().pc == 0x0001

    # @intent:test_case_ei EIの効果は次の命令の実行後に有効になることを検証します。
    def test_ei_is_delayed_by_one_instruction(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0xFB, 0x00, 0x00])  # EI; NOP; NOP
        cpu.step()
        assert cpu.get_state().ime is False
        assert cpu.get_state().ime_pending is True
        cpu.step()
        assert cpu.get_state().ime is True
        assert cpu.get_state().ime_pending is False

    def test_di_cancels_pending_ei(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0xFB, 0xF3, 0x00])  # EI; DI; NOP
        cpu.step()
        cpu.step()
        cpu.step()
        assert cpu.get_state().ime is False

    def test_reti_enables_immediately(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0xD9])  # RETI
        cpu.get_state().sp = 0xC000
        load_program(bus, 0xC000, [0x34, 0x12])
        cpu.step()
        assert cpu.get_state().ime is True
        assert cpu.get_state().pc == 0x1234
        assert cpu.get_state().sp == 0xC002

    # @intent:test_case_halt HALT後はフェッチを行わず、起床要求で次の命令から再開することを検証します。
    def test_halt_suspends_until_wake(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x76, 0x3C])  # HALT; INC A
        cpu.step()
        assert cpu.is_suspended
        assert cpu.get_state().pc == 0x0101

        snapshot = cpu.step()
        assert snapshot.operation.mnemonic == "HALT (suspended)"
        assert snapshot.bus_activity == []
        assert cpu.get_state().pc == 0x0101

        cpu.request_wake()
        cpu.step()
        assert cpu.get_state().registers.a == 0x02

    def test_stop_is_two_bytes_and_suspends(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x10, 0x00, 0x00])
        snapshot = cpu.step()
        assert snapshot.operation.text == "STOP"
        assert cpu.get_state().pc == 0x0102
        assert cpu.get_state().stopped is True
        assert cpu.step().operation.mnemonic == "STOP (suspended)"
        cpu.request_wake()
        assert not cpu.is_suspended

    def test_disassemble_delegates(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x00, 0xC3, 0x50, 0x01])
        assert cpu.disassemble(0x0100, 4) == [
            (0x0100, "00", "NOP"),
            (0x0101, "C3 50 01", "JP $0150"),
        ]
        assert bus.get_and_clear_activity_log() == []

    def test_memory_write_is_recorded(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x77])  # LD (HL),A
        cpu.get_state().registers.hl = 0xC000
        snapshot = cpu.step()
        writes = [a for a in snapshot.bus_activity if a.access_type == BusAccessType.WRITE]
        assert len(writes) == 1
        assert writes[0].address == 0xC000
        assert writes[0].data == 0x01
        assert writes[0].previous_data == 0x00

    # @intent:test_case_execute_type 命令値を持たないOperationの実行はTypeErrorとなることを検証します。
    def test_execute_rejects_plain_operation(self, setup_cpu):
        cpu, _ = setup_cpu
        with pytest.raises(TypeError, match="Lr35902Operation"):
            cpu._execute(Operation(opcode_hex="00", mnemonic="NOP"))

    def test_skip_operation_advances_pc_and_step_count(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x00, 0xD3, 0x00])
        cpu.step()
        with pytest.raises(IllegalOpcodeError):
            cpu.step()
        skipped = cpu.skip_operation(Operation(opcode_hex="D3", mnemonic="DB", operands=["$D3"], length=1, address=0x0101))
        assert cpu.get_state().pc == 0x0102
        assert skipped.metadata.step_count == 2
        assert skipped.metadata.symbol_info == "DB $D3"
        assert cpu.step().metadata.step_count == 3
