# tests/arch/lr35902/test_disassembler.py
import pytest
from lr35902_tracer.transport.bus import Bus, RAM
from lr35902_tracer.arch.lr35902.disassembler import disassemble

@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus

def test_disassemble_mixed_program(bus):
    program = [0x31, 0xFE, 0xFF, 0xCB, 0x7C, 0x20, 0xFB, 0xE0, 0x40, 0x10, 0x00]
    for i, byte in enumerate(program):
        bus.load(0x0100 + i, byte)

    assert disassemble(bus, 0x0100, len(program)) == [
        (0x0100, "31 FE FF", "LD SP,$FFFE"),
        (0x0103, "CB 7C", "BIT 7,H"),
        (0x0105, "20 FB", "JR NZ,$0102"),
        (0x0107, "E0 40", "LDH ($FF40),A"),
        (0x0109, "10 00", "STOP"),
    ]

def test_illegal_bytes_render_as_data(bus):
    bus.load(0x0000, 0xD3)
    bus.load(0x0001, 0x00)
    assert disassemble(bus, 0x0000, 2) == [
        (0x0000, "D3", "DB $D3"),
        (0x0001, "00", "NOP"),
    ]

def test_disassemble_does_not_log_bus_activity(bus):
    disassemble(bus, 0x0000, 0x20)
    assert bus.get_and_clear_activity_log() == []

def test_disassemble_stops_at_end_of_address_space(bus):
    result = disassemble(bus, 0xFFFE, 0x10)
    assert [address for address, _, _ in result] == [0xFFFE, 0xFFFF]
