# tests/arch/lr35902/test_lr35902_state.py
import pytest
from lr35902_tracer.arch.lr35902.state import FlagRegister, RegisterFile, Lr35902CpuState

# @intent:test_suite レジスタファイルとフラグレジスタのデータ表現を検証します。

class TestFlagRegister:
    # @intent:test_case_roundtrip 全256値について、バイト表現の往復で下位4ビットだけが失われることを検証します。
    @pytest.mark.parametrize("byte", range(256))
    def test_byte_round_trip_masks_low_nibble(self, byte):
        assert FlagRegister.from_byte(byte).to_byte() == byte & 0xF0

    def test_bit_positions(self):
        assert FlagRegister(zero=True).to_byte() == 0x80
        assert FlagRegister(subtract=True).to_byte() == 0x40
        assert FlagRegister(half_carry=True).to_byte() == 0x20
        assert FlagRegister(carry=True).to_byte() == 0x10

class TestRegisterFile:
    def test_pairs_are_views_over_bytes(self):
        regs = RegisterFile()
        regs.bc = 0x1234
        assert (regs.b, regs.c) == (0x12, 0x34)
        regs.h = 0xAB
        regs.l = 0xCD
        assert regs.hl == 0xABCD

    def test_af_goes_through_flag_register(self):
        regs = RegisterFile()
        regs.af = 0x12FF
        assert regs.a == 0x12
        assert regs.af == 0x12F0
        assert regs.f.zero and regs.f.subtract and regs.f.half_carry and regs.f.carry

    def test_get_set_by_name(self):
        regs = RegisterFile()
        regs.set("DE", 0x1_BEEF)
        assert regs.get("de") == 0xBEEF
        regs.set("f", 0x9F)
        assert regs.get("F") == 0x90
        with pytest.raises(KeyError):
            regs.get("ix")

class TestLr35902CpuState:
    def test_post_boot_values(self):
        state = Lr35902CpuState.post_boot()
        regs = state.registers
        assert (regs.af, regs.bc, regs.de, regs.hl) == (0x01B0, 0x0013, 0x00D8, 0x014D)
        assert (state.sp, state.pc) == (0xFFFE, 0x0100)
        assert not state.ime and not state.ime_pending
        assert not state.halted and not state.stopped

    def test_clone_copies_register_file(self):
        state = Lr35902CpuState.post_boot()
        copy = state.clone()
        copy.registers.a = 0x00
        copy.registers.f.carry = True
        assert state.registers.a == 0x01
        assert state.registers.f.carry is True  # 0xB0 has C set
        assert state.registers.f is not copy.registers.f
