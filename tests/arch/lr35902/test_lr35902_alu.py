# tests/arch/lr35902/test_lr35902_alu.py
import pytest
from lr35902_tracer.arch.lr35902.state import FlagRegister
from lr35902_tracer.arch.lr35902 import alu

# @intent:test_suite ALUプリミティブのフラグ計算を境界値で検証します。

def flags_of(f: FlagRegister):
    return (f.zero, f.subtract, f.half_carry, f.carry)

class TestAdd8:
    @pytest.mark.parametrize("a, value, carry_in, result, expected", [
        (0x0F, 0x01, 0, 0x10, (False, False, True, False)),
        (0xFF, 0x01, 0, 0x00, (True, False, True, True)),
        (0x80, 0x80, 0, 0x00, (True, False, False, True)),
        (0x12, 0x34, 0, 0x46, (False, False, False, False)),
        (0x0E, 0x01, 1, 0x10, (False, False, True, False)),
        (0xFE, 0x01, 1, 0x00, (True, False, True, True)),
    ])
    def test_add8(self, a, value, carry_in, result, expected):
        f = FlagRegister()
        assert alu.add8(f, a, value, carry_in) == result
        assert flags_of(f) == expected

class TestSub8:
    @pytest.mark.parametrize("a, value, borrow_in, result, expected", [
        (0x10, 0x01, 0, 0x0F, (False, True, True, False)),
        (0x00, 0x01, 0, 0xFF, (False, True, True, True)),
        (0x42, 0x42, 0, 0x00, (True, True, False, False)),
        (0x10, 0x0F, 1, 0x00, (True, True, True, False)),
        (0x00, 0x00, 1, 0xFF, (False, True, True, True)),
    ])
    def test_sub8(self, a, value, borrow_in, result, expected):
        f = FlagRegister()
        assert alu.sub8(f, a, value, borrow_in) == result
        assert flags_of(f) == expected

class TestIncDec:
    def test_inc8_half_carry_and_wrap(self):
        f = FlagRegister(carry=True)
        assert alu.inc_dec8(f, 0x0F, True) == 0x10
        assert flags_of(f) == (False, False, True, True)
        assert alu.inc_dec8(f, 0xFF, True) == 0x00
        assert flags_of(f) == (True, False, True, True)

    def test_dec8_half_borrow(self):
        f = FlagRegister()
        assert alu.inc_dec8(f, 0x10, False) == 0x0F
        assert flags_of(f) == (False, True, True, False)
        assert alu.inc_dec8(f, 0x01, False) == 0x00
        assert flags_of(f) == (True, True, False, False)

    # @intent:test_case_16bit 16ビットINC/DECはZとCを保持することを検証します。
    def test_inc_dec16_keeps_zero_and_carry(self):
        f = FlagRegister(zero=True, carry=True)
        assert alu.inc_dec16(f, 0xFFFF, True) == 0x0000
        assert f.zero is True and f.carry is True
        assert f.half_carry is True and f.subtract is False
        assert alu.inc_dec16(f, 0x0000, False) == 0xFFFF
        assert f.zero is True and f.carry is True and f.subtract is True

class TestAdd16:
    def test_add16_flags(self):
        f = FlagRegister(zero=True)
        assert alu.add16(f, 0x0FFF, 0x0001) == 0x1000
        assert flags_of(f) == (True, False, True, False)
        assert alu.add16(f, 0xFFFF, 0x0001) == 0x0000
        assert f.carry is True and f.zero is True

    def test_signed_offset_is_sign_extended(self):
        f = FlagRegister()
        assert alu.add16(f, 0xFFF8, alu.sign_extend8(0xFE)) == 0xFFF6
        assert alu.to_signed8(0x80) == -128
        assert alu.to_signed8(0x7F) == 127

class TestRotateShift:
    @pytest.mark.parametrize("op, value, carry_in, result, carry_out", [
        ("RLC", 0x81, False, 0x03, True),
        ("RRC", 0x01, False, 0x80, True),
        ("RL", 0x80, True, 0x01, True),
        ("RR", 0x01, True, 0x80, True),
        ("SLA", 0x80, False, 0x00, True),
        ("SRA", 0x81, False, 0xC0, True),
        ("SRL", 0x81, False, 0x40, True),
        ("SWAP", 0xF1, True, 0x1F, False),
    ])
    def test_rotate_shift(self, op, value, carry_in, result, carry_out):
        f = FlagRegister(carry=carry_in, half_carry=True, subtract=True)
        assert alu.rotate_shift8(f, value, op) == result
        assert f.carry is carry_out
        assert f.zero is (result == 0)
        assert f.subtract is False and f.half_carry is False

    # @intent:test_case_accumulator アキュムレータ形式はZ/N/Hを変更しないことを検証します。
    def test_accumulator_form_leaves_znh(self):
        f = FlagRegister(zero=True, subtract=True, half_carry=True)
        assert alu.rotate_shift8(f, 0x80, "RLC", accumulator=True) == 0x01
        assert flags_of(f) == (True, True, True, True)

    def test_unknown_op(self):
        with pytest.raises(ValueError):
            alu.rotate_shift8(FlagRegister(), 0, "ROL")

class TestMisc:
    @pytest.mark.parametrize("a, n, h, c, result, carry_out", [
        (0x0A, False, False, False, 0x10, False),   # 0x05 + 0x05
        (0x9A, False, False, False, 0x00, True),    # 0x55 + 0x45
        (0x42, False, True, False, 0x48, False),    # 0x39 + 0x09
        (0x0F, True, True, False, 0x09, False),     # 0x10 - 0x01
        (0xF0, True, False, True, 0x90, True),      # 0x10 - 0x20
    ])
    def test_daa(self, a, n, h, c, result, carry_out):
        f = FlagRegister(subtract=n, half_carry=h, carry=c)
        assert alu.daa(f, a) == result
        assert f.carry is carry_out
        assert f.half_carry is False
        assert f.subtract is n
        assert f.zero is (result == 0)

    def test_bit_flags(self):
        f = FlagRegister(carry=True)
        alu.bit_flags(f, 0x80, 7)
        assert flags_of(f) == (False, False, True, True)
        alu.bit_flags(f, 0x7F, 7)
        assert f.zero is True

    def test_cpl_ccf_scf(self):
        f = FlagRegister(zero=True)
        assert alu.cpl(f, 0x35) == 0xCA
        assert flags_of(f) == (True, True, True, False)
        alu.scf(f)
        assert flags_of(f) == (True, False, False, True)
        alu.ccf(f)
        assert flags_of(f) == (True, False, False, False)

    def test_logic8_clears_hnc(self):
        f = FlagRegister(subtract=True, half_carry=True, carry=True)
        assert alu.logic8(f, 0x00) == 0x00
        assert flags_of(f) == (True, False, False, False)
