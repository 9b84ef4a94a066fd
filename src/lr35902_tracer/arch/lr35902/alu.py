"""
LR35902 ALU (算術論理演算ユニット) およびフラグ操作ユーティリティ。

各プリミティブは演算結果とフラグを同時に計算し、結果を返しながら
渡されたFlagRegisterを更新します。ADD r と ADD d8 のように
オペランドだけが異なる命令は必ず同じプリミティブを通るため、
命令ごとにフラグ規則がずれることはありません。

全ての8ビット結果は256、16ビット結果は65536でラップアラウンドします。
"""
from lr35902_tracer.arch.lr35902.state import FlagRegister


# @intent:responsibility ADD/ADC の結果を計算し、全フラグを更新します。
def add8(flags: FlagRegister, a: int, value: int, carry_in: int = 0) -> int:
    result = a + value + carry_in
    flags.zero = (result & 0xFF) == 0
    flags.subtract = False
    flags.half_carry = ((a & 0x0F) + (value & 0x0F) + carry_in) > 0x0F
    flags.carry = result > 0xFF
    return result & 0xFF

# @intent:responsibility SUB/SBC/CP の結果を計算し、全フラグを更新します。CPは戻り値を捨てます。
def sub8(flags: FlagRegister, a: int, value: int, borrow_in: int = 0) -> int:
    result = a - value - borrow_in
    flags.zero = (result & 0xFF) == 0
    flags.subtract = True
    flags.half_carry = (a & 0x0F) < (value & 0x0F) + borrow_in
    flags.carry = result < 0
    return result & 0xFF

# @intent:responsibility AND/OR/XOR 後のフラグを更新します。
def logic8(flags: FlagRegister, result: int) -> int:
    result &= 0xFF
    flags.zero = result == 0
    flags.subtract = False
    flags.half_carry = False
    flags.carry = False
    return result

# @intent:responsibility 8ビットINC/DEC。Cフラグは保持されます。
def inc_dec8(flags: FlagRegister, value: int, is_inc: bool) -> int:
    if is_inc:
        result = (value + 1) & 0xFF
        flags.half_carry = (value & 0x0F) == 0x0F
    else:
        result = (value - 1) & 0xFF
        flags.half_carry = (value & 0x0F) == 0x00
    flags.zero = result == 0
    flags.subtract = not is_inc
    return result

# @intent:responsibility 16ビットINC/DEC。Z, Cフラグは保持されます。
def inc_dec16(flags: FlagRegister, value: int, is_inc: bool) -> int:
    if is_inc:
        result = (value + 1) & 0xFFFF
        flags.half_carry = (value & 0x0FFF) == 0x0FFF
    else:
        result = (value - 1) & 0xFFFF
        flags.half_carry = (value & 0x0FFF) == 0x0000
    flags.subtract = not is_inc
    return result

# @intent:responsibility ADD HL,rr / ADD SP,s8 / LD HL,SP+s8 の16ビット加算。Zフラグは保持されます。
# @intent:pre-condition 符号付きオペランドは呼び出し側で16ビットに符号拡張しておくこと。
def add16(flags: FlagRegister, base: int, value: int) -> int:
    result = base + value
    flags.subtract = False
    # Half Carry: Bit 11から12へのキャリー
    flags.half_carry = ((base & 0x0FFF) + (value & 0x0FFF)) > 0x0FFF
    flags.carry = result > 0xFFFF
    return result & 0xFFFF

# @intent:responsibility 符号付き8ビット値を16ビットに符号拡張します。
def sign_extend8(value: int) -> int:
    return value | 0xFF00 if value & 0x80 else value

# @intent:responsibility 8ビット値を符号付き整数として解釈します。
def to_signed8(value: int) -> int:
    return value - 0x100 if value & 0x80 else value


ROTATE_SHIFT_OPS = ("RLC", "RRC", "RL", "RR", "SLA", "SRA", "SWAP", "SRL")

# @intent:responsibility ローテート/シフト/SWAPの結果を計算し、フラグを更新します。
# @intent:rationale RLCA/RRCA/RLA/RRA (accumulator=True) はCフラグのみ更新し、Z/N/Hは変更しない。
#                  CBプレフィックス側の形式はZを結果から設定し、N/Hをクリアする。
def rotate_shift8(flags: FlagRegister, value: int, op: str, accumulator: bool = False) -> int:
    carry_in = 1 if flags.carry else 0
    if op == "RLC":
        carry = (value >> 7) & 1
        result = ((value << 1) | carry) & 0xFF
    elif op == "RRC":
        carry = value & 1
        result = (value >> 1) | (carry << 7)
    elif op == "RL":
        carry = (value >> 7) & 1
        result = ((value << 1) | carry_in) & 0xFF
    elif op == "RR":
        carry = value & 1
        result = (value >> 1) | (carry_in << 7)
    elif op == "SLA":
        carry = (value >> 7) & 1
        result = (value << 1) & 0xFF
    elif op == "SRA":
        carry = value & 1
        result = (value >> 1) | (value & 0x80)
    elif op == "SRL":
        carry = value & 1
        result = value >> 1
    elif op == "SWAP":
        carry = 0
        result = ((value << 4) | (value >> 4)) & 0xFF
    else:
        raise ValueError(f"Unknown rotate/shift operation: {op}")

    flags.carry = carry == 1
    if not accumulator:
        flags.zero = result == 0
        flags.subtract = False
        flags.half_carry = False
    return result

# @intent:responsibility BIT b,r のフラグを更新します。値は変更しません。
def bit_flags(flags: FlagRegister, value: int, bit: int) -> None:
    flags.zero = (value >> bit) & 1 == 0
    flags.subtract = False
    flags.half_carry = True

# @intent:responsibility DAA: 直前の加減算結果をパックBCDに補正します。
def daa(flags: FlagRegister, a: int) -> int:
    """
    N/H/Cフラグで駆動される標準的なBCD補正。
    加算後は下位ニブルが9を超えるかHが立っていれば+0x06、
    Aが0x99を超えるかCが立っていれば+0x60しCをセットします。
    減算後はH/Cに応じて0x06/0x60を引き、Cは保持されます。
    """
    correction = 0
    carry = flags.carry
    if flags.subtract:
        if flags.half_carry:
            correction |= 0x06
        if flags.carry:
            correction |= 0x60
        result = (a - correction) & 0xFF
    else:
        if flags.half_carry or (a & 0x0F) > 0x09:
            correction |= 0x06
        if flags.carry or a > 0x99:
            correction |= 0x60
            carry = True
        result = (a + correction) & 0xFF
    flags.zero = result == 0
    flags.half_carry = False
    flags.carry = carry
    return result

def cpl(flags: FlagRegister, a: int) -> int:
    flags.subtract = True
    flags.half_carry = True
    return (~a) & 0xFF

def ccf(flags: FlagRegister) -> None:
    flags.carry = not flags.carry
    flags.subtract = False
    flags.half_carry = False

def scf(flags: FlagRegister) -> None:
    flags.carry = True
    flags.subtract = False
    flags.half_carry = False
