"""
LR35902 命令マッピング定義。

PRIMARY_TABLE はプレフィックスなしのオペコード、PREFIXED_TABLE は0xCBに続くオペコードを
Instructionに対応付けます。EXECUTE_MAP は命令ファミリーから実行関数への対応表です。

プライマリ側で定義を持たないのは、プレフィックスバイト0xCBと、
実機で未定義の11個のオペコード（ILLEGAL_OPCODES）です。CB側は256個全てが定義済みです。
"""
from lr35902_tracer.arch.lr35902.alu import ROTATE_SHIFT_OPS
from .base import Family, Operand, Condition, Instruction
from .alu import (
    execute_arith8, execute_inc_dec8, execute_inc_dec16, execute_add_hl, execute_add_sp,
    execute_accumulator_flag, execute_rotate_accumulator, execute_rotate_shift, execute_bit, execute_res_set
)
from .load import execute_ld, execute_ld16, execute_ld_hl_sp, execute_push, execute_pop
from .control import (
    execute_nop, execute_jp, execute_jp_hl, execute_jr, execute_call, execute_ret, execute_rst,
    execute_halt_stop, execute_di_ei
)

# オペコード中の3ビットのレジスタ指定 (0-7) に対応するオペランド
R8 = (Operand.B, Operand.C, Operand.D, Operand.E, Operand.H, Operand.L, Operand.HLI, Operand.A)
# 2ビットのレジスタペア指定。PUSH/POPのみ最後がAFになる
R16 = (Operand.BC, Operand.DE, Operand.HL, Operand.SP)
R16_STACK = (Operand.BC, Operand.DE, Operand.HL, Operand.AF)
CONDITIONS = (Condition.NOT_ZERO, Condition.ZERO, Condition.NOT_CARRY, Condition.CARRY)
# 0x80-0xBF / 0xC6-0xFE の演算順序。ADD/ADC/SBC はアキュムレータを明示して表記する
ARITH_FAMILIES = (Family.ADD, Family.ADC, Family.SUB, Family.SBC, Family.AND, Family.XOR, Family.OR, Family.CP)
_EXPLICIT_A = (Family.ADD, Family.ADC, Family.SBC)

ILLEGAL_OPCODES = frozenset({0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD})


def _arith(family: Family, source: Operand) -> Instruction:
    target = Operand.A if family in _EXPLICIT_A else None
    return Instruction(family, target=target, source=source)


PRIMARY_TABLE = {
    # --- 0x00-0x3F ---
    0x00: Instruction(Family.NOP),
    0x07: Instruction(Family.RLCA),
    0x08: Instruction(Family.LD16, target=Operand.A16, source=Operand.SP),
    0x0F: Instruction(Family.RRCA),
    0x10: Instruction(Family.STOP),
    0x17: Instruction(Family.RLA),
    0x18: Instruction(Family.JR, source=Operand.S8),
    0x1F: Instruction(Family.RRA),
    0x27: Instruction(Family.DAA),
    0x2F: Instruction(Family.CPL),
    0x37: Instruction(Family.SCF),
    0x3F: Instruction(Family.CCF),
    0x02: Instruction(Family.LD, target=Operand.BCI, source=Operand.A),
    0x12: Instruction(Family.LD, target=Operand.DEI, source=Operand.A),
    0x22: Instruction(Family.LD, target=Operand.HLI_INC, source=Operand.A),
    0x32: Instruction(Family.LD, target=Operand.HLI_DEC, source=Operand.A),
    0x0A: Instruction(Family.LD, target=Operand.A, source=Operand.BCI),
    0x1A: Instruction(Family.LD, target=Operand.A, source=Operand.DEI),
    0x2A: Instruction(Family.LD, target=Operand.A, source=Operand.HLI_INC),
    0x3A: Instruction(Family.LD, target=Operand.A, source=Operand.HLI_DEC),
    **{0x01 + (i << 4): Instruction(Family.LD16, target=rr, source=Operand.D16) for i, rr in enumerate(R16)},
    **{0x03 + (i << 4): Instruction(Family.INC16, target=rr) for i, rr in enumerate(R16)},
    **{0x09 + (i << 4): Instruction(Family.ADD_HL, target=Operand.HL, source=rr) for i, rr in enumerate(R16)},
    **{0x0B + (i << 4): Instruction(Family.DEC16, target=rr) for i, rr in enumerate(R16)},
    **{0x04 + (i << 3): Instruction(Family.INC, target=r) for i, r in enumerate(R8)},
    **{0x05 + (i << 3): Instruction(Family.DEC, target=r) for i, r in enumerate(R8)},
    **{0x06 + (i << 3): Instruction(Family.LD, target=r, source=Operand.D8) for i, r in enumerate(R8)},
    **{0x20 + (i << 3): Instruction(Family.JR, source=Operand.S8, condition=cc) for i, cc in enumerate(CONDITIONS)},

    # --- 0x40-0x7F: LD r,r' (0x76 は LD (HL),(HL) ではなく HALT) ---
    **{0x40 | (d << 3) | s: Instruction(Family.LD, target=R8[d], source=R8[s])
       for d in range(8) for s in range(8) if (d, s) != (6, 6)},
    0x76: Instruction(Family.HALT),

    # --- 0x80-0xBF: 8ビット演算 A,r ---
    **{0x80 | (f << 3) | s: _arith(family, R8[s]) for f, family in enumerate(ARITH_FAMILIES) for s in range(8)},

    # --- 0xC0-0xFF ---
    **{0xC0 + (i << 3): Instruction(Family.RET, condition=cc) for i, cc in enumerate(CONDITIONS)},
    **{0xC2 + (i << 3): Instruction(Family.JP, source=Operand.D16, condition=cc) for i, cc in enumerate(CONDITIONS)},
    **{0xC4 + (i << 3): Instruction(Family.CALL, source=Operand.D16, condition=cc) for i, cc in enumerate(CONDITIONS)},
    **{0xC1 + (i << 4): Instruction(Family.POP, target=rr) for i, rr in enumerate(R16_STACK)},
    **{0xC5 + (i << 4): Instruction(Family.PUSH, target=rr) for i, rr in enumerate(R16_STACK)},
    **{0xC6 + (f << 3): _arith(family, Operand.D8) for f, family in enumerate(ARITH_FAMILIES)},
    **{0xC7 + (i << 3): Instruction(Family.RST, vector=i << 3) for i in range(8)},
    0xC3: Instruction(Family.JP, source=Operand.D16),
    0xC9: Instruction(Family.RET),
    0xCD: Instruction(Family.CALL, source=Operand.D16),
    0xD9: Instruction(Family.RETI),
    0xE0: Instruction(Family.LD, target=Operand.A8, source=Operand.A),
    0xF0: Instruction(Family.LD, target=Operand.A, source=Operand.A8),
    0xE2: Instruction(Family.LD, target=Operand.CI, source=Operand.A),
    0xF2: Instruction(Family.LD, target=Operand.A, source=Operand.CI),
    0xE8: Instruction(Family.ADD_SP, target=Operand.SP, source=Operand.S8),
    0xE9: Instruction(Family.JP_HL, target=Operand.HL),
    0xEA: Instruction(Family.LD, target=Operand.A16, source=Operand.A),
    0xFA: Instruction(Family.LD, target=Operand.A, source=Operand.A16),
    0xF3: Instruction(Family.DI),
    0xFB: Instruction(Family.EI),
    0xF8: Instruction(Family.LD_HL_SP, source=Operand.S8),
    0xF9: Instruction(Family.LD16, target=Operand.SP, source=Operand.HL),
}

PREFIXED_TABLE = {
    **{(i << 3) | r: Instruction(Family(op), target=R8[r], prefixed=True)
       for i, op in enumerate(ROTATE_SHIFT_OPS) for r in range(8)},
    **{0x40 | (b << 3) | r: Instruction(Family.BIT, target=R8[r], bit=b, prefixed=True)
       for b in range(8) for r in range(8)},
    **{0x80 | (b << 3) | r: Instruction(Family.RES, target=R8[r], bit=b, prefixed=True)
       for b in range(8) for r in range(8)},
    **{0xC0 | (b << 3) | r: Instruction(Family.SET, target=R8[r], bit=b, prefixed=True)
       for b in range(8) for r in range(8)},
}

EXECUTE_MAP = {
    **{family: execute_arith8 for family in ARITH_FAMILIES},
    Family.INC: execute_inc_dec8,
    Family.DEC: execute_inc_dec8,
    Family.INC16: execute_inc_dec16,
    Family.DEC16: execute_inc_dec16,
    Family.ADD_HL: execute_add_hl,
    Family.ADD_SP: execute_add_sp,
    Family.DAA: execute_accumulator_flag,
    Family.CPL: execute_accumulator_flag,
    Family.CCF: execute_accumulator_flag,
    Family.SCF: execute_accumulator_flag,
    Family.RLCA: execute_rotate_accumulator,
    Family.RRCA: execute_rotate_accumulator,
    Family.RLA: execute_rotate_accumulator,
    Family.RRA: execute_rotate_accumulator,
    **{Family(op): execute_rotate_shift for op in ROTATE_SHIFT_OPS},
    Family.BIT: execute_bit,
    Family.RES: execute_res_set,
    Family.SET: execute_res_set,
    Family.LD: execute_ld,
    Family.LD16: execute_ld16,
    Family.LD_HL_SP: execute_ld_hl_sp,
    Family.PUSH: execute_push,
    Family.POP: execute_pop,
    Family.JP: execute_jp,
    Family.JP_HL: execute_jp_hl,
    Family.JR: execute_jr,
    Family.CALL: execute_call,
    Family.RET: execute_ret,
    Family.RETI: execute_ret,
    Family.RST: execute_rst,
    Family.NOP: execute_nop,
    Family.HALT: execute_halt_stop,
    Family.STOP: execute_halt_stop,
    Family.DI: execute_di_ei,
    Family.EI: execute_di_ei,
}
