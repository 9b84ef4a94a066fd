"""
LR35902 算術・論理・ビット操作命令の実行関数。

全ての関数は (state, bus, instruction) を受け取り、次のPCを返します。
フラグの計算はarch/lr35902/alu.pyのプリミティブに一元化されています。
"""
from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from lr35902_tracer.arch.lr35902.alu import (
    add8, sub8, logic8, inc_dec8, inc_dec16, add16, sign_extend8,
    rotate_shift8, bit_flags, daa, cpl, ccf, scf
)
from .base import (
    Family, Instruction, read_operand8, write_operand8, read_operand16, write_operand16,
    read_immediate8, next_pc
)


# @intent:responsibility ADD/ADC/SUB/SBC/CP/AND/OR/XOR を実行します。オペランドはr, (HL), d8のいずれか。
def execute_arith8(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    regs = state.registers
    flags = regs.f
    value = read_operand8(state, bus, instruction.source)
    carry = 1 if flags.carry else 0
    family = instruction.family

    if family == Family.ADD:
        regs.a = add8(flags, regs.a, value)
    elif family == Family.ADC:
        regs.a = add8(flags, regs.a, value, carry)
    elif family == Family.SUB:
        regs.a = sub8(flags, regs.a, value)
    elif family == Family.SBC:
        regs.a = sub8(flags, regs.a, value, carry)
    elif family == Family.CP:
        sub8(flags, regs.a, value)  # 結果は破棄
    elif family == Family.AND:
        regs.a = logic8(flags, regs.a & value)
    elif family == Family.OR:
        regs.a = logic8(flags, regs.a | value)
    elif family == Family.XOR:
        regs.a = logic8(flags, regs.a ^ value)
    return next_pc(state, instruction)

# @intent:responsibility INC r / DEC r / INC (HL) / DEC (HL) を実行します。
def execute_inc_dec8(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand8(state, bus, instruction.target)
    result = inc_dec8(state.registers.f, value, instruction.family == Family.INC)
    write_operand8(state, bus, instruction.target, result)
    return next_pc(state, instruction)

# @intent:responsibility INC rr / DEC rr を実行します。Z, Cは保持。
def execute_inc_dec16(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand16(state, bus, instruction.target)
    result = inc_dec16(state.registers.f, value, instruction.family == Family.INC16)
    write_operand16(state, bus, instruction.target, result)
    return next_pc(state, instruction)

def execute_add_hl(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    regs = state.registers
    regs.hl = add16(regs.f, regs.hl, read_operand16(state, bus, instruction.source))
    return next_pc(state, instruction)

# @intent:responsibility ADD SP,s8 を実行します。s8は16ビットに符号拡張してから加算します。
def execute_add_sp(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    offset = sign_extend8(read_immediate8(state, bus))
    state.sp = add16(state.registers.f, state.sp, offset)
    return next_pc(state, instruction)

# @intent:responsibility DAA / CPL / CCF / SCF を実行します。
def execute_accumulator_flag(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    regs = state.registers
    if instruction.family == Family.DAA:
        regs.a = daa(regs.f, regs.a)
    elif instruction.family == Family.CPL:
        regs.a = cpl(regs.f, regs.a)
    elif instruction.family == Family.CCF:
        ccf(regs.f)
    else:
        scf(regs.f)
    return next_pc(state, instruction)

_ACCUMULATOR_ROTATES = {
    Family.RLCA: "RLC",
    Family.RRCA: "RRC",
    Family.RLA: "RL",
    Family.RRA: "RR",
}

# @intent:responsibility RLCA/RRCA/RLA/RRA を実行します。Cのみ更新し、Z/N/Hは変更しません。
def execute_rotate_accumulator(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    regs = state.registers
    regs.a = rotate_shift8(regs.f, regs.a, _ACCUMULATOR_ROTATES[instruction.family], accumulator=True)
    return next_pc(state, instruction)

# @intent:responsibility CBプレフィックスのローテート/シフト/SWAPを実行します。
def execute_rotate_shift(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand8(state, bus, instruction.target)
    result = rotate_shift8(state.registers.f, value, instruction.family.value)
    write_operand8(state, bus, instruction.target, result)
    return next_pc(state, instruction)

# @intent:responsibility BIT b,r を実行します。対象の値は読み出すだけで書き戻しません。
def execute_bit(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand8(state, bus, instruction.target)
    bit_flags(state.registers.f, value, instruction.bit)
    return next_pc(state, instruction)

# @intent:responsibility RES b,r / SET b,r を実行します。フラグは変更しません。
def execute_res_set(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand8(state, bus, instruction.target)
    mask = 1 << instruction.bit
    if instruction.family == Family.SET:
        result = value | mask
    else:
        result = value & ~mask
    write_operand8(state, bus, instruction.target, result & 0xFF)
    return next_pc(state, instruction)
