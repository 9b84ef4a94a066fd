"""
LR35902 転送命令とスタック操作命令の実行関数。
"""
from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from lr35902_tracer.arch.lr35902.alu import add16, sign_extend8
from .base import (
    Instruction, read_operand8, write_operand8, read_operand16, write_operand16,
    read_immediate8, next_pc
)


# @intent:utility_function 16ビット値をスタックにプッシュします（上位バイトを先に高位アドレスへ）。
def push_word(state: Lr35902CpuState, bus: MemoryBus, value: int) -> None:
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write_byte(state.sp, (value >> 8) & 0xFF)
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write_byte(state.sp, value & 0xFF)

# @intent:utility_function スタックから16ビット値をポップします。
def pop_word(state: Lr35902CpuState, bus: MemoryBus) -> int:
    low = bus.read_byte(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    high = bus.read_byte(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    return (high << 8) | low


# @intent:responsibility 8ビット転送命令 LD/LDH を実行します。フラグは変更しません。
# @intent:rationale (HL+)/(HL-) の後置インクリメント・デクリメントはオペランド解決側で行われる。
def execute_ld(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand8(state, bus, instruction.source)
    write_operand8(state, bus, instruction.target, value)
    return next_pc(state, instruction)

# @intent:responsibility LD rr,d16 / LD (a16),SP / LD SP,HL を実行します。
def execute_ld16(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    value = read_operand16(state, bus, instruction.source)
    write_operand16(state, bus, instruction.target, value)
    return next_pc(state, instruction)

# @intent:responsibility LD HL,SP+s8 を実行します。フラグはADD SP,s8と同じ規則で更新されます。
def execute_ld_hl_sp(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    regs = state.registers
    regs.hl = add16(regs.f, state.sp, sign_extend8(read_immediate8(state, bus)))
    return next_pc(state, instruction)

# @intent:responsibility PUSH rr を実行します。AFはフラグレジスタのバイト表現を経由します。
def execute_push(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    push_word(state, bus, read_operand16(state, bus, instruction.target))
    return next_pc(state, instruction)

# @intent:responsibility POP rr を実行します。POP AF ではFの下位4ビットが破棄されます。
def execute_pop(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    write_operand16(state, bus, instruction.target, pop_word(state, bus))
    return next_pc(state, instruction)
