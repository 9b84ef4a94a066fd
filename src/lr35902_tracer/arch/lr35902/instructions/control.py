"""
LR35902 分岐・サブルーチン・システム制御命令の実行関数。

分岐命令は条件成立時に計算済みの飛び先を、不成立時は命令長分進めたアドレスを返します。
"""
from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from lr35902_tracer.arch.lr35902.alu import to_signed8
from .base import Family, Instruction, read_immediate8, read_immediate16, condition_holds, next_pc
from .load import push_word, pop_word


def execute_nop(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    return next_pc(state, instruction)

# @intent:responsibility JP a16 / JP cc,a16 を実行します。
def execute_jp(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    if condition_holds(state.registers.f, instruction.condition):
        return read_immediate16(state, bus)
    return next_pc(state, instruction)

def execute_jp_hl(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    return state.registers.hl

# @intent:responsibility JR s8 / JR cc,s8 を実行します。オフセットは次の命令の先頭からの相対値。
def execute_jr(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    following = next_pc(state, instruction)
    if condition_holds(state.registers.f, instruction.condition):
        return (following + to_signed8(read_immediate8(state, bus))) & 0xFFFF
    return following

# @intent:responsibility CALL a16 / CALL cc,a16 を実行します。戻り番地のプッシュは条件成立時のみ。
def execute_call(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    following = next_pc(state, instruction)
    if condition_holds(state.registers.f, instruction.condition):
        target = read_immediate16(state, bus)
        push_word(state, bus, following)
        return target
    return following

# @intent:responsibility RET / RET cc / RETI を実行します。RETIは同時にIMEを即時セットします。
def execute_ret(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    if instruction.family == Family.RETI:
        state.ime = True
        return pop_word(state, bus)
    if condition_holds(state.registers.f, instruction.condition):
        return pop_word(state, bus)
    return next_pc(state, instruction)

def execute_rst(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    push_word(state, bus, next_pc(state, instruction))
    return instruction.vector

# @intent:responsibility HALT / STOP を実行します。以降のstepはホストが起床させるまでフェッチを行いません。
def execute_halt_stop(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    if instruction.family == Family.HALT:
        state.halted = True
    else:
        state.stopped = True
    return next_pc(state, instruction)

# @intent:responsibility DI / EI を実行します。
# @intent:rationale EIはIMEを保留状態にするだけで、実際の許可は次の命令の実行後にCPU側で行う。
#                  DIは保留中のEIも取り消す。
def execute_di_ei(state: Lr35902CpuState, bus: MemoryBus, instruction: Instruction) -> int:
    if instruction.family == Family.EI:
        state.ime_pending = True
    else:
        state.ime = False
        state.ime_pending = False
    return next_pc(state, instruction)
