"""
LR35902命令セット実装パッケージ。
"""
from dataclasses import dataclass
from typing import Optional

from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.core.snapshot import Operation
from lr35902_tracer.arch.lr35902.state import Lr35902CpuState
from .base import PREFIX_BYTE, Family, Operand, Condition, Instruction
from .maps import PRIMARY_TABLE, PREFIXED_TABLE, EXECUTE_MAP, ILLEGAL_OPCODES

__all__ = [
    "PREFIX_BYTE", "Family", "Operand", "Condition", "Instruction", "Lr35902Operation",
    "PRIMARY_TABLE", "PREFIXED_TABLE", "EXECUTE_MAP", "ILLEGAL_OPCODES",
    "decode", "execute_instruction", "build_operation",
]


# @intent:responsibility デコード記録に、実行に用いる命令値を添えたOperation。
@dataclass(frozen=True)
class Lr35902Operation(Operation):
    instruction: Optional[Instruction] = None


# @intent:responsibility オペコードを命令に変換します。定義のないオペコードはNoneを返します。
# @intent:pre-condition prefixed=Trueの場合、opcodeは0xCBに続く2バイト目。
def decode(opcode: int, prefixed: bool = False) -> Optional[Instruction]:
    table = PREFIXED_TABLE if prefixed else PRIMARY_TABLE
    return table.get(opcode & 0xFF)

# @intent:responsibility デコード済みの命令を実行し、次のPCを返します。
# @intent:pre-condition state.pcは実行する命令の先頭（プレフィックス付きならば0xCB）を指していること。
def execute_instruction(instruction: Instruction, state: Lr35902CpuState, bus: MemoryBus) -> int:
    executor = EXECUTE_MAP[instruction.family]
    return executor(state, bus, instruction)

# @intent:responsibility addressに置かれた命令のデコード記録を生成します。
# @intent:rationale 即値バイトはpeekで読み、実行時のバスアクティビティに混ぜない。
def build_operation(bus: MemoryBus, address: int, instruction: Instruction) -> Lr35902Operation:
    opcode_size = 2 if instruction.prefixed else 1
    raw = [bus.peek((address + i) & 0xFFFF) for i in range(instruction.length)]
    # STOPの2バイト目は即値ではなくパディング
    operand_bytes = [] if instruction.family == Family.STOP else raw[opcode_size:]
    mnemonic, operands = instruction.render(operand_bytes, address)
    return Lr35902Operation(
        opcode_hex=" ".join(f"{b:02X}" for b in raw[:opcode_size]),
        mnemonic=mnemonic,
        operands=operands,
        operand_bytes=raw[opcode_size:],
        length=instruction.length,
        address=address & 0xFFFF,
        prefixed=instruction.prefixed,
        instruction=instruction,
    )
