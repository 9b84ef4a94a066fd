"""
LR35902命令セット実装のための共通型、ヘルパー関数と定数。

命令は `Instruction` という閉じたタグ付き型で表現されます。タグは命令ファミリー
(`Family`)で、オペランドを持つ命令はアドレッシングモード(`Operand`)、
分岐条件(`Condition`)、ビット番号、RSTベクタを保持します。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from lr35902_tracer.arch.lr35902.state import Lr35902CpuState, FlagRegister
from lr35902_tracer.arch.lr35902.alu import to_signed8
from lr35902_tracer.transport.bus import MemoryBus

PREFIX_BYTE = 0xCB
IO_PAGE = 0xFF00


# @intent:data_structure 命令ファミリー。EXECUTE_MAPはこの全メンバーに対する実行関数を持つ。
class Family(Enum):
    # 8-bit arithmetic / logic
    ADD = "ADD"
    ADC = "ADC"
    SUB = "SUB"
    SBC = "SBC"
    CP = "CP"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    INC = "INC"
    DEC = "DEC"
    # 16-bit arithmetic
    INC16 = "INC16"
    DEC16 = "DEC16"
    ADD_HL = "ADD_HL"
    ADD_SP = "ADD_SP"
    # Accumulator / flag
    DAA = "DAA"
    CPL = "CPL"
    CCF = "CCF"
    SCF = "SCF"
    RLCA = "RLCA"
    RRCA = "RRCA"
    RLA = "RLA"
    RRA = "RRA"
    # CB-prefixed
    RLC = "RLC"
    RRC = "RRC"
    RL = "RL"
    RR = "RR"
    SLA = "SLA"
    SRA = "SRA"
    SWAP = "SWAP"
    SRL = "SRL"
    BIT = "BIT"
    RES = "RES"
    SET = "SET"
    # Loads / stack
    LD = "LD"
    LD16 = "LD16"
    LD_HL_SP = "LD_HL_SP"
    PUSH = "PUSH"
    POP = "POP"
    # Control flow
    JP = "JP"
    JP_HL = "JP_HL"
    JR = "JR"
    CALL = "CALL"
    RET = "RET"
    RETI = "RETI"
    RST = "RST"
    # System
    NOP = "NOP"
    HALT = "HALT"
    STOP = "STOP"
    DI = "DI"
    EI = "EI"


# @intent:data_structure アドレッシングモード。値はアセンブリ表記上のプレースホルダー。
class Operand(Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    H = "H"
    L = "L"
    HLI = "(HL)"       # HL間接
    BCI = "(BC)"
    DEI = "(DE)"
    HLI_INC = "(HL+)"  # HL間接、アクセス後にHL+1
    HLI_DEC = "(HL-)"  # HL間接、アクセス後にHL-1
    CI = "(C)"         # 0xFF00 + C
    D8 = "d8"          # 8ビット即値
    A8 = "(a8)"        # 0xFF00 + 8ビット即値
    A16 = "(a16)"      # 16ビット即値アドレス間接
    S8 = "s8"          # 符号付き8ビット即値
    D16 = "d16"        # 16ビット即値
    AF = "AF"
    BC = "BC"
    DE = "DE"
    HL = "HL"
    SP = "SP"


class Condition(Enum):
    ALWAYS = ""
    NOT_ZERO = "NZ"
    ZERO = "Z"
    NOT_CARRY = "NC"
    CARRY = "C"


# 命令に続くオペランドバイト数
IMMEDIATE_SIZES = {Operand.D8: 1, Operand.A8: 1, Operand.S8: 1, Operand.D16: 2, Operand.A16: 2}

# アセンブリ表記でファミリー名と異なるニーモニックを使うもの
_MNEMONICS = {
    Family.INC16: "INC",
    Family.DEC16: "DEC",
    Family.ADD_HL: "ADD",
    Family.ADD_SP: "ADD",
    Family.LD16: "LD",
    Family.LD_HL_SP: "LD",
    Family.JP_HL: "JP",
}


# @intent:responsibility デコード済みの1命令を表す不変の値。
@dataclass(frozen=True)
class Instruction:
    family: Family
    target: Optional[Operand] = None
    source: Optional[Operand] = None
    condition: Condition = Condition.ALWAYS
    bit: Optional[int] = None     # BIT/RES/SET のビット番号 0-7
    vector: Optional[int] = None  # RST の飛び先
    prefixed: bool = False

    # @intent:responsibility プレフィックスと即値を含めた命令のバイト長を返します。
    @property
    def length(self) -> int:
        if self.prefixed:
            return 2
        if self.family == Family.STOP:
            return 2
        return 1 + sum(IMMEDIATE_SIZES.get(op, 0) for op in (self.target, self.source) if op is not None)

    @property
    def mnemonic(self) -> str:
        if self.family == Family.LD and Operand.A8 in (self.target, self.source):
            return "LDH"
        return _MNEMONICS.get(self.family, self.family.value)

    # @intent:responsibility ニーモニックと表示用オペランド列を返します。
    # @intent:pre-condition operand_bytesは命令に続く即値バイト（リトルエンディアン）。省略時はプレースホルダー表記。
    def render(self, operand_bytes: Sequence[int] = (), address: Optional[int] = None) -> Tuple[str, List[str]]:
        parts: List[str] = []
        if self.condition != Condition.ALWAYS:
            parts.append(self.condition.value)
        if self.bit is not None:
            parts.append(str(self.bit))
        if self.vector is not None:
            parts.append(f"${self.vector:02X}")
        if self.family == Family.LD_HL_SP:
            offset = _format_signed(operand_bytes)
            parts.extend(["HL", f"SP{offset}" if offset else "SP+s8"])
            return self.mnemonic, parts
        for operand in (self.target, self.source):
            if operand is not None:
                parts.append(self._format_operand(operand, operand_bytes, address))
        return self.mnemonic, parts

    def text(self, operand_bytes: Sequence[int] = (), address: Optional[int] = None) -> str:
        mnemonic, parts = self.render(operand_bytes, address)
        return f"{mnemonic} {','.join(parts)}" if parts else mnemonic

    def _format_operand(self, operand: Operand, operand_bytes: Sequence[int], address: Optional[int]) -> str:
        if operand not in IMMEDIATE_SIZES or len(operand_bytes) < IMMEDIATE_SIZES[operand]:
            return operand.value
        if operand == Operand.D8:
            return f"${operand_bytes[0]:02X}"
        if operand == Operand.A8:
            return f"(${IO_PAGE | operand_bytes[0]:04X})"
        if operand == Operand.S8:
            if self.family == Family.JR and address is not None:
                target = (address + self.length + to_signed8(operand_bytes[0])) & 0xFFFF
                return f"${target:04X}"
            return _format_signed(operand_bytes)
        word = operand_bytes[0] | (operand_bytes[1] << 8)
        if operand == Operand.A16:
            return f"(${word:04X})"
        return f"${word:04X}"


def _format_signed(operand_bytes: Sequence[int]) -> str:
    if not operand_bytes:
        return ""
    offset = to_signed8(operand_bytes[0])
    return f"{'-' if offset < 0 else '+'}${abs(offset):02X}"


# --- Operand resolution ---

REGISTER_OPERANDS = {
    Operand.A: "a", Operand.B: "b", Operand.C: "c", Operand.D: "d",
    Operand.E: "e", Operand.H: "h", Operand.L: "l",
}
PAIR_OPERANDS = {Operand.AF: "af", Operand.BC: "bc", Operand.DE: "de", Operand.HL: "hl"}


# @intent:utility_function 命令直後の即値を読み出します。PCは変更しません。
def read_immediate8(state: Lr35902CpuState, bus: MemoryBus) -> int:
    return bus.read_byte((state.pc + 1) & 0xFFFF)

def read_immediate16(state: Lr35902CpuState, bus: MemoryBus) -> int:
    low = bus.read_byte((state.pc + 1) & 0xFFFF)
    high = bus.read_byte((state.pc + 2) & 0xFFFF)
    return (high << 8) | low

# @intent:utility_function 8ビットオペランドのアクセス先メモリアドレスを解決します。レジスタの場合はNone。
def _indirect_address(state: Lr35902CpuState, bus: MemoryBus, operand: Operand) -> Optional[int]:
    regs = state.registers
    if operand in (Operand.HLI, Operand.HLI_INC, Operand.HLI_DEC):
        return regs.hl
    if operand == Operand.BCI:
        return regs.bc
    if operand == Operand.DEI:
        return regs.de
    if operand == Operand.CI:
        return IO_PAGE | regs.c
    if operand == Operand.A8:
        return IO_PAGE | read_immediate8(state, bus)
    if operand == Operand.A16:
        return read_immediate16(state, bus)
    return None

def _post_adjust_hl(state: Lr35902CpuState, operand: Operand) -> None:
    if operand == Operand.HLI_INC:
        state.registers.hl = (state.registers.hl + 1) & 0xFFFF
    elif operand == Operand.HLI_DEC:
        state.registers.hl = (state.registers.hl - 1) & 0xFFFF

# @intent:utility_function アドレッシングモードに従って8ビット値を読み出します。
def read_operand8(state: Lr35902CpuState, bus: MemoryBus, operand: Operand) -> int:
    if operand in REGISTER_OPERANDS:
        return getattr(state.registers, REGISTER_OPERANDS[operand])
    if operand == Operand.D8:
        return read_immediate8(state, bus)
    address = _indirect_address(state, bus, operand)
    if address is None:
        raise ValueError(f"{operand.value} is not an 8-bit operand")
    value = bus.read_byte(address)
    _post_adjust_hl(state, operand)
    return value

# @intent:utility_function アドレッシングモードに従って8ビット値を書き込みます。
def write_operand8(state: Lr35902CpuState, bus: MemoryBus, operand: Operand, value: int) -> None:
    if operand in REGISTER_OPERANDS:
        setattr(state.registers, REGISTER_OPERANDS[operand], value & 0xFF)
        return
    address = _indirect_address(state, bus, operand)
    if address is None:
        raise ValueError(f"{operand.value} is not a writable 8-bit operand")
    bus.write_byte(address, value & 0xFF)
    _post_adjust_hl(state, operand)

# @intent:utility_function 16ビットオペランド（レジスタペア、SP、即値）を読み出します。
def read_operand16(state: Lr35902CpuState, bus: MemoryBus, operand: Operand) -> int:
    if operand in PAIR_OPERANDS:
        return getattr(state.registers, PAIR_OPERANDS[operand])
    if operand == Operand.SP:
        return state.sp
    if operand == Operand.D16:
        return read_immediate16(state, bus)
    raise ValueError(f"{operand.value} is not a 16-bit operand")

# @intent:utility_function 16ビット値を書き込みます。(a16)はリトルエンディアンの2バイト書き込み。
def write_operand16(state: Lr35902CpuState, bus: MemoryBus, operand: Operand, value: int) -> None:
    value &= 0xFFFF
    if operand in PAIR_OPERANDS:
        setattr(state.registers, PAIR_OPERANDS[operand], value)
    elif operand == Operand.SP:
        state.sp = value
    elif operand == Operand.A16:
        address = read_immediate16(state, bus)
        bus.write_byte(address, value & 0xFF)
        bus.write_byte((address + 1) & 0xFFFF, value >> 8)
    else:
        raise ValueError(f"{operand.value} is not a writable 16-bit operand")

# @intent:utility_function 分岐条件が成立しているかを判定します。
def condition_holds(flags: FlagRegister, condition: Condition) -> bool:
    if condition == Condition.NOT_ZERO:
        return not flags.zero
    if condition == Condition.ZERO:
        return flags.zero
    if condition == Condition.NOT_CARRY:
        return not flags.carry
    if condition == Condition.CARRY:
        return flags.carry
    return True

# @intent:utility_function 分岐しない命令の次のPC（命令長分だけ進めたアドレス）を返します。
def next_pc(state: Lr35902CpuState, instruction: Instruction) -> int:
    return (state.pc + instruction.length) & 0xFFFF
