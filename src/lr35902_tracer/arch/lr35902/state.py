"""
LR35902 CPU固有の状態定義。

このモジュールは、LR35902 CPUのレジスタファイル、フラグレジスタ、
および実行状態（PC/SP/割り込み許可ラッチ）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass, field

from lr35902_tracer.core.state import CpuState

# @intent:constant Fレジスタ内の各フラグビットの位置。下位4ビットは常に0として扱う。
ZERO_FLAG_BYTE_POSITION = 7
SUBTRACT_FLAG_BYTE_POSITION = 6
HALF_CARRY_FLAG_BYTE_POSITION = 5
CARRY_FLAG_BYTE_POSITION = 4

FLAG_MASK = 0xF0

BYTE_REGISTERS = ("a", "b", "c", "d", "e", "h", "l")
WORD_REGISTERS = ("af", "bc", "de", "hl")


# @intent:responsibility 4つの条件フラグ（Z, N, H, C）を保持し、1バイト表現との相互変換を提供します。
@dataclass
class FlagRegister:
    """
    フラグレジスタ。

    バイト表現ではbit7=zero, bit6=subtract, bit5=half_carry, bit4=carry に配置され、
    bit0-3は意味を持ちません。PUSH AF / POP AF はこの変換を経由するため、
    to_byte(from_byte(x)) == x & 0xF0 が常に成り立ちます。
    """
    zero: bool = False
    subtract: bool = False
    half_carry: bool = False
    carry: bool = False

    @classmethod
    def from_byte(cls, byte: int) -> "FlagRegister":
        return cls(
            zero=((byte >> ZERO_FLAG_BYTE_POSITION) & 0b1) != 0,
            subtract=((byte >> SUBTRACT_FLAG_BYTE_POSITION) & 0b1) != 0,
            half_carry=((byte >> HALF_CARRY_FLAG_BYTE_POSITION) & 0b1) != 0,
            carry=((byte >> CARRY_FLAG_BYTE_POSITION) & 0b1) != 0,
        )

    def to_byte(self) -> int:
        return (
            (int(self.zero) << ZERO_FLAG_BYTE_POSITION)
            | (int(self.subtract) << SUBTRACT_FLAG_BYTE_POSITION)
            | (int(self.half_carry) << HALF_CARRY_FLAG_BYTE_POSITION)
            | (int(self.carry) << CARRY_FLAG_BYTE_POSITION)
        )


# @intent:responsibility 8ビットレジスタA, B, C, D, E, H, LとフラグレジスタFを保持します。
# @intent:rationale BC/DE/HL/AFは独立した記憶領域を持たないビューとして実装し、
#                  ペアへの書き込みは常に上位・下位の両バイトを同時に更新します。
@dataclass
class RegisterFile:
    a: int = 0x00
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00
    f: FlagRegister = field(default_factory=FlagRegister)

    # @intent:accessor 名前指定で8ビット/16ビットレジスタを読み書きします。設定やデバッガから使われます。
    def get(self, name: str) -> int:
        name = name.lower()
        if name == "f":
            return self.f.to_byte()
        if name in BYTE_REGISTERS or name in WORD_REGISTERS:
            return getattr(self, name)
        raise KeyError(f"Unknown register: {name}")

    def set(self, name: str, value: int) -> None:
        name = name.lower()
        if name == "f":
            self.f = FlagRegister.from_byte(value & 0xFF)
        elif name in BYTE_REGISTERS:
            setattr(self, name, value & 0xFF)
        elif name in WORD_REGISTERS:
            setattr(self, name, value & 0xFFFF)
        else:
            raise KeyError(f"Unknown register: {name}")

    # 16-bit register pairs (most-significant byte first)
    @property
    def af(self) -> int:
        return (self.a << 8) | self.f.to_byte()

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = FlagRegister.from_byte(value & 0xFF)

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF


# @intent:responsibility LR35902 CPUの実行状態（レジスタファイル、PC、SP、割り込み/低消費電力ラッチ）を保持します。
@dataclass
class Lr35902CpuState(CpuState):
    """
    LR35902 CPUの実行状態を保持するデータクラス。
    CpuStateのpc/spに加え、レジスタファイルと以下のラッチを持ちます。

    - ime: 割り込みマスタ許可。割り込みの配送自体は外部コントローラの責務。
    - ime_pending: EIの効果は次の命令の実行後に有効になるため、その保留状態。
    - halted / stopped: HALT / STOP 実行後、ホストが起床させるまでフェッチを行わない。
    """
    registers: RegisterFile = field(default_factory=RegisterFile)
    ime: bool = False
    ime_pending: bool = False
    halted: bool = False
    stopped: bool = False

    # @intent:responsibility ブートROM終了直後（カートリッジのエントリポイント到達時）の状態を生成します。
    # @intent:rationale 電源投入時のレジスタ値はハードウェア上は不定であるため、
    #                  多くのソフトウェアが前提とするDMGブートROM終了時の値を採用する。
    @classmethod
    def post_boot(cls) -> "Lr35902CpuState":
        registers = RegisterFile()
        registers.af = 0x01B0
        registers.bc = 0x0013
        registers.de = 0x00D8
        registers.hl = 0x014D
        return cls(pc=0x0100, sp=0xFFFE, registers=registers)
