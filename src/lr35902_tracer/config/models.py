from dataclasses import dataclass, field
from typing import Dict, List, Optional

from lr35902_tracer.common.types import IllegalOpcodePolicy

@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "RAM", "ROM"
    label: str = ""
    initial_value: int = 0x00

@dataclass
class CpuInitialState:
    # Noneの項目はブートROM終了時の値を維持する
    pc: Optional[int] = None
    sp: Optional[int] = None
    ime: bool = False
    registers: Dict[str, int] = field(default_factory=dict)

@dataclass
class SystemConfig:
    architecture: str = "LR35902"
    memory_map: List[MemoryRegion] = field(default_factory=list)
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    illegal_opcode: IllegalOpcodePolicy = IllegalOpcodePolicy.RAISE


# @intent:responsibility 構成ファイルが与えられない場合のシステム構成を返します。
# @intent:rationale カートリッジROM(32KiB)を0x0000-0x7FFFに、残りの空間をRAMとして扱う平坦な構成。
def default_config() -> SystemConfig:
    return SystemConfig(
        architecture="LR35902",
        memory_map=[
            MemoryRegion(start=0x0000, end=0x7FFF, type="ROM", label="Cartridge ROM"),
            MemoryRegion(start=0x8000, end=0xFFFF, type="RAM", label="Work RAM"),
        ],
    )
