# lr35902_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
トレース出力やデバッガへの情報提供、ステップバック時の状態復元に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from lr35902_tracer.core.state import CpuState
from lr35902_tracer.transport.bus import BusAccessType, BusAccess


# @intent:responsibility 実行された命令のデコード記録を保持します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    実行された命令の詳細（HEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str # 例: "C3", プレフィックス付きは "CB 7C"
    mnemonic: str # 例: "JP"
    operands: List[str] = field(default_factory=list) # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト
    length: int = 1 # 命令のバイト長（プレフィックスを含む）
    address: int = 0 # 命令の先頭アドレス
    prefixed: bool = False

    # @intent:responsibility ニーモニックとオペランドを結合したアセンブリ表記を返します。
    @property
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {','.join(self.operands)}"
        return self.mnemonic

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    """
    実行に関するメタデータ（累計ステップ数、シンボル情報など）を記録するデータクラス。
    """
    step_count: int
    symbol_info: Optional[str] = None # 例: "main_loop: JP $1234"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    ある一時点における、CPUとバスの状態を記録した不変のデータ構造。
    stateは生成時に複製されるため、以降のCPU実行の影響を受けません。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)

    # @intent:responsibility このステップで書き込まれたアドレスの一覧を返します。
    def written_addresses(self) -> List[int]:
        return [a.address for a in self.bus_activity if a.access_type == BusAccessType.WRITE]
