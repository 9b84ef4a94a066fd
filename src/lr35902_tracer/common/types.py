"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスや列挙型を定義します。
"""
from enum import Enum
from typing import Dict

# @intent:data_structure シンボル名とアドレスをマッピングする辞書の型エイリアス。
# Loader, CPU, Debuggerなど複数のレイヤーで共通して使用されます。
SymbolMap = Dict[str, int]

# @intent:data_structure 不正オペコード検出時にホストが選択する回復ポリシー。
class IllegalOpcodePolicy(Enum):
    RAISE = "raise"  # 例外をそのまま呼び出し元へ伝播
    HALT = "halt"    # 実行を停止し、停止理由として報告
    NOP = "nop"      # 警告を記録し、そのバイトを読み飛ばして続行
