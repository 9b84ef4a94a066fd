"""
パッケージ共通の例外階層。

演算は常にラップアラウンドで完結するため、実行時に発生しうる構造化エラーは
デコード失敗（不正オペコード）と、設定・ロード時の入力不正に限られます。
"""


# @intent:responsibility パッケージ内で送出される全ての例外の基底クラス。
class Lr35902Error(Exception):
    pass


# @intent:responsibility デコードテーブルに存在しないオペコードを検出したことを表します。
# @intent:post-condition 送出時点でCPUの状態（PCを含む）は一切変更されていません。
class IllegalOpcodeError(Lr35902Error):
    """
    プライマリまたはCBプレフィックス側のテーブルに定義のないオペコード。
    ホストはこの例外を受け取り、停止・NOP扱い・ログ出力後の続行などを選択します。
    """
    def __init__(self, opcode: int, prefixed: bool, address: int):
        self.opcode = opcode
        self.prefixed = prefixed
        self.address = address
        prefix = "CB " if prefixed else ""
        super().__init__(f"Illegal opcode {prefix}{opcode:02X} at {address:#06x}")


class ConfigError(Lr35902Error, ValueError):
    """システム構成ファイルの内容が不正な場合に送出されます。"""


class LoaderError(Lr35902Error, ValueError):
    """プログラムイメージの形式が不正な場合に送出されます。"""
