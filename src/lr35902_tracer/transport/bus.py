# lr35902_tracer/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、16ビットのメモリアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。

CPUコアから見たバスは全域で定義された(total)インターフェースです。
どのデバイスにもマップされていないアドレスの読み込みは0xFFを返し、
書き込みは破棄されます。CPUコアがメモリエラーを扱う必要はありません。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFF
UNMAPPED_VALUE = 0xFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    書き込みの場合、previous_dataに書き込み前の値を保持し、デバッガのステップバックに用います。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None

# @intent:responsibility CPUコアが消費するメモリ協調者の最小インターフェースを定義します。
# @intent:pre-condition 実装は0x0000-0xFFFFの全アドレスに対して例外を送出してはいけません。
class MemoryBus(ABC):
    """
    CPUコアとメモリ（ROM/RAM/メモリマップドI/O）の境界。
    16ビット値のアクセスは常に2回のバイトアクセス（リトルエンディアン）として行われます。
    """
    @abstractmethod
    def read_byte(self, address: int) -> int:
        pass

    @abstractmethod
    def write_byte(self, address: int, value: int) -> None:
        pass

    # @intent:responsibility 副作用（アクセスログ）なしで値を読み出します。
    # @intent:rationale トレース用のデコード記録や逆アセンブラが、実行中のバスアクティビティを汚さないようにするため。
    def peek(self, address: int) -> int:
        return self.read_byte(address)

    # @intent:responsibility 直前の呼び出し以降に記録されたアクセスを返し、記録をクリアします。記録しない実装は空リストを返します。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        return []

# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはreadとwriteのインターフェースを実装する必要があります。
    """
    # @intent:responsibility 指定されたオフセットから8bitのデータを読み出す責務を負います。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたオフセットに8bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    ワークRAMやテスト用のフラットメモリとして使うRAMデバイス。
    """
    # @intent:pre-condition sizeは正の整数、initial_valueは8bit値である必要があります。
    def __init__(self, size: int, initial_value: int = 0x00):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        if not 0 <= initial_value <= 0xFF:
            raise ValueError(f"Initial value {initial_value} is not an 8-bit value.")
        self._memory = bytearray([initial_value]) * size
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size

# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    カートリッジROMなどの読み込み専用メモリデバイス。
    CPUからの書き込みは無視され、警告がログ出力されます。
    初期化用の load_data メソッド経由では書き込み可能です。
    """
    # @intent:rationale 実機ではROMへの書き込みはMBCのレジスタ操作として解釈されるが、
    #                  バンク切り替えはこのコアの外側の責務であるため、ここでは無視する。
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        logger.warning("Ignored write of %#04x to ROM offset %#06x", data, address)

    # @intent:responsibility ROMの内容を初期化するためのバックドアメソッドです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus(MemoryBus):
    """
    メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    バス上で行われた全てのメモリアクセスを記録する機能を提供します。
    """
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []

    def _log_access(self, access: BusAccess) -> None:
        self._bus_activity_log.append(access)

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        """
        現在のバスアクティビティログを返し、内部ログをクリアします。
        """
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition 0 <= start_address <= end_address <= 0xFFFF であり、deviceはDeviceのインスタンスである必要があります。
    # @intent:rationale アドレス範囲の重複チェックは行いません。先に登録されたデバイスが優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        """
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within 0x0000-0xFFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:responsibility 指定されたアドレスに対応するデバイスとオフセットを検索します。
    # @intent:post-condition デバイスが見つからなかった場合はNoneを返します。
    def _find_device(self, address: int) -> Optional[Tuple[Device, int]]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        return None

    def _read_device(self, address: int) -> int:
        found = self._find_device(address)
        if found is None:
            logger.debug("Read from unmapped address %#06x", address)
            return UNMAPPED_VALUE
        device, offset = found
        return device.read(offset)

    # @intent:responsibility 指定されたアドレスから8bitのデータを読み出します。
    def read_byte(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        アクセスはログに記録されます。
        """
        address &= ADDRESS_MASK
        data = self._read_device(address)
        self._log_access(BusAccess(address, data, BusAccessType.READ))
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        return self._read_device(address & ADDRESS_MASK)

    # @intent:responsibility 指定されたアドレスに8bitのデータを書き込みます。
    def write_byte(self, address: int, value: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        ROM領域への書き込みはROMデバイス側で無視されます。
        """
        address &= ADDRESS_MASK
        value &= 0xFF
        previous = self._read_device(address)
        found = self._find_device(address)
        if found is None:
            logger.debug("Dropped write of %#04x to unmapped address %#06x", value, address)
        else:
            device, offset = found
            device.write(offset, value)
        self._log_access(BusAccess(address, value, BusAccessType.WRITE, previous_data=previous))

    # @intent:responsibility ローダーやデバッガがROMを含む任意の領域を初期化・復元するための書き込み口です。
    # @intent:rationale CPUからの書き込み(write_byte)とは区別し、ROMのバックドアを経由させる。ログには記録しない。
    def load(self, address: int, value: int) -> None:
        found = self._find_device(address & ADDRESS_MASK)
        if found is None:
            logger.debug("Dropped load of %#04x to unmapped address %#06x", value, address)
            return
        device, offset = found
        if isinstance(device, ROM):
            device.load_data(offset, value & 0xFF)
        else:
            device.write(offset, value & 0xFF)
