# lr35902_tracer/loader/loader.py
"""
コードローダーモジュール。
生のROMイメージ（カートリッジダンプ）と Intel HEX 形式のロードをサポートします。

いずれのローダーも Bus.load を経由して書き込むため、ROM領域も初期化できます。
"""
import logging
import os

from lr35902_tracer.transport.bus import Bus
from lr35902_tracer.common.errors import LoaderError

logger = logging.getLogger(__name__)

ADDRESS_SPACE_SIZE = 0x10000


class BinaryLoader:
    """
    生のバイナリイメージをbase番地から順に配置するローダー。
    """
    # @intent:pre-condition イメージはbase番地から0xFFFFまでに収まる必要があります。
    def load_binary(self, file_path: str, bus: Bus, base: int = 0x0000) -> int:
        with open(file_path, 'rb') as f:
            data = f.read()

        if not 0 <= base < ADDRESS_SPACE_SIZE:
            raise LoaderError(f"Base address {base:#x} is outside the 16-bit address space")
        if base + len(data) > ADDRESS_SPACE_SIZE:
            raise LoaderError(
                f"Image {os.path.basename(file_path)} ({len(data)} bytes) does not fit at {base:#06x}"
            )

        for offset, byte_data in enumerate(data):
            bus.load(base + offset, byte_data)
        logger.info("Loaded %d bytes from %s at %#06x", len(data), file_path, base)
        return len(data)


class IntelHexLoader:
    """
    Intel HEX形式のファイルを解析し、データをバスにロードするローダー。
    """
    def load_intel_hex(self, file_path: str, bus: Bus) -> int:
        current_extended_address = 0x0000
        loaded = 0

        with open(file_path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or not line.startswith(':'):
                    continue

                comment_start = line.find(';')
                if comment_start != -1:
                    line = line[:comment_start].strip()

                if len(line) < 11:
                    raise LoaderError(f"Invalid Intel HEX record format on line {line_num}: Too short - {line}")

                try:
                    data_length = int(line[1:3], 16)
                    address_field = int(line[3:7], 16)
                    record_type = int(line[7:9], 16)
                    data_part_str = line[9:-2]
                    checksum_field = int(line[-2:], 16)
                    data = [int(data_part_str[i*2:(i*2)+2], 16) for i in range(len(data_part_str) // 2)]
                except ValueError as e:
                    raise LoaderError(f"Error parsing Intel HEX line {line_num}: {line} - {e}") from e

                if len(data_part_str) != data_length * 2:
                    raise LoaderError(f"Data length mismatch on line {line_num}")

                checksum_sum = data_length + (address_field >> 8) + (address_field & 0xFF) + record_type + sum(data)
                calculated_checksum = (~checksum_sum + 1) & 0xFF
                if calculated_checksum != checksum_field:
                    raise LoaderError(
                        f"Checksum mismatch on line {line_num}: "
                        f"Calculated {calculated_checksum:02X}, Expected {checksum_field:02X}"
                    )

                if record_type == 0x00:
                    load_address = current_extended_address + address_field
                    if load_address + data_length > ADDRESS_SPACE_SIZE:
                        raise LoaderError(f"Record on line {line_num} exceeds the 16-bit address space")
                    for i, byte_data in enumerate(data):
                        bus.load(load_address + i, byte_data)
                    loaded += data_length
                elif record_type == 0x01:
                    break
                elif record_type in (0x02, 0x04):
                    if data_length != 2:
                        raise LoaderError(f"Extended address record on line {line_num} must carry 2 data bytes")
                    base_value = (data[0] << 8) | data[1]
                    current_extended_address = base_value << (4 if record_type == 0x02 else 16)
                elif record_type in (0x03, 0x05):
                    # 開始アドレスレコード。実行開始位置は構成ファイルのinitial_stateで与える
                    pass
                else:
                    raise LoaderError(f"Unknown Intel HEX record type {record_type:02X} on line {line_num}")

        logger.info("Loaded %d bytes from %s", loaded, file_path)
        return loaded


# @intent:responsibility ファイル拡張子からローダーを選択してイメージをロードします。
def load_image(file_path: str, bus: Bus, base: int = 0x0000) -> int:
    if file_path.lower().endswith(('.hex', '.ihx')):
        return IntelHexLoader().load_intel_hex(file_path, bus)
    return BinaryLoader().load_binary(file_path, bus, base)
