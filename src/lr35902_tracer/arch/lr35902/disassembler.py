"""
LR35902逆アセンブラモジュール。

メモリ上のバイナリデータを解析し、LR35902アセンブリ言語のニーモニック形式に変換します。
"""
from typing import List, Tuple

from lr35902_tracer.transport.bus import MemoryBus
from lr35902_tracer.arch.lr35902.instructions import PREFIX_BYTE, decode, build_operation


# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、アドレスとニーモニックのリストを返します。
def disassemble(bus: MemoryBus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリ上のデータを読み取り、(アドレス, 16進ダンプ, ニーモニック) のタプルのリストを返します。
    未定義のオペコードは1バイトのデータ `DB $xx` として出力し、次のバイトから解析を続けます。
    読み取りは全てpeekで行うため、バスのアクティビティログには影響しません。
    """
    result = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr and current_addr <= 0xFFFF:
        opcode = bus.peek(current_addr)
        if opcode == PREFIX_BYTE:
            instruction = decode(bus.peek((current_addr + 1) & 0xFFFF), prefixed=True)
        else:
            instruction = decode(opcode)

        if instruction is None:
            result.append((current_addr, f"{opcode:02X}", f"DB ${opcode:02X}"))
            current_addr += 1
            continue

        operation = build_operation(bus, current_addr, instruction)
        hex_bytes = operation.opcode_hex.split() + [f"{b:02X}" for b in operation.operand_bytes]
        result.append((current_addr, " ".join(hex_bytes), operation.text))
        current_addr += operation.length

    return result
