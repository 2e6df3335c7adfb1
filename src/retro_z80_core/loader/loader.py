# retro_z80_core/loader/loader.py
"""
プログラムイメージのローダーモジュール。
Intel HEX 形式および生バイナリ形式のロードをサポートします。
"""
import logging
from pathlib import Path
from typing import Union

from retro_z80_core.transport.memory import Memory

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

class IntelHexLoader:
    """
    Intel HEX形式のファイルを解析し、データをメモリにロードするローダー。
    レコードタイプ 00 (データ), 01 (終了), 02 (拡張セグメントアドレス), 04 (拡張リニアアドレス) を解釈し、
    03/05 (開始アドレス) は無視します。
    """
    # @intent:responsibility Intel HEXファイルを読み込み、メモリへ書き込みます。書き込んだバイト数を返します。
    # @intent:pre-condition 不正な行はその行番号を含むValueErrorになります。ファイルが無ければFileNotFoundErrorがそのまま伝播します。
    def load_intel_hex(self, file_path: PathLike, memory: Memory) -> int:
        base_address = 0x0000
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
                    raise ValueError(f"Invalid Intel HEX record format on line {line_num}: Too short - {line}")

                try:
                    data_length = int(line[1:3], 16)
                    address_field = int(line[3:7], 16)
                    record_type = int(line[7:9], 16)
                    data = bytes.fromhex(line[9:-2])
                    checksum_field = int(line[-2:], 16)
                except ValueError as e:
                    raise ValueError(f"Error parsing Intel HEX line {line_num}: {line} - {e}") from e

                if len(data) != data_length:
                    raise ValueError(f"Data length mismatch on line {line_num}")

                checksum_sum = data_length + (address_field >> 8) + (address_field & 0xFF) + record_type + sum(data)
                calculated_checksum = (-checksum_sum) & 0xFF
                if calculated_checksum != checksum_field:
                    raise ValueError(
                        f"Checksum mismatch on line {line_num}: "
                        f"Calculated {calculated_checksum:02X}, Expected {checksum_field:02X}"
                    )

                if record_type == 0x00:
                    memory.load(base_address + address_field, data)
                    loaded += data_length
                elif record_type == 0x01:
                    break
                elif record_type == 0x02:
                    base_address = int.from_bytes(data, "big") << 4
                elif record_type == 0x04:
                    base_address = int.from_bytes(data, "big") << 16
                elif record_type in (0x03, 0x05):
                    pass
                else:
                    raise ValueError(f"Unknown Intel HEX record type {record_type:02X} on line {line_num}")

        logger.info("Loaded %d bytes from Intel HEX file %s", loaded, file_path)
        return loaded

class BinaryLoader:
    """
    生のバイナリイメージを指定アドレスからメモリにロードするローダー。
    """
    # @intent:responsibility バイナリファイルの内容をそのままメモリへ書き込みます。書き込んだバイト数を返します。
    def load_binary(self, file_path: PathLike, memory: Memory, address: int = 0x0000) -> int:
        data = Path(file_path).read_bytes()
        memory.load(address, data)
        logger.info("Loaded %d bytes from binary file %s at $%04X", len(data), file_path, address)
        return len(data)
