# retro_z80_core/transport/memory.py
"""
Transport Layer (線形メモリ)

このモジュールは、コアとホストが共有する単一の線形バイト配列を提供します。
アドレスは常に構成サイズでの剰余として扱われ、範囲外アクセスによる例外は発生しません。
"""
from typing import Iterable

# @intent:constant 既定のメモリサイズ。16ビット符号なし整数で表せる最大値。
DEFAULT_MEMORY_SIZE = 0xFFFF

# @intent:responsibility 固定サイズの線形メモリ領域を提供します。
class Memory:
    """
    ゼロ初期化された固定サイズのバイト配列。
    read/writeのアドレスはサイズでの剰余を取るため、全アドレスに対して全域的に動作します。
    """
    # @intent:responsibility 指定されたサイズのメモリ領域を初期化します。
    # @intent:pre-condition sizeは正の整数である必要があります。記憶領域の確保前に検証します。
    def __init__(self, size: int = DEFAULT_MEMORY_SIZE):
        if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
            raise ValueError(f"Memory size must be a positive integer, got {size!r}.")
        self._size = size
        self._memory = bytearray(size)

    # @intent:responsibility 指定されたアドレスから8bitのデータを読み出します。
    def read(self, address: int) -> int:
        return self._memory[address % self._size]

    # @intent:responsibility 指定されたアドレスに8bitのデータを書き込みます。
    # @intent:pre-condition データは8bit値である必要があります。
    def write(self, address: int, data: int) -> None:
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address % self._size] = data

    # @intent:responsibility プログラムイメージなどのバイト列を連続して書き込みます。
    def load(self, address: int, data: Iterable[int]) -> None:
        """
        指定アドレスから順にバイト列を書き込みます。末尾を越えた分は先頭へ折り返します。
        """
        for offset, value in enumerate(data):
            self.write(address + offset, value)

    # @intent:responsibility 指定範囲の内容をバイト列として返します（ホストの検査用）。
    def dump(self, start: int = 0, length: int = -1) -> bytes:
        if length < 0:
            length = self._size
        if start == 0 and length == self._size:
            return bytes(self._memory)
        return bytes(self.read(start + offset) for offset in range(length))

    # @intent:responsibility メモリのサイズを返します。
    def get_size(self) -> int:
        return self._size
