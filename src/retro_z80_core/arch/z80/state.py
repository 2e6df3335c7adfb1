# retro_z80_core/arch/z80/state.py
"""
Z80 CPU固有の状態定義（レジスタファイル）。

このモジュールは、Z80 CPUのレジスタ、フラグ、裏レジスタ、およびバンク選択・停止状態を
保持するデータ構造を定義します。8ビットの表/裏レジスタは1本のbytearrayに格納され、
バンク選択フラグ（alternate）によってA/F/B/C/D/E/H/Lのアクセス先が切り替わります。
"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict

from retro_z80_core.core.state import CpuState

# @intent:data_structure ホストから添字でアクセスする全レジスタセルの列挙。
# @intent:rationale 並び順は固定であり、スナップショットの平坦なシリアライズ順序も兼ねます。
class Register(IntEnum):
    A = 0
    F = 1
    B = 2
    C = 3
    D = 4
    E = 5
    H = 6
    L = 7
    A_ = 8  # A'
    F_ = 9
    B_ = 10
    C_ = 11
    D_ = 12
    E_ = 13
    H_ = 14
    L_ = 15
    I = 16
    R = 17
    IXH = 18
    IXL = 19
    IYH = 20
    IYL = 21
    SPH = 22
    SPL = 23
    PCH = 24
    PCL = 25

# Z80フラグビットマスク
# @intent:constant Z80フラグレジスタ内の各フラグビットの位置を定義します。
S_FLAG = 0b10000000  # Sign (符号)
Z_FLAG = 0b01000000  # Zero (ゼロ)
F5_FLAG = 0b00100000 # 未公開ビット5
H_FLAG = 0b00010000  # Half Carry (ハーフキャリー)
F3_FLAG = 0b00001000 # 未公開ビット3
PV_FLAG = 0b00000100 # Parity/Overflow (パリティ/オーバーフロー)
N_FLAG = 0b00000010  # Add/Subtract (加減算)
C_FLAG = 0b00000001  # Carry (キャリー)

# 1バンク当たりの8ビットセル数 (A, F, B, C, D, E, H, L)
BANK_SIZE = 8

# @intent:constant スナップショットにおけるレジスタブロックのバイト長（26セル + 状態バイト）。
REGISTER_BLOCK_SIZE = len(Register) + 1

_STATUS_HALTED = 0x01
_STATUS_ALTERNATE = 0x02
_STATUS_IFF1 = 0x04
_STATUS_IFF2 = 0x08


# @intent:utility_function バンク選択を考慮した8ビットセルのプロパティを生成します。
def _bank_cell(index: int) -> property:
    def getter(self: "Z80CpuState") -> int:
        return self.bank[self._bank_offset() + index]

    def setter(self: "Z80CpuState", value: int) -> None:
        _check_byte(value)
        self.bank[self._bank_offset() + index] = value

    return property(getter, setter)

# @intent:utility_function 常に裏バンクを指す8ビットセルのプロパティを生成します。
def _shadow_cell(index: int) -> property:
    def getter(self: "Z80CpuState") -> int:
        return self.bank[BANK_SIZE + index]

    def setter(self: "Z80CpuState", value: int) -> None:
        _check_byte(value)
        self.bank[BANK_SIZE + index] = value

    return property(getter, setter)

# @intent:utility_function 2つの8ビットセルを上位・下位とする16ビットペアのプロパティを生成します。
def _pair(high: str, low: str) -> property:
    def getter(self: "Z80CpuState") -> int:
        return (getattr(self, high) << 8) | getattr(self, low)

    def setter(self: "Z80CpuState", value: int) -> None:
        setattr(self, high, (value >> 8) & 0xFF)
        setattr(self, low, value & 0xFF)

    return property(getter, setter)

# @intent:utility_function 16ビットレジスタの上位バイトを8ビットセルとして見せるプロパティを生成します。
def _high_byte(name: str) -> property:
    def getter(self: "Z80CpuState") -> int:
        return (getattr(self, name) >> 8) & 0xFF

    def setter(self: "Z80CpuState", value: int) -> None:
        _check_byte(value)
        setattr(self, name, (getattr(self, name) & 0x00FF) | (value << 8))

    return property(getter, setter)

# @intent:utility_function 16ビットレジスタの下位バイトを8ビットセルとして見せるプロパティを生成します。
def _low_byte(name: str) -> property:
    def getter(self: "Z80CpuState") -> int:
        return getattr(self, name) & 0xFF

    def setter(self: "Z80CpuState", value: int) -> None:
        _check_byte(value)
        setattr(self, name, (getattr(self, name) & 0xFF00) | value)

    return property(getter, setter)

# @intent:utility_function Fレジスタの1ビットをboolとして見せるプロパティを生成します。
def _flag(mask: int) -> property:
    def getter(self: "Z80CpuState") -> bool:
        return (self.f & mask) != 0

    def setter(self: "Z80CpuState", value: bool) -> None:
        if value:
            self.f |= mask
        else:
            self.f &= ~mask & 0xFF

    return property(getter, setter)

def _check_byte(value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Register value {value} is not an 8-bit value.")

def _check_word(value: int) -> None:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Register value {value} is not a 16-bit value.")

_BYTE_FIELDS = frozenset(("i", "r"))
_WORD_FIELDS = frozenset(("pc", "sp", "ix", "iy"))


_REGISTER_ATTRIBUTES: Dict[Register, str] = {
    Register.A: "a", Register.F: "f", Register.B: "b", Register.C: "c",
    Register.D: "d", Register.E: "e", Register.H: "h", Register.L: "l",
    Register.A_: "a_", Register.F_: "f_", Register.B_: "b_", Register.C_: "c_",
    Register.D_: "d_", Register.E_: "e_", Register.H_: "h_", Register.L_: "l_",
    Register.I: "i", Register.R: "r",
    Register.IXH: "ixh", Register.IXL: "ixl", Register.IYH: "iyh", Register.IYL: "iyl",
    Register.SPH: "sph", Register.SPL: "spl", Register.PCH: "pch", Register.PCL: "pcl",
}


# @intent:responsibility Z80 CPUの全てのレジスタとフラグの状態を保持します。
@dataclass
class Z80CpuState(CpuState):
    """
    Z80 CPUのレジスタ状態を保持するデータクラス。
    CpuStateを拡張し、Z80固有のレジスタを含みます。

    `bank`の先頭8バイトが表レジスタ (A F B C D E H L)、後半8バイトが裏レジスタです。
    `alternate`が真の間、a/f/b/c/d/e/h/l（およびaf/bc/de/hl）は裏レジスタを読み書きします。
    a_/f_/.../l_ は常に裏レジスタそのものを指します。
    """
    bank: bytearray = field(default_factory=lambda: bytearray(2 * BANK_SIZE))

    # Index registers
    ix: int = 0x0000
    iy: int = 0x0000

    # Special purpose registers
    i: int = 0x00  # Interrupt Vector
    r: int = 0x00  # Refresh Register

    alternate: bool = False # バンク選択フラグ
    iff1: bool = False # 割り込み許可フリップフロップ（状態のみ保持）
    iff2: bool = False

    # @intent:invariant 全てのレジスタセルは常に8ビット、16ビットレジスタは常に16ビットの範囲に収まります。
    def __setattr__(self, name, value):
        if name in _BYTE_FIELDS:
            _check_byte(value)
        elif name in _WORD_FIELDS:
            _check_word(value)
        super().__setattr__(name, value)

    # @intent:rationale バンク選択は1命令の中で変化しない（変化させる命令が存在しない）ため、
    #                  アクセスの都度参照しても命令内の一貫性は保たれます。
    def _bank_offset(self) -> int:
        return BANK_SIZE if self.alternate else 0

    # Main registers (bank-selected)
    a = _bank_cell(0)
    f = _bank_cell(1)  # Flag register
    b = _bank_cell(2)
    c = _bank_cell(3)
    d = _bank_cell(4)
    e = _bank_cell(5)
    h = _bank_cell(6)
    l = _bank_cell(7)

    # Alternate registers
    a_ = _shadow_cell(0)
    f_ = _shadow_cell(1)
    b_ = _shadow_cell(2)
    c_ = _shadow_cell(3)
    d_ = _shadow_cell(4)
    e_ = _shadow_cell(5)
    h_ = _shadow_cell(6)
    l_ = _shadow_cell(7)

    # 16-bit register pairs
    af = _pair("a", "f")
    bc = _pair("b", "c")
    de = _pair("d", "e")
    hl = _pair("h", "l")
    af_ = _pair("a_", "f_")
    bc_ = _pair("b_", "c_")
    de_ = _pair("d_", "e_")
    hl_ = _pair("h_", "l_")

    # 16-bit registers as 8-bit halves
    ixh = _high_byte("ix")
    ixl = _low_byte("ix")
    iyh = _high_byte("iy")
    iyl = _low_byte("iy")
    sph = _high_byte("sp")
    spl = _low_byte("sp")
    pch = _high_byte("pc")
    pcl = _low_byte("pc")

    # @intent:accessor Z80のFレジスタの各フラグビットにアクセスするためのプロパティを提供します。
    # @intent:rationale フラグを直接ビット操作する代わりに、分かりやすいプロパティとして提供することで、コードの可読性と保守性を高めます。
    flag_s = _flag(S_FLAG)
    flag_z = _flag(Z_FLAG)
    flag_5 = _flag(F5_FLAG)
    flag_h = _flag(H_FLAG)
    flag_3 = _flag(F3_FLAG)
    flag_pv = _flag(PV_FLAG)
    flag_n = _flag(N_FLAG)
    flag_c = _flag(C_FLAG)

    # @intent:responsibility 列挙値で指定されたレジスタセルの値を返します。
    def get_register(self, register: Register) -> int:
        return getattr(self, _REGISTER_ATTRIBUTES[register])

    # @intent:responsibility 列挙値で指定されたレジスタセルに値を設定します。
    # @intent:pre-condition valueは8bit値である必要があります。
    def set_register(self, register: Register, value: int) -> None:
        _check_byte(value)
        setattr(self, _REGISTER_ATTRIBUTES[register], value)

    # @intent:responsibility EX AF,AF' の効果として、表と裏のA/Fセルを交換します。
    def exchange_af(self) -> None:
        self.bank[0:2], self.bank[BANK_SIZE:BANK_SIZE + 2] = (
            self.bank[BANK_SIZE:BANK_SIZE + 2], self.bank[0:2]
        )

    # @intent:responsibility EXX の効果として、表と裏のB/C/D/E/H/Lセルを交換します。
    def exchange_main(self) -> None:
        self.bank[2:BANK_SIZE], self.bank[BANK_SIZE + 2:] = (
            self.bank[BANK_SIZE + 2:], self.bank[2:BANK_SIZE]
        )

    # @intent:responsibility レジスタファイルを平坦なバイト列に変換します。
    # @intent:rationale 表/裏セルはバンク選択に関係なく生の並びで書き出し、選択状態は状態バイトに含めます。
    def to_bytes(self) -> bytes:
        status = 0
        if self.halted:
            status |= _STATUS_HALTED
        if self.alternate:
            status |= _STATUS_ALTERNATE
        if self.iff1:
            status |= _STATUS_IFF1
        if self.iff2:
            status |= _STATUS_IFF2
        return bytes(self.bank) + bytes([
            self.i, self.r,
            self.ixh, self.ixl, self.iyh, self.iyl,
            self.sph, self.spl, self.pch, self.pcl,
            status,
        ])

    # @intent:responsibility to_bytes()の出力からレジスタファイルを復元します。
    @classmethod
    def from_bytes(cls, data: bytes) -> "Z80CpuState":
        if len(data) != REGISTER_BLOCK_SIZE:
            raise ValueError(
                f"Register block must be {REGISTER_BLOCK_SIZE} bytes, got {len(data)}."
            )
        status = data[-1]
        return cls(
            bank=bytearray(data[:2 * BANK_SIZE]),
            i=data[Register.I],
            r=data[Register.R],
            ix=(data[Register.IXH] << 8) | data[Register.IXL],
            iy=(data[Register.IYH] << 8) | data[Register.IYL],
            sp=(data[Register.SPH] << 8) | data[Register.SPL],
            pc=(data[Register.PCH] << 8) | data[Register.PCL],
            halted=bool(status & _STATUS_HALTED),
            alternate=bool(status & _STATUS_ALTERNATE),
            iff1=bool(status & _STATUS_IFF1),
            iff2=bool(status & _STATUS_IFF2),
        )
