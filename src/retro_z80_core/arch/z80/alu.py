"""
Z80 ALU (算術論理演算ユニット) およびフラグ操作ユーティリティ。

演算結果に基づいた正確なフラグ（S, Z, F5, H, F3, P/V, N, C）の計算と更新を担当します。
各命令クラスが書き込むフラグビットは FLAG_POLICY に一元化されており、
マスク外のビットは一切書き込まれません（直前の値がそのまま残ります）。
"""
from typing import Dict

from retro_z80_core.arch.z80.state import (
    Z80CpuState, S_FLAG, Z_FLAG, F5_FLAG, H_FLAG, F3_FLAG, PV_FLAG, N_FLAG, C_FLAG
)

ALL_FLAGS = 0xFF
XY_FLAGS = F5_FLAG | F3_FLAG

# @intent:data_structure 命令クラスごとに「書き込む」フラグビットのマスク。
# @intent:rationale マスク外のビットは保持される。クリアされるビットはマスク内で0を書き込むことで表現する。
FLAG_POLICY: Dict[str, int] = {
    "ADD8": ALL_FLAGS,            # ADD/ADC
    "SUB8": ALL_FLAGS,            # SUB/SBC/NEG
    "CP": ALL_FLAGS,              # CP (F3/F5はオペランドから)
    "LOGIC": ALL_FLAGS,           # AND/XOR/OR
    "INC_DEC8": ALL_FLAGS & ~C_FLAG,
    "ADD16": H_FLAG | N_FLAG | C_FLAG | XY_FLAGS,
    "ADC16": ALL_FLAGS,
    "SBC16": ALL_FLAGS,
    "ROTATE_A": H_FLAG | N_FLAG | C_FLAG | XY_FLAGS,  # RLCA/RRCA/RLA/RRA
    "ROTATE_SHIFT": ALL_FLAGS,    # CBプレフィックスのローテート/シフト
    "BIT": ALL_FLAGS & ~C_FLAG,
    "DAA": ALL_FLAGS & ~N_FLAG,
    "CPL": H_FLAG | N_FLAG | XY_FLAGS,
    "SCF_CCF": H_FLAG | N_FLAG | C_FLAG | XY_FLAGS,
    "LD_A_IR": ALL_FLAGS & ~C_FLAG,
    "RLD_RRD": ALL_FLAGS & ~C_FLAG,
    "BLOCK_LD": H_FLAG | PV_FLAG | N_FLAG | XY_FLAGS,  # LDI/LDD/LDIR/LDDR
    "BLOCK_CP": ALL_FLAGS & ~C_FLAG,  # CPI/CPD/CPIR/CPDR
}

# ローテート/シフト操作の並び (CBプレフィックスのbit5-3に対応)
SHIFT_OPERATIONS = ("RLC", "RRC", "RL", "RR", "SLA", "SRA", "SLL", "SRL")

# @intent:responsibility 指定されたバイト値のパリティ（ビット1の数が偶数ならTrue）を計算します。
def calculate_parity(val: int) -> bool:
    """8ビット値のパリティ（偶数ならTrue）を計算します。"""
    val ^= val >> 4
    val ^= val >> 2
    val ^= val >> 1
    return (val & 1) == 0

# @intent:utility_function 結果バイトからS, Z, F5, F3を求めます。
def _sz53(res8: int) -> int:
    flags = res8 & (S_FLAG | XY_FLAGS)
    if res8 == 0:
        flags |= Z_FLAG
    return flags

# @intent:responsibility 計算済みのフラグ値を、命令クラスのマスク内のビットだけFレジスタへ書き込みます。
def commit_flags(state: Z80CpuState, flags: int, policy: str) -> None:
    mask = FLAG_POLICY[policy]
    state.f = (state.f & ~mask & 0xFF) | (flags & mask)

# @intent:responsibility 8ビット加算の結果に基づいて全フラグを更新します。
def update_flags_add8(state: Z80CpuState, val1: int, val2: int, result: int, carry_in: int = 0) -> None:
    """ADD/ADC命令のフラグを更新します。"""
    res8 = result & 0xFF
    flags = _sz53(res8)
    # Half Carry: (val1 & 0x0F) + (val2 & 0x0F) + carry_in > 0x0F
    if ((val1 & 0x0F) + (val2 & 0x0F) + carry_in) > 0x0F:
        flags |= H_FLAG
    # Overflow: 同符号の加算で結果の符号が変わった場合
    if (val1 ^ res8) & (val2 ^ res8) & 0x80:
        flags |= PV_FLAG
    if result > 0xFF:
        flags |= C_FLAG
    commit_flags(state, flags, "ADD8")

# @intent:responsibility 8ビット減算の結果に基づいて全フラグを更新します。
def update_flags_sub8(state: Z80CpuState, val1: int, val2: int, result: int, borrow_in: int = 0) -> None:
    """SUB/SBC/NEG命令のフラグを更新します。"""
    res8 = result & 0xFF
    flags = _sz53(res8) | N_FLAG
    # Half Carry (Borrow): (val1 & 0x0F) - (val2 & 0x0F) - borrow_in < 0
    if ((val1 & 0x0F) - (val2 & 0x0F) - borrow_in) < 0:
        flags |= H_FLAG
    # Overflow: 異符号の減算で結果の符号が第一オペランドと異なる場合
    if (val1 ^ val2) & (val1 ^ res8) & 0x80:
        flags |= PV_FLAG
    if result < 0:
        flags |= C_FLAG
    commit_flags(state, flags, "SUB8")

# @intent:responsibility CP命令のフラグを更新します。結果は格納されません。
# @intent:rationale F3/F5は減算結果ではなく比較対象オペランドのビットを写します。
def update_flags_cp8(state: Z80CpuState, val1: int, val2: int) -> None:
    result = val1 - val2
    res8 = result & 0xFF
    flags = (res8 & S_FLAG) | (val2 & XY_FLAGS) | N_FLAG
    if res8 == 0:
        flags |= Z_FLAG
    if (val1 & 0x0F) < (val2 & 0x0F):
        flags |= H_FLAG
    if (val1 ^ val2) & (val1 ^ res8) & 0x80:
        flags |= PV_FLAG
    if result < 0:
        flags |= C_FLAG
    commit_flags(state, flags, "CP")

# @intent:responsibility 8ビット論理演算の結果に基づいてフラグを更新します。
def update_flags_logic8(state: Z80CpuState, result: int, h_flag: bool = False) -> None:
    """AND/OR/XOR命令のフラグを更新します。"""
    res8 = result & 0xFF
    flags = _sz53(res8)
    if h_flag: # ANDならTrue, OR/XORならFalse
        flags |= H_FLAG
    if calculate_parity(res8):
        flags |= PV_FLAG
    commit_flags(state, flags, "LOGIC")

# @intent:responsibility インクリメント/デクリメント命令のフラグを更新します（Cフラグは変化しません）。
def update_flags_inc_dec8(state: Z80CpuState, val: int, result: int, is_inc: bool) -> None:
    """INC/DEC命令のフラグを更新します。Cフラグは保持されます。"""
    flags = _sz53(result & 0xFF)
    if is_inc:
        if (val & 0x0F) == 0x0F:
            flags |= H_FLAG
        if val == 0x7F: # 127 -> -128
            flags |= PV_FLAG
    else:
        flags |= N_FLAG
        if (val & 0x0F) == 0x00:
            flags |= H_FLAG
        if val == 0x80: # -128 -> 127
            flags |= PV_FLAG
    commit_flags(state, flags, "INC_DEC8")

# @intent:responsibility 16ビット加算の結果に基づいてフラグ（H, N, C, F3, F5）を更新します。
# @intent:rationale Z, S, P/Vフラグは影響を受けないことに注意してください。
def update_flags_add16(state: Z80CpuState, val1: int, val2: int, result: int) -> None:
    """ADD HL,ss / ADD IX,pp / ADD IY,rr 命令のフラグを更新します。"""
    flags = (result >> 8) & XY_FLAGS
    # Half Carry: Bit 11から12へのキャリー
    if ((val1 & 0x0FFF) + (val2 & 0x0FFF)) > 0x0FFF:
        flags |= H_FLAG
    if result > 0xFFFF:
        flags |= C_FLAG
    commit_flags(state, flags, "ADD16")

def _sz53_16(res16: int) -> int:
    flags = (res16 >> 8) & (S_FLAG | XY_FLAGS)
    if res16 == 0:
        flags |= Z_FLAG
    return flags

# @intent:responsibility ADC HL,ss 命令の結果に基づいて全フラグを更新します。
def update_flags_adc16(state: Z80CpuState, val1: int, val2: int, result: int, carry_in: int) -> None:
    res16 = result & 0xFFFF
    flags = _sz53_16(res16)
    if ((val1 & 0x0FFF) + (val2 & 0x0FFF) + carry_in) > 0x0FFF:
        flags |= H_FLAG
    if (val1 ^ res16) & (val2 ^ res16) & 0x8000:
        flags |= PV_FLAG
    if result > 0xFFFF:
        flags |= C_FLAG
    commit_flags(state, flags, "ADC16")

# @intent:responsibility SBC HL,ss 命令の結果に基づいて全フラグを更新します。
def update_flags_sbc16(state: Z80CpuState, val1: int, val2: int, result: int, borrow_in: int) -> None:
    res16 = result & 0xFFFF
    flags = _sz53_16(res16) | N_FLAG
    if ((val1 & 0x0FFF) - (val2 & 0x0FFF) - borrow_in) < 0:
        flags |= H_FLAG
    if (val1 ^ val2) & (val1 ^ res16) & 0x8000:
        flags |= PV_FLAG
    if result < 0:
        flags |= C_FLAG
    commit_flags(state, flags, "SBC16")

# @intent:utility_function ローテート/シフト演算の値とキャリー出力を計算します。
def _rotate(val: int, op_index: int, carry_in: int) -> tuple:
    if op_index == 0: # RLC
        carry = val >> 7
        result = ((val << 1) | carry) & 0xFF
    elif op_index == 1: # RRC
        carry = val & 1
        result = (val >> 1) | (carry << 7)
    elif op_index == 2: # RL
        carry = val >> 7
        result = ((val << 1) | carry_in) & 0xFF
    elif op_index == 3: # RR
        carry = val & 1
        result = (val >> 1) | (carry_in << 7)
    elif op_index == 4: # SLA
        carry = val >> 7
        result = (val << 1) & 0xFF
    elif op_index == 5: # SRA
        carry = val & 1
        result = (val >> 1) | (val & 0x80)
    elif op_index == 6: # SLL (未公開: 最下位に1を入れる)
        carry = val >> 7
        result = ((val << 1) | 1) & 0xFF
    else: # SRL
        carry = val & 1
        result = val >> 1
    return result, carry

# @intent:responsibility CBプレフィックスのローテート/シフトを実行し、全フラグを更新して結果を返します。
def rotate_shift8(state: Z80CpuState, val: int, op_index: int) -> int:
    """RLC/RRC/RL/RR/SLA/SRA/SLL/SRL を計算します。"""
    result, carry = _rotate(val, op_index, 1 if state.flag_c else 0)
    flags = _sz53(result)
    if calculate_parity(result):
        flags |= PV_FLAG
    if carry:
        flags |= C_FLAG
    commit_flags(state, flags, "ROTATE_SHIFT")
    return result

# @intent:responsibility アキュムレータ専用ローテート (RLCA/RRCA/RLA/RRA) を実行します。
# @intent:rationale S, Z, P/Vは保持され、F3/F5は結果のAから写します。
def rotate_accumulator(state: Z80CpuState, op_index: int) -> None:
    result, carry = _rotate(state.a, op_index, 1 if state.flag_c else 0)
    state.a = result
    flags = result & XY_FLAGS
    if carry:
        flags |= C_FLAG
    commit_flags(state, flags, "ROTATE_A")

# @intent:responsibility BIT b,r / BIT b,(HL) 命令のフラグを更新します。
# @intent:pre-condition xy_sourceはF3/F5の写し元となるバイト（レジスタ形式は被検査値、メモリ形式は実効アドレスの上位バイト）。
def update_flags_bit(state: Z80CpuState, bit_index: int, value: int, xy_source: int) -> None:
    flags = H_FLAG | (xy_source & XY_FLAGS)
    tested = value & (1 << bit_index)
    if tested == 0:
        flags |= Z_FLAG | PV_FLAG
    elif bit_index == 7:
        flags |= S_FLAG
    commit_flags(state, flags, "BIT")

# @intent:responsibility DAA命令でアキュムレータをBCD補正します。
def decimal_adjust(state: Z80CpuState) -> None:
    a = state.a
    low = a & 0x0F
    correction = 0
    carry = state.flag_c
    if state.flag_h or low > 9:
        correction |= 0x06
    if carry or a > 0x99:
        correction |= 0x60
        carry = True
    if state.flag_n:
        half = state.flag_h and low < 6
        result = (a - correction) & 0xFF
    else:
        half = low > 9
        result = (a + correction) & 0xFF
    state.a = result
    flags = _sz53(result)
    if half:
        flags |= H_FLAG
    if calculate_parity(result):
        flags |= PV_FLAG
    if carry:
        flags |= C_FLAG
    commit_flags(state, flags, "DAA")

# @intent:responsibility CPL命令: アキュムレータを反転し、H/Nを立てます。
def complement_accumulator(state: Z80CpuState) -> None:
    state.a = ~state.a & 0xFF
    commit_flags(state, H_FLAG | N_FLAG | (state.a & XY_FLAGS), "CPL")

# @intent:responsibility SCF命令: キャリーを立て、H/Nをクリアします。
def set_carry_flag(state: Z80CpuState) -> None:
    commit_flags(state, C_FLAG | (state.a & XY_FLAGS), "SCF_CCF")

# @intent:responsibility CCF命令: キャリーを反転し、旧キャリーをHに写します。
def complement_carry_flag(state: Z80CpuState) -> None:
    flags = state.a & XY_FLAGS
    if state.flag_c:
        flags |= H_FLAG
    else:
        flags |= C_FLAG
    commit_flags(state, flags, "SCF_CCF")

# @intent:responsibility LD A,I / LD A,R 命令のフラグを更新します（P/VはIFF2の写し）。
def update_flags_ld_a_ir(state: Z80CpuState) -> None:
    flags = _sz53(state.a)
    if state.iff2:
        flags |= PV_FLAG
    commit_flags(state, flags, "LD_A_IR")

# @intent:responsibility RLD / RRD 命令後のアキュムレータに基づいてフラグを更新します。
def update_flags_rld_rrd(state: Z80CpuState) -> None:
    flags = _sz53(state.a)
    if calculate_parity(state.a):
        flags |= PV_FLAG
    commit_flags(state, flags, "RLD_RRD")

# @intent:responsibility LDI/LDD 系のフラグを更新します。BCは減算済みである必要があります。
# @intent:rationale F3/F5は (転送値 + A) のbit3/bit1 から得られます。
def update_flags_block_ld(state: Z80CpuState, value: int) -> None:
    n = (value + state.a) & 0xFF
    flags = 0
    if state.bc != 0:
        flags |= PV_FLAG
    if n & 0x08:
        flags |= F3_FLAG
    if n & 0x02:
        flags |= F5_FLAG
    commit_flags(state, flags, "BLOCK_LD")

# @intent:responsibility CPI/CPD 系のフラグを更新します。BCは減算済みである必要があります。
# @intent:rationale F3/F5は (A - 値 - H) のbit3/bit1 から得られます。
def update_flags_block_cp(state: Z80CpuState, value: int) -> None:
    result = (state.a - value) & 0xFF
    half = (state.a & 0x0F) < (value & 0x0F)
    n = (result - (1 if half else 0)) & 0xFF
    flags = (result & S_FLAG) | N_FLAG
    if result == 0:
        flags |= Z_FLAG
    if half:
        flags |= H_FLAG
    if state.bc != 0:
        flags |= PV_FLAG
    if n & 0x08:
        flags |= F3_FLAG
    if n & 0x02:
        flags |= F5_FLAG
    commit_flags(state, flags, "BLOCK_CP")
