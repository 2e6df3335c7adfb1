"""
Z80命令セット実装のための共通ヘルパー関数と定数。

オペコードのDDD/SSSフィールドは REGISTER_PATTERN で「レジスタセル」か「(HL)経由のメモリ」の
いずれかに解決されます。後者はタグ付きの IndirectMemory 型であり、レジスタ名として
状態オブジェクトを引くことはできません。
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.core.operation import Operation
from retro_z80_core.transport.memory import Memory

# @intent:data_structure レジスタセルを指すオペランド。
@dataclass(frozen=True)
class RegisterCell:
    name: str # 表示名 ("B", "A" ...)

    @property
    def attr(self) -> str:
        return self.name.lower()

# @intent:data_structure (HL) / (IX+d) / (IY+d) 経由のメモリを指すオペランド。
@dataclass(frozen=True)
class IndirectMemory:
    name: str = "(HL)"

Operand = Union[RegisterCell, IndirectMemory]

INDIRECT_HL = IndirectMemory()

# DDD or SSS
REGISTER_PATTERN: Tuple[Operand, ...] = (
    RegisterCell("B"),  # 000
    RegisterCell("C"),  # 001
    RegisterCell("D"),  # 010
    RegisterCell("E"),  # 011
    RegisterCell("H"),  # 100
    RegisterCell("L"),  # 101
    INDIRECT_HL,        # 110 (HL)
    RegisterCell("A"),  # 111
)

# Register pair (ss / dd)
REGISTER_PAIRS = ("BC", "DE", "HL", "SP")
# PUSH/POP (qq)
PUSH_POP_PAIRS = ("BC", "DE", "HL", "AF")
# 条件コード (cc)
CONDITION_NAMES = ("NZ", "Z", "NC", "C", "PO", "PE", "P", "M")

# @intent:constant インデックスプレフィックスと対応するレジスタ属性名。
INDEX_REGISTERS = {0xDD: "ix", 0xFD: "iy", 0xDDCB: "ix", 0xFDCB: "iy"}

# @intent:utility_function DDD/SSSフィールドに対応するオペランドを返します。
def get_operand(code: int) -> Operand:
    return REGISTER_PATTERN[code & 0b111]

# @intent:utility_function 指定されたコードに対応するレジスタ名を返します。
def get_register_name(code: int) -> str:
    return REGISTER_PATTERN[code & 0b111].name

# @intent:utility_function 16ビット演算で使用されるレジスタペア名(ss)を返します。
def get_ss_reg_name(code: int) -> str:
    return REGISTER_PAIRS[code & 0b11]

# @intent:utility_function PUSH/POP命令で使用されるレジスタペア名を返します。
def get_push_pop_reg_name(code: int) -> str:
    return PUSH_POP_PAIRS[code & 0b11]

# @intent:utility_function 8ビット値を符号付き変位として解釈します。
def signed_byte(value: int) -> int:
    return value - 256 if value >= 128 else value

# @intent:utility_function リトルエンディアンの2バイトを16ビット値にします。
def word(low: int, high: int) -> int:
    return (high << 8) | low

# @intent:utility_function 命令がインデックスプレフィックス付きであれば IX/IY の属性名を返します。
def index_register(operation: Operation) -> Optional[str]:
    return INDEX_REGISTERS.get(operation.prefix)

# @intent:utility_function HLに相当する16ビットレジスタの属性名を返します（プレフィックスでIX/IYに置換）。
def hl_attr(operation: Operation) -> str:
    return index_register(operation) or "hl"

# @intent:utility_function レジスタペアのコードを属性名に解決します（HLはプレフィックスに従って置換）。
def pair_attr(operation: Operation, code: int, table: Tuple[str, ...] = REGISTER_PAIRS) -> str:
    name = table[code & 0b11].lower()
    if name == "hl":
        return hl_attr(operation)
    return name

# @intent:utility_function レジスタセルの属性名を返します。
# @intent:rationale メモリオペランドを持たないインデックス命令では、H/Lは未公開のIXH/IXL(IYH/IYL)を指します。
#                  (IX+d)を伴う命令では、同じ命令内のH/Lは本来のH/Lのままです。
def cell_attr(operation: Operation, cell: RegisterCell) -> str:
    index = index_register(operation)
    if index and operation.displacement is None and cell.attr in ("h", "l"):
        return index + cell.attr
    return cell.attr

# @intent:utility_function メモリオペランドの実効アドレス（HL または IX+d / IY+d）を返します。
def indirect_address(state: Z80CpuState, operation: Operation) -> int:
    if operation.displacement is None:
        return state.hl
    base = getattr(state, index_register(operation))
    return (base + operation.displacement) & 0xFFFF

# @intent:utility_function オペランド（レジスタまたはメモリ）の現在値を取得します。
def read_operand(state: Z80CpuState, memory: Memory, operation: Operation, operand: Operand) -> int:
    if isinstance(operand, IndirectMemory):
        return memory.read(indirect_address(state, operation))
    return getattr(state, cell_attr(operation, operand))

# @intent:utility_function オペランド（レジスタまたはメモリ）に値を設定します。
def write_operand(state: Z80CpuState, memory: Memory, operation: Operation, operand: Operand, value: int) -> None:
    if isinstance(operand, IndirectMemory):
        memory.write(indirect_address(state, operation), value & 0xFF)
    else:
        setattr(state, cell_attr(operation, operand), value & 0xFF)

# @intent:utility_function 条件コード(cc)を現在のフラグで評価します。
def condition_met(state: Z80CpuState, cc_code: int) -> bool:
    cc_code &= 0b111
    if cc_code == 0: return not state.flag_z   # NZ
    if cc_code == 1: return state.flag_z       # Z
    if cc_code == 2: return not state.flag_c   # NC
    if cc_code == 3: return state.flag_c       # C
    if cc_code == 4: return not state.flag_pv  # PO
    if cc_code == 5: return state.flag_pv      # PE
    if cc_code == 6: return not state.flag_s   # P
    return state.flag_s                        # M

# @intent:utility_function 16ビット値をスタックへ積みます。
def push_word(state: Z80CpuState, memory: Memory, value: int) -> None:
    # PUSH: SP <- SP - 1, (SP) <- high; SP <- SP - 1, (SP) <- low
    state.sp = (state.sp - 1) & 0xFFFF
    memory.write(state.sp, (value >> 8) & 0xFF)
    state.sp = (state.sp - 1) & 0xFFFF
    memory.write(state.sp, value & 0xFF)

# @intent:utility_function スタックから16ビット値を取り出します。
def pop_word(state: Z80CpuState, memory: Memory) -> int:
    # POP: low <- (SP), SP <- SP + 1; high <- (SP), SP <- SP + 1
    low = memory.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    high = memory.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    return word(low, high)
