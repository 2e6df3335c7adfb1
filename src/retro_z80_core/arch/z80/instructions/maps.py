"""
Z80 命令マッピング定義。
各命令モジュールから関数をインポートし、オペコードと関数の対応表を構築します。
プレフィックス無しのデコードテーブルは 0x00-0xFF の全バイトを網羅します。
"""
from .alu import (
    decode_add_hl_ss, decode_inc_dec16, decode_inc_dec8, decode_alu_r, decode_alu_n,
    decode_rotate_a, decode_27, decode_2f, decode_37, decode_3f,
    execute_add_hl_ss, execute_inc_dec16, execute_inc_dec8, execute_alu_r, execute_alu_n,
    execute_rotate_a, execute_27, execute_2f, execute_37, execute_3f
)
from .load import (
    decode_push_pop, decode_ld_ss_nn, decode_ld_indirect_a, decode_ld_nn_hl, decode_ld_r_n,
    decode_ld_r_r_prime, decode_ld_a_nn, decode_ld_nn_a, decode_f9,
    execute_push_pop, execute_ld_ss_nn, execute_ld_indirect_a, execute_ld_nn_hl, execute_ld_r_n,
    execute_ld_r_r_prime, execute_ld_a_nn, execute_ld_nn_a, execute_f9
)
from .control import (
    decode_00, decode_76, decode_10, decode_18, decode_jr_cc_e, decode_c3, decode_jp_cc_nn,
    decode_cd, decode_call_cc_nn, decode_c9, decode_ret_cc, decode_rst, decode_e9,
    decode_fb, decode_f3, decode_08, decode_eb, decode_d9, decode_e3, decode_db, decode_d3,
    execute_00, execute_76, execute_10, execute_18, execute_jr_cc_e, execute_c3, execute_jp_cc_nn,
    execute_cd, execute_call_cc_nn, execute_c9, execute_ret_cc, execute_rst, execute_e9,
    execute_fb, execute_f3, execute_08, execute_eb, execute_d9, execute_e3, execute_io_ignored
)
from .bit import decode_cb, CB_EXECUTE_MAP
from .extended import decode_ed, ED_EXECUTE_MAP
from .index import decode_ix_iy

DECODE_MAP = {
    0x00: decode_00,
    0x08: decode_08,
    0x10: decode_10,
    0x18: decode_18,
    0x22: decode_ld_nn_hl,
    0x2A: decode_ld_nn_hl,
    0x27: decode_27,
    0x2F: decode_2f,
    0x32: decode_ld_nn_a,
    0x37: decode_37,
    0x3A: decode_ld_a_nn,
    0x3F: decode_3f,
    0x76: decode_76,
    0xC3: decode_c3,
    0xC9: decode_c9,
    0xCB: decode_cb,
    0xCD: decode_cd,
    0xD3: decode_d3,
    0xD9: decode_d9,
    0xDB: decode_db,
    0xDD: decode_ix_iy,
    0xE3: decode_e3,
    0xE9: decode_e9,
    0xEB: decode_eb,
    0xED: decode_ed,
    0xF3: decode_f3,
    0xF9: decode_f9,
    0xFB: decode_fb,
    0xFD: decode_ix_iy,
    **{op: decode_ld_ss_nn for op in range(0x01, 0x40, 0x10)}, # LD BC/DE/HL/SP, nn
    **{op: decode_add_hl_ss for op in range(0x09, 0x40, 0x10)}, # ADD HL,ss
    **{op: decode_ld_indirect_a for op in (0x02, 0x12, 0x0A, 0x1A)},
    **{op: decode_inc_dec16 for op in range(0x03, 0x40, 0x10)}, # INC ss
    **{op: decode_inc_dec16 for op in range(0x0B, 0x40, 0x10)}, # DEC ss
    **{op: decode_inc_dec8 for op in range(0x04, 0x40, 0x08)}, # INC r
    **{op: decode_inc_dec8 for op in range(0x05, 0x40, 0x08)}, # DEC r
    **{op: decode_ld_r_n for op in range(0x06, 0x40, 0x08)}, # LD r,n
    **{op: decode_rotate_a for op in (0x07, 0x0F, 0x17, 0x1F)},
    **{op: decode_jr_cc_e for op in range(0x20, 0x40, 0x08)},
    **{op: decode_ld_r_r_prime for op in range(0x40, 0x80) if op != 0x76},
    **{op: decode_alu_r for op in range(0x80, 0xC0)}, # ADD/ADC/SUB/SBC/AND/XOR/OR/CP r
    **{op: decode_ret_cc for op in range(0xC0, 0x100, 0x08)},
    **{op: decode_push_pop for op in range(0xC1, 0x100, 0x10)}, # POP qq
    **{op: decode_jp_cc_nn for op in range(0xC2, 0x100, 0x08)},
    **{op: decode_call_cc_nn for op in range(0xC4, 0x100, 0x08)},
    **{op: decode_push_pop for op in range(0xC5, 0x100, 0x10)}, # PUSH qq
    **{op: decode_alu_n for op in range(0xC6, 0x100, 0x08)}, # ALU A,n
    **{op: decode_rst for op in range(0xC7, 0x100, 0x08)},
}

# プレフィックス無し (およびDD/FDで入れ子にデコードされた) 命令の実行テーブル
EXECUTE_MAP = {
    0x00: execute_00,
    0x08: execute_08,
    0x10: execute_10,
    0x18: execute_18,
    0x22: execute_ld_nn_hl,
    0x2A: execute_ld_nn_hl,
    0x27: execute_27,
    0x2F: execute_2f,
    0x32: execute_ld_nn_a,
    0x37: execute_37,
    0x3A: execute_ld_a_nn,
    0x3F: execute_3f,
    0x76: execute_76,
    0xC3: execute_c3,
    0xC9: execute_c9,
    0xCD: execute_cd,
    0xD3: execute_io_ignored,
    0xD9: execute_d9,
    0xDB: execute_io_ignored,
    0xE3: execute_e3,
    0xE9: execute_e9,
    0xEB: execute_eb,
    0xF3: execute_f3,
    0xF9: execute_f9,
    0xFB: execute_fb,
    **{op: execute_ld_ss_nn for op in range(0x01, 0x40, 0x10)},
    **{op: execute_add_hl_ss for op in range(0x09, 0x40, 0x10)},
    **{op: execute_ld_indirect_a for op in (0x02, 0x12, 0x0A, 0x1A)},
    **{op: execute_inc_dec16 for op in range(0x03, 0x40, 0x10)},
    **{op: execute_inc_dec16 for op in range(0x0B, 0x40, 0x10)},
    **{op: execute_inc_dec8 for op in range(0x04, 0x40, 0x08)},
    **{op: execute_inc_dec8 for op in range(0x05, 0x40, 0x08)},
    **{op: execute_ld_r_n for op in range(0x06, 0x40, 0x08)},
    **{op: execute_rotate_a for op in (0x07, 0x0F, 0x17, 0x1F)},
    **{op: execute_jr_cc_e for op in range(0x20, 0x40, 0x08)},
    **{op: execute_ld_r_r_prime for op in range(0x40, 0x80) if op != 0x76},
    **{op: execute_alu_r for op in range(0x80, 0xC0)},
    **{op: execute_ret_cc for op in range(0xC0, 0x100, 0x08)},
    **{op: execute_push_pop for op in range(0xC1, 0x100, 0x10)},
    **{op: execute_jp_cc_nn for op in range(0xC2, 0x100, 0x08)},
    **{op: execute_call_cc_nn for op in range(0xC4, 0x100, 0x08)},
    **{op: execute_push_pop for op in range(0xC5, 0x100, 0x10)},
    **{op: execute_alu_n for op in range(0xC6, 0x100, 0x08)},
    **{op: execute_rst for op in range(0xC7, 0x100, 0x08)},
}

# @intent:data_structure Operation.prefix から実行テーブルを選びます。
# DD/FDの命令は基本テーブルの実行器をそのまま使い、HL/(HL)の読み替えは実行器側で行われます。
EXECUTE_TABLES = {
    0x00: EXECUTE_MAP,
    0xCB: CB_EXECUTE_MAP,
    0xED: ED_EXECUTE_MAP,
    0xDD: EXECUTE_MAP,
    0xFD: EXECUTE_MAP,
    0xDDCB: CB_EXECUTE_MAP,
    0xFDCB: CB_EXECUTE_MAP,
}
