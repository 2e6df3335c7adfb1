# tests/arch/z80/test_instructions_ed.py
"""
Z80 EDプレフィックス命令のテスト。
ブロック転送/比較、16ビット算術、NEG、RETN/RETI、I/Rレジスタ転送、RLD/RRD、未定義オペコードを扱います。
"""
import pytest

from retro_z80_core.arch.z80.cpu import Z80Cpu

# @intent:test_suite EDテーブルの命令群を検証します。

class TestBlockInstructions:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    # @intent:test_case_ldir LDIRは1ステップにつき1バイト転送し、BC=0まで自身を繰り返すことを検証します。
    def test_ldir(self, cpu):
        state = cpu.get_state()
        state.hl, state.de, state.bc = 0x1000, 0x2000, 0x0003
        cpu.load_program(0x1000, [0x11, 0x22, 0x33])
        cpu.load_program(0x0000, [0xED, 0xB0])

        cpu.step()
        assert state.pc == 0x0000
        assert state.bc == 0x0002
        assert state.flag_pv is True

        cpu.step()
        cpu.step()
        assert state.pc == 0x0002
        assert state.bc == 0x0000
        assert state.hl == 0x1003
        assert state.de == 0x2003
        assert state.flag_pv is False
        assert [cpu.read_memory(0x2000 + i) for i in range(3)] == [0x11, 0x22, 0x33]

    def test_lddr(self, cpu):
        state = cpu.get_state()
        state.hl, state.de, state.bc = 0x1002, 0x2002, 0x0003
        cpu.load_program(0x1000, [0x11, 0x22, 0x33])
        cpu.load_program(0x0000, [0xED, 0xB8, 0x76])
        cpu.run(10)
        assert state.halted is True
        assert state.hl == 0x0FFF
        assert state.de == 0x1FFF
        assert [cpu.read_memory(0x2000 + i) for i in range(3)] == [0x11, 0x22, 0x33]

    def test_ldi_does_not_repeat(self, cpu):
        state = cpu.get_state()
        state.hl, state.de, state.bc = 0x1000, 0x2000, 0x0002
        cpu.write_memory(0x1000, 0x99)
        cpu.load_program(0x0000, [0xED, 0xA0])
        cpu.step()
        assert state.pc == 0x0002
        assert state.bc == 0x0001
        assert cpu.read_memory(0x2000) == 0x99
        assert state.flag_pv is True

    # @intent:test_case_cpir CPIRは一致したバイトで停止することを検証します。
    def test_cpir_stops_on_match(self, cpu):
        state = cpu.get_state()
        state.a = 0x03
        state.hl, state.bc = 0x1000, 0x0005
        cpu.load_program(0x1000, [0x01, 0x02, 0x03, 0x04, 0x05])
        cpu.load_program(0x0000, [0xED, 0xB1])
        for _ in range(2):
            cpu.step()
            assert state.pc == 0x0000
        cpu.step()
        assert state.pc == 0x0002
        assert state.flag_z is True
        assert state.hl == 0x1003
        assert state.bc == 0x0002
        assert state.flag_pv is True

    def test_cpir_stops_when_count_exhausted(self, cpu):
        state = cpu.get_state()
        state.a = 0xFF
        state.hl, state.bc = 0x1000, 0x0002
        cpu.load_program(0x0000, [0xED, 0xB1])
        cpu.run(2)
        assert state.pc == 0x0002
        assert state.flag_z is False
        assert state.flag_pv is False

    # @intent:test_case_block_ld_flags LDI/LDDのF全体を検証します。
    # n = 転送値 + A としたとき、F3はnのbit3、F5はnのbit1。S/Z/Cは保持、H/Nはクリア。
    @pytest.mark.parametrize("opcode, a, value, bc, preset_f, expected_f", [
        (0xA0, 0x00, 0x02, 0x0002, 0x00, 0x24),  # n=$02: F5|PV
        (0xA8, 0x10, 0x10, 0x0001, 0xC1, 0xC1),  # n=$20: bit5のみではF5は立たない、BC=0でPVクリア
        (0xA0, 0x08, 0x00, 0x0002, 0x12, 0x0C),  # n=$08: F3|PV、H/Nはクリア
        (0xA8, 0x05, 0x05, 0x0001, 0x00, 0x28),  # n=$0A: F3|F5
    ])
    def test_block_ld_flag_byte(self, cpu, opcode, a, value, bc, preset_f, expected_f):
        state = cpu.get_state()
        state.a, state.f = a, preset_f
        state.hl, state.de, state.bc = 0x1000, 0x2000, bc
        cpu.write_memory(0x1000, value)
        cpu.load_program(0x0000, [0xED, opcode])
        cpu.step()
        assert state.f == expected_f
        assert cpu.read_memory(0x2000) == value
        assert state.bc == bc - 1

    # @intent:test_case_block_cp_flags CPI/CPDのF全体を検証します。
    # n = A - 値 - H としたとき、F3はnのbit3、F5はnのbit1。Cは保持、Nは常にセット。
    @pytest.mark.parametrize("opcode, a, value, bc, preset_f, expected_f", [
        (0xA1, 0x10, 0x0D, 0x0002, 0x01, 0x37),  # 結果$03 H=1 n=$02: F5|H|PV|N|C
        (0xA9, 0x30, 0x10, 0x0001, 0x00, 0x02),  # 結果$20 n=$20: F5は立たない
        (0xA1, 0x42, 0x42, 0x0002, 0x01, 0x47),  # 一致: Z|PV|N|C
        (0xA9, 0x00, 0x01, 0x0001, 0x00, 0xBA),  # 結果$FF H=1 n=$FE: S|F5|H|F3|N
    ])
    def test_block_cp_flag_byte(self, cpu, opcode, a, value, bc, preset_f, expected_f):
        state = cpu.get_state()
        state.a, state.f = a, preset_f
        state.hl, state.bc = 0x1000, bc
        cpu.write_memory(0x1000, value)
        cpu.load_program(0x0000, [0xED, opcode])
        cpu.step()
        assert state.f == expected_f
        assert state.a == a
        assert state.bc == bc - 1

class TestArithmeticAndTransfer:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    @pytest.mark.parametrize("a, expected, carry, overflow", [
        (0x01, 0xFF, True, False),
        (0x00, 0x00, False, False),
        (0x80, 0x80, True, True),
    ])
    def test_neg(self, cpu, a, expected, carry, overflow):
        state = cpu.get_state()
        state.a = a
        cpu.load_program(0x0000, [0xED, 0x44])
        cpu.step()
        assert state.a == expected
        assert state.flag_c is carry
        assert state.flag_pv is overflow
        assert state.flag_n is True

    def test_sbc_hl_de(self, cpu):
        state = cpu.get_state()
        state.hl, state.de = 0x1000, 0x0001
        state.flag_c = True
        cpu.load_program(0x0000, [0xED, 0x52])
        cpu.step()
        assert state.hl == 0x0FFE
        assert state.flag_n is True
        assert state.flag_c is False

    def test_adc_hl_bc_to_zero(self, cpu):
        state = cpu.get_state()
        state.hl, state.bc = 0xFFFF, 0x0000
        state.flag_c = True
        cpu.load_program(0x0000, [0xED, 0x4A])
        cpu.step()
        assert state.hl == 0x0000
        assert state.flag_z is True
        assert state.flag_c is True

    # @intent:test_case_ld_nn_rp ED形式の16ビットメモリ転送は4バイト命令であることを検証します。
    def test_ld_nn_bc_and_de_nn(self, cpu):
        state = cpu.get_state()
        state.bc = 0x1234
        cpu.load_program(0x0000, [0xED, 0x43, 0x00, 0x50, 0xED, 0x5B, 0x00, 0x50])
        cpu.step()
        assert state.pc == 0x0004
        assert cpu.read_memory(0x5000) == 0x34
        assert cpu.read_memory(0x5001) == 0x12
        cpu.step()
        assert state.de == 0x1234
        assert state.pc == 0x0008

    def test_ld_sp_nn_indirect(self, cpu):
        cpu.write_memory(0x6000, 0xCD)
        cpu.write_memory(0x6001, 0xAB)
        cpu.load_program(0x0000, [0xED, 0x7B, 0x00, 0x60])
        cpu.step()
        assert cpu.get_state().sp == 0xABCD

    def test_rrd(self, cpu):
        state = cpu.get_state()
        state.a = 0x84
        state.hl = 0x1000
        cpu.write_memory(0x1000, 0x20)
        cpu.load_program(0x0000, [0xED, 0x67])
        cpu.step()
        assert state.a == 0x80
        assert cpu.read_memory(0x1000) == 0x42

    def test_rld(self, cpu):
        state = cpu.get_state()
        state.a = 0x7A
        state.hl = 0x1000
        cpu.write_memory(0x1000, 0x31)
        cpu.load_program(0x0000, [0xED, 0x6F])
        cpu.step()
        assert state.a == 0x73
        assert cpu.read_memory(0x1000) == 0x1A

class TestSystemInstructions:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    @pytest.mark.parametrize("ed_opcode", [0x45, 0x4D])
    def test_retn_reti_restore_iff1(self, cpu, ed_opcode):
        state = cpu.get_state()
        state.sp = 0x8000
        state.iff1, state.iff2 = False, True
        cpu.write_memory(0x8000, 0x34)
        cpu.write_memory(0x8001, 0x12)
        cpu.load_program(0x0000, [0xED, ed_opcode])
        cpu.step()
        assert state.pc == 0x1234
        assert state.sp == 0x8002
        assert state.iff1 is True

    # @intent:test_case_ld_a_i LD A,I はP/VにIFF2を写すことを検証します。
    @pytest.mark.parametrize("iff2", [True, False])
    def test_ld_a_i(self, cpu, iff2):
        state = cpu.get_state()
        state.i = 0x80
        state.iff2 = iff2
        state.flag_c = True
        cpu.load_program(0x0000, [0xED, 0x57])
        cpu.step()
        assert state.a == 0x80
        assert state.flag_s is True
        assert state.flag_z is False
        assert state.flag_pv is iff2
        assert state.flag_c is True

    def test_ld_i_a(self, cpu):
        state = cpu.get_state()
        state.a = 0x3F
        cpu.load_program(0x0000, [0xED, 0x47])
        cpu.step()
        assert state.i == 0x3F

    def test_ld_r_a(self, cpu):
        state = cpu.get_state()
        state.a = 0x85
        cpu.load_program(0x0000, [0xED, 0x4F])
        cpu.step()
        assert state.r == 0x85

    @pytest.mark.parametrize("ed_opcode, mnemonic", [(0x46, "IM 0"), (0x56, "IM 1"), (0x5E, "IM 2")])
    def test_im_consumes_two_bytes(self, cpu, ed_opcode, mnemonic):
        cpu.load_program(0x0000, [0xED, ed_opcode])
        assert cpu._decode(0xED).mnemonic == mnemonic
        cpu.step()
        assert cpu.get_state().pc == 0x0002

    # @intent:test_case_noni 未定義のEDオペコードは2バイトのNOPとして扱われることを検証します。
    @pytest.mark.parametrize("ed_opcode", [0x00, 0x3F, 0x77, 0x7F, 0xC0, 0xFF])
    def test_undefined_ed_is_two_byte_nop(self, cpu, ed_opcode):
        state = cpu.get_state()
        state.af, state.bc, state.hl = 0x1234, 0x5678, 0x9ABC
        cpu.load_program(0x0000, [0xED, ed_opcode])
        cpu.step()
        assert state.pc == 0x0002
        assert (state.af, state.bc, state.hl) == (0x1234, 0x5678, 0x9ABC)
        assert state.r == 0x02

    def test_ed_refresh_counts_two_fetches(self, cpu):
        cpu.load_program(0x0000, [0xED, 0x44])
        cpu.step()
        assert cpu.get_state().r == 0x02
