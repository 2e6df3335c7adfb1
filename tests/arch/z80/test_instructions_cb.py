# tests/arch/z80/test_instructions_cb.py
"""
Z80 CBプレフィックス命令（ローテート/シフト、BIT、RES、SET）のテスト。
"""
import pytest

from retro_z80_core.arch.z80.cpu import Z80Cpu

# @intent:test_suite CBテーブルの命令群の実行結果とフラグを検証します。

class TestCbInstructions:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    # @intent:test_case_bit BITはZを設定し、Hを常に立て、Nを落とすことを検証します。
    def test_bit_instruction(self, cpu):
        state = cpu.get_state()
        cpu.load_program(0x0000, [0xCB, 0x47])  # BIT 0,A
        state.a = 0xFE
        cpu.step()
        assert state.flag_z is True
        assert state.flag_pv is True
        assert state.flag_h is True
        assert state.flag_n is False
        assert state.pc == 0x0002

        state.pc = 0x0000
        state.a = 0x01
        cpu.step()
        assert state.flag_z is False

    def test_bit_7_sets_sign(self, cpu):
        state = cpu.get_state()
        state.a = 0x80
        cpu.load_program(0x0000, [0xCB, 0x7F])  # BIT 7,A
        cpu.step()
        assert state.flag_s is True
        assert state.flag_z is False

    # @intent:test_case_bit_memory BIT b,(HL)のF3/F5はアドレス上位バイトから取られることを検証します。
    def test_bit_hl_indirect_xy_flags(self, cpu):
        state = cpu.get_state()
        state.hl = 0x2800
        cpu.write_memory(0x2800, 0x01)
        cpu.load_program(0x0000, [0xCB, 0x46])  # BIT 0,(HL)
        cpu.step()
        assert state.flag_z is False
        assert state.flag_5 is True
        assert state.flag_3 is True

    def test_set_res_instruction(self, cpu):
        state = cpu.get_state()
        cpu.load_program(0x0000, [0xCB, 0xF8, 0xCB, 0xB8])  # SET 7,B ; RES 7,B
        cpu.step()
        assert state.b == 0x80
        cpu.step()
        assert state.b == 0x00

    def test_set_res_hl_indirect(self, cpu):
        state = cpu.get_state()
        state.hl = 0x3000
        cpu.write_memory(0x3000, 0x0F)
        cpu.load_program(0x0000, [0xCB, 0xFE, 0xCB, 0x86])  # SET 7,(HL) ; RES 0,(HL)
        cpu.step()
        assert cpu.read_memory(0x3000) == 0x8F
        cpu.step()
        assert cpu.read_memory(0x3000) == 0x8E

    def test_res_set_do_not_touch_flags(self, cpu):
        state = cpu.get_state()
        state.f = 0xA5
        cpu.load_program(0x0000, [0xCB, 0xC1, 0xCB, 0x81])  # SET 0,C ; RES 0,C
        cpu.run(2)
        assert state.f == 0xA5

    @pytest.mark.parametrize("cb_opcode, value, carry_in, expected, carry_out", [
        (0x07, 0x81, False, 0x03, True),   # RLC A
        (0x0F, 0x01, False, 0x80, True),   # RRC A
        (0x17, 0x80, True, 0x01, True),    # RL A
        (0x1F, 0x02, True, 0x81, False),   # RR A
        (0x27, 0x40, False, 0x80, False),  # SLA A
        (0x2F, 0x80, False, 0xC0, False),  # SRA A
        (0x37, 0x00, False, 0x01, False),  # SLL A
        (0x3F, 0x01, False, 0x00, True),   # SRL A
    ])
    def test_rotate_shift_a(self, cpu, cb_opcode, value, carry_in, expected, carry_out):
        state = cpu.get_state()
        state.a = value
        state.flag_c = carry_in
        cpu.load_program(0x0000, [0xCB, cb_opcode])
        cpu.step()
        assert state.a == expected
        assert state.flag_c is carry_out
        assert state.flag_z is (expected == 0)

    def test_rotate_hl_indirect(self, cpu):
        state = cpu.get_state()
        state.hl = 0x1000
        cpu.write_memory(0x1000, 0x80)
        cpu.load_program(0x0000, [0xCB, 0x06])  # RLC (HL)
        cpu.step()
        assert cpu.read_memory(0x1000) == 0x01
        assert state.flag_c is True

    @pytest.mark.parametrize("cb_opcode, mnemonic", [
        (0x00, "RLC B"), (0x36, "SLL (HL)"), (0x46, "BIT 0,(HL)"), (0xB9, "RES 7,C"), (0xFF, "SET 7,A"),
    ])
    def test_mnemonics(self, cpu, cb_opcode, mnemonic):
        cpu.write_memory(0x0001, cb_opcode)
        op = cpu._decode(0xCB)
        assert op.mnemonic == mnemonic
        assert op.opcode_hex == f"CB{cb_opcode:02X}"
        assert op.length == 2
