# tests/arch/z80/test_instructions_index.py
"""
Z80 インデックスプレフィックス (DD / FD / DDCB / FDCB) 命令のテスト。
"""
import pytest

from retro_z80_core.arch.z80.cpu import Z80Cpu

# @intent:test_suite IX/IY への読み替え、(IX+d) の実効アドレス、未公開のIXH/IXLとDDCBの写しを検証します。

class TestIndexRegisterForms:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    @pytest.mark.parametrize("prefix, attr", [(0xDD, "ix"), (0xFD, "iy")])
    def test_ld_index_nn(self, cpu, prefix, attr):
        state = cpu.get_state()
        cpu.load_program(0x0000, [prefix, 0x21, 0x34, 0x12])
        cpu.step()
        assert getattr(state, attr) == 0x1234
        assert state.hl == 0x0000
        assert state.pc == 0x0004

    def test_prefixed_instruction_refreshes_twice(self, cpu):
        cpu.load_program(0x0000, [0xDD, 0x21, 0x00, 0x00])
        cpu.step()
        assert cpu.get_state().r == 0x02

    def test_add_ix_pairs(self, cpu):
        state = cpu.get_state()
        state.ix = 0x1000
        state.bc = 0x0234
        cpu.load_program(0x0000, [0xDD, 0x09, 0xDD, 0x29])  # ADD IX,BC ; ADD IX,IX
        cpu.step()
        assert state.ix == 0x1234
        cpu.step()
        assert state.ix == 0x2468
        assert state.hl == 0x0000

    def test_inc_iy(self, cpu):
        state = cpu.get_state()
        state.iy = 0xFFFF
        cpu.load_program(0x0000, [0xFD, 0x23])
        cpu.step()
        assert state.iy == 0x0000
        assert state.pc == 0x0002

    # @intent:test_case_undocumented メモリオペランドを持たない命令ではH/LがIXH/IXLに読み替わることを検証します。
    def test_ld_ixh_n_and_a_ixl(self, cpu):
        state = cpu.get_state()
        state.ix = 0x0056
        cpu.load_program(0x0000, [0xDD, 0x26, 0x12, 0xDD, 0x7D])  # LD IXH,n ; LD A,IXL
        cpu.step()
        assert state.ix == 0x1256
        assert state.h == 0x00
        assert state.pc == 0x0003
        cpu.step()
        assert state.a == 0x56

    def test_add_a_iyh(self, cpu):
        state = cpu.get_state()
        state.a = 0x01
        state.iy = 0x4100
        cpu.load_program(0x0000, [0xFD, 0x84])  # ADD A,IYH
        cpu.step()
        assert state.a == 0x42

    def test_push_ix_pop_iy(self, cpu):
        state = cpu.get_state()
        state.sp = 0x8000
        state.ix = 0xBEEF
        cpu.load_program(0x0000, [0xDD, 0xE5, 0xFD, 0xE1])
        cpu.run(2)
        assert state.iy == 0xBEEF
        assert state.sp == 0x8000

    def test_jp_ix(self, cpu):
        state = cpu.get_state()
        state.ix = 0x3000
        state.hl = 0x1000
        cpu.load_program(0x0000, [0xDD, 0xE9])
        cpu.step()
        assert state.pc == 0x3000

    def test_ld_sp_iy_and_ex_sp_ix(self, cpu):
        state = cpu.get_state()
        state.iy = 0x8000
        state.ix = 0xABCD
        cpu.write_memory(0x8000, 0x34)
        cpu.write_memory(0x8001, 0x12)
        cpu.load_program(0x0000, [0xFD, 0xF9, 0xDD, 0xE3])  # LD SP,IY ; EX (SP),IX
        cpu.run(2)
        assert state.sp == 0x8000
        assert state.ix == 0x1234
        assert cpu.read_memory(0x8000) == 0xCD
        assert cpu.read_memory(0x8001) == 0xAB

    def test_ld_nn_ix(self, cpu):
        state = cpu.get_state()
        state.ix = 0x1234
        cpu.load_program(0x0000, [0xDD, 0x22, 0x00, 0x50])
        cpu.step()
        assert cpu.read_memory(0x5000) == 0x34
        assert cpu.read_memory(0x5001) == 0x12
        assert state.pc == 0x0004

class TestIndexMemoryForms:

    @pytest.fixture
    def cpu(self):
        cpu = Z80Cpu()
        cpu.get_state().ix = 0x1000
        cpu.get_state().iy = 0x2000
        return cpu

    # @intent:test_case_displacement 変位は符号付きで、(IX+d)の実効アドレスに加算されることを検証します。
    def test_ld_index_d_n(self, cpu):
        cpu.load_program(0x0000, [0xDD, 0x36, 0x05, 0xAA])
        cpu.step()
        assert cpu.read_memory(0x1005) == 0xAA
        assert cpu.get_state().pc == 0x0004

    def test_negative_displacement(self, cpu):
        cpu.write_memory(0x0FFE, 0x77)
        cpu.load_program(0x0000, [0xDD, 0x7E, 0xFE])  # LD A,(IX-2)
        cpu.step()
        assert cpu.get_state().a == 0x77
        assert cpu.get_state().pc == 0x0003

    def test_register_operand_stays_plain_with_memory(self, cpu):
        state = cpu.get_state()
        cpu.write_memory(0x1001, 0x99)
        cpu.load_program(0x0000, [0xDD, 0x66, 0x01])  # LD H,(IX+1)
        cpu.step()
        assert state.h == 0x99
        assert state.ix == 0x1000

    def test_store_l_to_iy_d(self, cpu):
        state = cpu.get_state()
        state.l = 0x5A
        cpu.load_program(0x0000, [0xFD, 0x75, 0x10])  # LD (IY+16),L
        cpu.step()
        assert cpu.read_memory(0x2010) == 0x5A

    def test_alu_with_index_memory(self, cpu):
        state = cpu.get_state()
        state.a = 0x10
        cpu.write_memory(0x2003, 0x05)
        cpu.load_program(0x0000, [0xFD, 0x86, 0x03])  # ADD A,(IY+3)
        cpu.step()
        assert state.a == 0x15

    def test_inc_index_memory(self, cpu):
        cpu.write_memory(0x1000, 0xFF)
        cpu.load_program(0x0000, [0xDD, 0x34, 0x00])
        cpu.step()
        assert cpu.read_memory(0x1000) == 0x00
        assert cpu.get_state().flag_z is True

    @pytest.mark.parametrize("code, mnemonic, length", [
        ([0xDD, 0x36, 0x05, 0xAA], "LD (IX+d),n", 4),
        ([0xFD, 0x21, 0x00, 0x00], "LD IY,nn", 4),
        ([0xDD, 0x26, 0x00], "LD IXH,n", 3),
        ([0xFD, 0x7E, 0x00], "LD A,(IY+d)", 3),
        ([0xDD, 0x29], "ADD IX,IX", 2),
        ([0xDD, 0xE9], "JP (IX)", 2),
    ])
    def test_mnemonics(self, cpu, code, mnemonic, length):
        cpu.get_state().pc = 0x0000
        cpu.load_program(0x0000, code)
        op = cpu._decode(code[0])
        assert op.mnemonic == mnemonic
        assert op.length == length

class TestIndexBitForms:

    @pytest.fixture
    def cpu(self):
        cpu = Z80Cpu()
        cpu.get_state().ix = 0x1000
        cpu.get_state().iy = 0x2000
        return cpu

    # @intent:test_case_ddcb DDCBのローテートは(IX+d)を更新し、SSSが示すレジスタへ結果を写すことを検証します。
    def test_rlc_index_copies_to_register(self, cpu):
        state = cpu.get_state()
        cpu.write_memory(0x1001, 0x81)
        cpu.load_program(0x0000, [0xDD, 0xCB, 0x01, 0x00])  # RLC (IX+1),B
        cpu.step()
        assert cpu.read_memory(0x1001) == 0x03
        assert state.b == 0x03
        assert state.flag_c is True
        assert state.pc == 0x0004

    def test_set_index_without_copy(self, cpu):
        state = cpu.get_state()
        cpu.load_program(0x0000, [0xFD, 0xCB, 0xFF, 0xC6])  # SET 0,(IY-1)
        cpu.step()
        assert cpu.read_memory(0x1FFF) == 0x01
        assert state.a == 0x00 and state.b == 0x00

    def test_res_index_copies_to_h(self, cpu):
        state = cpu.get_state()
        cpu.write_memory(0x1002, 0xFF)
        cpu.load_program(0x0000, [0xDD, 0xCB, 0x02, 0x84])  # RES 0,(IX+2),H
        cpu.step()
        assert cpu.read_memory(0x1002) == 0xFE
        assert state.h == 0xFE
        assert state.ix == 0x1000

    def test_bit_index_does_not_write(self, cpu):
        state = cpu.get_state()
        cpu.write_memory(0x1000, 0x00)
        cpu.load_program(0x0000, [0xDD, 0xCB, 0x00, 0x47])  # BIT 0,(IX+0)
        cpu.step()
        assert state.flag_z is True
        assert state.a == 0x00
        assert cpu.read_memory(0x1000) == 0x00

    def test_ddcb_decode(self, cpu):
        cpu.load_program(0x0000, [0xDD, 0xCB, 0x05, 0x00])
        op = cpu._decode(0xDD)
        assert op.opcode_hex == "DDCB0500"
        assert op.mnemonic == "RLC (IX+d),B"
        assert op.operands == ["+5"]
        assert op.length == 4

class TestIndexWithoutHlUse:

    @pytest.fixture
    def cpu(self):
        return Z80Cpu()

    # @intent:test_case_noni HLを使わない命令が続く場合、プレフィックスは1バイトのNOPとして消費されることを検証します。
    def test_prefix_before_nop(self, cpu):
        cpu.load_program(0x0000, [0xDD, 0x00])
        op = cpu._decode(0xDD)
        assert op.mnemonic == "NONI"
        assert op.length == 1
        cpu.step()
        assert cpu.get_state().pc == 0x0001

    def test_prefix_before_ex_de_hl(self, cpu):
        state = cpu.get_state()
        state.de, state.hl, state.ix = 0x1111, 0x2222, 0x3333
        cpu.load_program(0x0000, [0xDD, 0xEB])
        cpu.step()
        assert state.pc == 0x0001
        assert state.de == 0x1111
        cpu.step()
        assert (state.de, state.hl) == (0x2222, 0x1111)
        assert state.ix == 0x3333

    def test_repeated_prefix(self, cpu):
        state = cpu.get_state()
        cpu.load_program(0x0000, [0xDD, 0xFD, 0x21, 0x34, 0x12])
        cpu.step()
        assert state.pc == 0x0001
        cpu.step()
        assert state.iy == 0x1234
        assert state.ix == 0x0000
        assert state.pc == 0x0005
