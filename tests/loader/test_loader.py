# tests/loader/test_loader.py
"""
retro_z80_core.loader.loaderモジュールの単体テスト。
Intel HEXファイルと生バイナリのロード機能を検証します。
"""
import pytest

from retro_z80_core.transport.memory import Memory
from retro_z80_core.loader.loader import IntelHexLoader, BinaryLoader

# @intent:test_suite プログラムイメージのローダー機能の検証。

class TestIntelHexLoader:
    """
    IntelHexLoaderの単体テスト。
    """

    @pytest.fixture
    def setup_loader(self, tmp_path):
        return IntelHexLoader(), Memory(), tmp_path

    def test_load_simple_hex_data(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_content = """
        :020000001234B8
        :02000200ABCD84
        :00000001FF
        """
        hex_file = tmp_path / "simple.hex"
        hex_file.write_text(hex_content)

        assert loader.load_intel_hex(str(hex_file), memory) == 4
        assert memory.read(0x0000) == 0x12
        assert memory.read(0x0001) == 0x34
        assert memory.read(0x0002) == 0xAB
        assert memory.read(0x0003) == 0xCD

    # @intent:test_case_eof 終了レコード以降の行は読まれないことを検証します。
    def test_stops_at_end_of_file_record(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "eof.hex"
        hex_file.write_text(":00000001FF\n:020000001234B8\n")
        assert loader.load_intel_hex(hex_file, memory) == 0
        assert memory.read(0x0000) == 0x00

    def test_extended_segment_address(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "segment.hex"
        hex_file.write_text(":020000020010EC\n:0100000055AA\n:00000001FF\n")
        loader.load_intel_hex(hex_file, memory)
        assert memory.read(0x0100) == 0x55
        assert memory.read(0x0000) == 0x00

    def test_start_address_record_is_ignored(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "start.hex"
        hex_file.write_text(":0400000500000100F6\n:020000001234B8\n:00000001FF\n")
        assert loader.load_intel_hex(hex_file, memory) == 2
        assert memory.read(0x0000) == 0x12

    def test_comments_and_blank_lines(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "comments.hex"
        hex_file.write_text("\n:020000001234B8 ; program start\n\n:00000001FF\n")
        loader.load_intel_hex(hex_file, memory)
        assert memory.read(0x0001) == 0x34

    # @intent:test_case_abnormal チェックサム不一致はValueErrorになることを検証します。
    def test_checksum_mismatch(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "bad.hex"
        hex_file.write_text(":020000001234B9\n")
        with pytest.raises(ValueError, match="Checksum mismatch on line 1"):
            loader.load_intel_hex(hex_file, memory)

    @pytest.mark.parametrize("line", [":0200", ":0200000012ZZB8", ":03000000123484"])
    def test_malformed_records(self, setup_loader, line):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "malformed.hex"
        hex_file.write_text(line + "\n")
        with pytest.raises(ValueError):
            loader.load_intel_hex(hex_file, memory)

    def test_unknown_record_type(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        hex_file = tmp_path / "unknown.hex"
        hex_file.write_text(":00000006FA\n")
        with pytest.raises(ValueError, match="Unknown Intel HEX record type"):
            loader.load_intel_hex(hex_file, memory)

    def test_missing_file(self, setup_loader):
        loader, memory, tmp_path = setup_loader
        with pytest.raises(FileNotFoundError):
            loader.load_intel_hex(tmp_path / "missing.hex", memory)

class TestBinaryLoader:

    def test_load_binary_at_address(self, tmp_path):
        memory = Memory()
        bin_file = tmp_path / "program.bin"
        bin_file.write_bytes(bytes([0x3E, 0x42, 0x76]))
        assert BinaryLoader().load_binary(bin_file, memory, 0x0200) == 3
        assert memory.dump(0x0200, 3) == bytes([0x3E, 0x42, 0x76])

    def test_load_binary_defaults_to_zero(self, tmp_path):
        memory = Memory(0x10)
        bin_file = tmp_path / "program.bin"
        bin_file.write_bytes(bytes([0x01, 0x02]))
        BinaryLoader().load_binary(str(bin_file), memory)
        assert memory.read(0x0000) == 0x01
        assert memory.read(0x0001) == 0x02
