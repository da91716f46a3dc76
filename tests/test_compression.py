"""Tests for nsync.compression: tar.xz packing of instruction folders."""

import lzma

import pytest

from nsync.compression import compress_folder, decompress_file
from nsync.errors import NsyncError


@pytest.fixture
def instruction_folder(tmp_path):
    folder = tmp_path / "instruction"
    (folder / "archive" / "nar").mkdir(parents=True)
    (folder / "instruction.json").write_text('[{"kind": "reboot"}]')
    (folder / "archive" / "abc.narinfo").write_text("StorePath: /nix/store/abc-x\n")
    (folder / "archive" / "nar" / "abc.nar.xz").write_bytes(bytes(range(256)) * 10)
    return folder


class TestCompression:
    def test_round_trip_preserves_tree(self, tmp_path, instruction_folder):
        packed = tmp_path / "out.tar.xz"
        compress_folder(instruction_folder, packed)

        restored = tmp_path / "restored"
        decompress_file(packed, restored)

        for original in instruction_folder.rglob("*"):
            copy = restored / original.relative_to(instruction_folder)
            if original.is_file():
                assert copy.read_bytes() == original.read_bytes()
            else:
                assert copy.is_dir()

    def test_output_is_xz(self, tmp_path, instruction_folder):
        packed = tmp_path / "out.tar.xz"
        compress_folder(instruction_folder, packed, preset=0)
        with lzma.open(packed) as f:
            assert len(f.read()) > 0

    def test_decompress_creates_destination(self, tmp_path, instruction_folder):
        packed = tmp_path / "out.tar.xz"
        compress_folder(instruction_folder, packed)
        destination = tmp_path / "a" / "b"
        decompress_file(packed, destination)
        assert (destination / "instruction.json").is_file()

    def test_missing_source(self, tmp_path):
        with pytest.raises(NsyncError, match="decompress"):
            decompress_file(tmp_path / "nope.tar.xz", tmp_path / "out")

    def test_corrupt_source(self, tmp_path):
        bad = tmp_path / "bad.tar.xz"
        bad.write_bytes(b"definitely not xz")
        with pytest.raises(NsyncError, match="decompress"):
            decompress_file(bad, tmp_path / "out")
