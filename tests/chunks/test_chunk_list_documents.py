"""Tests for chunk list documents and chunk list types."""

from __future__ import annotations

import json

import pytest
import yaml

from chunkvault.chunks.base import ChunkInfo, ChunkListFormatError, StorageHostChunkList
from chunkvault.chunks.container import (
    chunk_list_to_dict,
    load_chunk_list,
    parse_chunk_list,
    save_chunk_list,
)

CHECKSUM = "01" + "ab" * 20
KEY = "01" + "cd" * 16


def _document(**overrides):
    entry = {"offset": 0, "length": 16, "checksum": CHECKSUM, "key": KEY}
    entry.update(overrides)
    return {"host": "storage-host-1", "chunks": [entry]}


class TestChunkInfo:
    """Tests for ChunkInfo validation."""

    def test_valid(self):
        info = ChunkInfo(0, 16, bytes.fromhex(CHECKSUM), bytes.fromhex(KEY))
        assert info.length == 16
        assert "0x01abab" in repr(info)

    def test_accepts_bytearray(self):
        info = ChunkInfo(0, 1, bytearray(b"\x01"), bytearray(b"\x01"))
        assert isinstance(info.checksum, bytes)

    @pytest.mark.parametrize("offset,length", [(-1, 1), (0, -1), (2**32, 1), (0, 2**32)])
    def test_out_of_range(self, offset, length):
        with pytest.raises(ValueError):
            ChunkInfo(offset, length, b"\x01", b"\x01")

    def test_empty_checksum_rejected(self):
        with pytest.raises(ValueError):
            ChunkInfo(0, 1, b"", b"\x01")

    def test_frozen(self):
        info = ChunkInfo(0, 1, b"\x01", b"\x01")
        with pytest.raises(AttributeError):
            info.offset = 5  # type: ignore[misc]


class TestStorageHostChunkList:
    """Tests for StorageHostChunkList."""

    def test_sequence_converted_to_tuple(self):
        infos = [ChunkInfo(0, 4, b"\x01", b"\x01")]
        container = StorageHostChunkList(infos, host="h")
        infos.append(ChunkInfo(4, 4, b"\x02", b"\x01"))

        assert len(container) == 1
        assert isinstance(container.chunk_info, tuple)
        assert container.host == "h"

    def test_iteration(self):
        infos = [ChunkInfo(0, 4, b"\x01", b"\x01"), ChunkInfo(4, 2, b"\x02", b"\x01")]
        assert list(StorageHostChunkList(infos)) == infos


class TestParseChunkList:
    """Tests for parsing chunk list documents."""

    def test_parse(self):
        container = parse_chunk_list(_document())

        assert container.host == "storage-host-1"
        assert container.chunk_info[0] == ChunkInfo(
            0, 16, bytes.fromhex(CHECKSUM), bytes.fromhex(KEY)
        )

    def test_hex_prefix_allowed(self):
        container = parse_chunk_list(_document(checksum="0x" + CHECKSUM))
        assert container.chunk_info[0].checksum == bytes.fromhex(CHECKSUM)

    def test_empty_document(self):
        container = parse_chunk_list({})
        assert len(container) == 0
        assert container.host is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"offset": "zero"},
            {"length": True},
            {"checksum": "not hex"},
            {"key": 17},
            {"offset": -5},
            {"checksum": ""},
        ],
        ids=[
            "offset-str",
            "length-bool",
            "checksum-hex",
            "key-int",
            "offset-negative",
            "checksum-empty",
        ],
    )
    def test_invalid_entry(self, overrides):
        with pytest.raises(ChunkListFormatError) as exc_info:
            parse_chunk_list(_document(**overrides))
        assert "chunks[0]" in str(exc_info.value)

    def test_invalid_structure(self):
        with pytest.raises(ChunkListFormatError):
            parse_chunk_list({"chunks": {"offset": 0}})
        with pytest.raises(ChunkListFormatError):
            parse_chunk_list({"chunks": ["entry"]})
        with pytest.raises(ChunkListFormatError):
            parse_chunk_list(["not", "a", "mapping"])  # type: ignore[arg-type]


class TestChunkListFiles:
    """Tests for loading and saving chunk list files."""

    @pytest.mark.parametrize("suffix", [".yaml", ".yml", ".json"])
    def test_save_and_load(self, tmp_path, suffix):
        container = parse_chunk_list(_document())
        path = tmp_path / f"chunks{suffix}"

        save_chunk_list(container, path)

        assert load_chunk_list(path) == container

    def test_saved_json_document(self, tmp_path):
        path = tmp_path / "chunks.json"
        save_chunk_list(parse_chunk_list(_document()), path)

        data = json.loads(path.read_text())
        assert data["chunks"][0]["checksum"] == CHECKSUM
        assert data["host"] == "storage-host-1"

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "chunks.yaml"
        path.write_text(yaml.safe_dump(_document()))
        assert load_chunk_list(path).chunk_info[0].length == 16

    def test_to_dict_without_host(self):
        data = chunk_list_to_dict(StorageHostChunkList())
        assert data == {"chunks": []}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ChunkListFormatError):
            load_chunk_list(tmp_path / "missing.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "chunks.txt"
        path.write_text("chunks: []")
        with pytest.raises(ChunkListFormatError):
            load_chunk_list(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "chunks.yaml"
        path.write_text("chunks: [unclosed")
        with pytest.raises(ChunkListFormatError):
            load_chunk_list(path)
