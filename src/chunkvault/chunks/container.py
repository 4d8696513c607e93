"""Chunk list documents.

Chunk lists can be kept as YAML or JSON documents, binary fields hex
encoded::

    host: storage-host-1
    chunks:
      - offset: 0
        length: 16
        checksum: 01a1b2...
        key: 01c3d4...
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from chunkvault.chunks.base import ChunkInfo, ChunkListFormatError, StorageHostChunkList


def _hex_field(entry: dict[str, Any], name: str, index: int) -> bytes:
    value = entry.get(name)
    if not isinstance(value, str):
        raise ChunkListFormatError(f"chunks[{index}].{name} must be a hex string")
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except ValueError as e:
        raise ChunkListFormatError(f"chunks[{index}].{name} is not valid hex: {e}") from e


def _int_field(entry: dict[str, Any], name: str, index: int) -> int:
    value = entry.get(name)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ChunkListFormatError(f"chunks[{index}].{name} must be an integer")
    return value


def parse_chunk_list(data: dict[str, Any]) -> StorageHostChunkList:
    """Build a chunk list from a decoded document.

    Raises:
        ChunkListFormatError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise ChunkListFormatError("Chunk list document must be a mapping")

    entries = data.get("chunks", [])
    if not isinstance(entries, list):
        raise ChunkListFormatError("'chunks' must be a list")

    infos = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ChunkListFormatError(f"chunks[{index}] must be a mapping")
        try:
            infos.append(
                ChunkInfo(
                    offset=_int_field(entry, "offset", index),
                    length=_int_field(entry, "length", index),
                    checksum=_hex_field(entry, "checksum", index),
                    wrapped_key=_hex_field(entry, "key", index),
                )
            )
        except ValueError as e:
            raise ChunkListFormatError(f"chunks[{index}]: {e}") from e

    host = data.get("host")
    return StorageHostChunkList(infos, host=str(host) if host is not None else None)


def chunk_list_to_dict(container: StorageHostChunkList) -> dict[str, Any]:
    """Convert a chunk list to a document."""
    data: dict[str, Any] = {
        "chunks": [
            {
                "offset": info.offset,
                "length": info.length,
                "checksum": info.checksum.hex(),
                "key": info.wrapped_key.hex(),
            }
            for info in container
        ]
    }
    if container.host is not None:
        data["host"] = container.host
    return data


def load_chunk_list(path: str | Path) -> StorageHostChunkList:
    """Load a chunk list from a ``.yaml``/``.yml`` or ``.json`` file.

    Raises:
        ChunkListFormatError: If the file cannot be parsed.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ChunkListFormatError(f"Failed to read chunk list {path}: {e}") from e

    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif suffix == ".json":
            data = json.loads(content)
        else:
            raise ChunkListFormatError(f"Unsupported chunk list format: {suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ChunkListFormatError(f"Failed to parse chunk list {path}: {e}") from e

    return parse_chunk_list(data)


def save_chunk_list(container: StorageHostChunkList, path: str | Path) -> None:
    """Write a chunk list as YAML or JSON, depending on the file suffix."""
    path = Path(path)
    data = chunk_list_to_dict(container)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
