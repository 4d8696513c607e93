"""Filesystem-based chunk store backend.

Chunks are stored one file per checksum, fanned out into sub-directories by
the first byte of the checksum hex string::

    <base_path>/<namespace>/ab/ab12cd...

Writes go to a temporary file in the target directory and are made visible
with an atomic rename once the chunk has been verified, so readers never see
partial chunks.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from chunkvault.stores.base import (
    Chunk,
    ChunkStore,
    ChunkStoreConfig,
    ChunkWriter,
    StoreError,
    StoreReadError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdef")


@dataclass
class FileSystemChunkStoreConfig(ChunkStoreConfig):
    """Configuration for the filesystem chunk store.

    Attributes:
        base_path: Base directory for chunk files.
        namespace: Sub-directory isolating different stores under one base.
        create_dirs: Whether to create directories if they don't exist.
        sync_on_commit: Whether to fsync chunk files before the rename.
    """

    base_path: str = ".chunkvault/chunks"
    namespace: str = ""
    create_dirs: bool = True
    sync_on_commit: bool = True

    def get_full_path(self) -> Path:
        path = Path(self.base_path)
        if self.namespace:
            path = path / self.namespace
        return path


class FileChunk(Chunk):
    """Chunk stored in a file."""

    def __init__(self, checksum: bytes, path: Path, size: int) -> None:
        super().__init__(checksum, size)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> BinaryIO:
        try:
            return open(self._path, "rb")
        except OSError as e:
            raise StoreReadError(f"Failed to open chunk {self._path}: {e}") from e


class _FileChunkWriter(ChunkWriter):
    """Write-to-temp-then-rename chunk writer."""

    def __init__(self, store: "FileSystemChunkStore", checksum: bytes, path: Path) -> None:
        super().__init__(store, checksum)
        self._path = path
        self._sync = store.config.sync_on_commit
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            store._release(checksum)
            raise StoreWriteError(f"Failed to create temp file for {path}: {e}") from e
        self._temp_path = Path(temp_path)
        self._file = os.fdopen(fd, "wb")

    def _write_impl(self, data: bytes) -> None:
        try:
            self._file.write(data)
        except OSError as e:
            raise StoreWriteError(f"Failed to write chunk {self._path}: {e}") from e

    def _commit(self) -> None:
        try:
            self._file.flush()
            if self._sync:
                os.fsync(self._file.fileno())
            self._file.close()
            self._temp_path.replace(self._path)
        except OSError as e:
            raise StoreWriteError(f"Failed to commit chunk {self._path}: {e}") from e
        logger.debug(f"Stored chunk 0x{self._checksum.hex()} at {self._path}")

    def _discard(self) -> None:
        if not self._file.closed:
            self._file.close()
        self._temp_path.unlink(missing_ok=True)


class FileSystemChunkStore(ChunkStore[FileSystemChunkStoreConfig]):
    """Filesystem-based chunk store.

    Example:
        >>> store = FileSystemChunkStore(base_path="/tmp/chunks")
        >>> chunk = store.lookup(checksum)
    """

    def __init__(
        self,
        base_path: str | Path = ".chunkvault/chunks",
        namespace: str = "",
        verify_digests: bool = True,
        strict_digests: bool = False,
        **kwargs: Any,
    ) -> None:
        """Initialize the filesystem store.

        Args:
            base_path: Base directory for chunk files.
            namespace: Optional sub-directory.
            verify_digests: Verify plaintext against checksums on commit.
            strict_digests: Reject checksums of an unknown digest type.
            **kwargs: Additional configuration options.
        """
        config = FileSystemChunkStoreConfig(
            base_path=str(base_path),
            namespace=namespace,
            verify_digests=verify_digests,
            strict_digests=strict_digests,
            **{k: v for k, v in kwargs.items() if hasattr(FileSystemChunkStoreConfig, k)},
        )
        super().__init__(config)
        self._lock = threading.Lock()
        self._pending: set[bytes] = set()
        self._root: Path = config.get_full_path()

    @classmethod
    def _default_config(cls) -> FileSystemChunkStoreConfig:
        return FileSystemChunkStoreConfig()

    def _do_initialize(self) -> None:
        if self._config.create_dirs:
            self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _chunk_path(self, checksum: bytes) -> Path:
        name = checksum.hex()
        if not name:
            raise StoreError("Empty checksum")
        return self._root / name[:2] / name

    def lookup(self, checksum: bytes) -> Chunk | None:
        self.initialize()
        checksum = bytes(checksum)
        path = self._chunk_path(checksum)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreReadError(f"Failed to stat chunk {path}: {e}") from e
        return FileChunk(checksum, path, size)

    def open_writer(self, checksum: bytes) -> ChunkWriter | None:
        self.initialize()
        checksum = bytes(checksum)
        path = self._chunk_path(checksum)
        with self._lock:
            if checksum in self._pending or path.exists():
                return None
            self._pending.add(checksum)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._release(checksum)
            raise StoreWriteError(f"Failed to create {path.parent}: {e}") from e
        return _FileChunkWriter(self, checksum, path)

    def delete(self, checksum: bytes) -> bool:
        self.initialize()
        path = self._chunk_path(bytes(checksum))
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def checksums(self) -> Iterator[bytes]:
        self.initialize()
        if not self._root.exists():
            return
        for directory in sorted(self._root.iterdir()):
            if not directory.is_dir() or len(directory.name) != 2:
                continue
            for path in sorted(directory.iterdir()):
                name = path.name
                if name.startswith(".") or not set(name) <= _HEX_DIGITS or len(name) % 2:
                    continue
                yield bytes.fromhex(name)

    def _release(self, checksum: bytes) -> None:
        with self._lock:
            self._pending.discard(checksum)
