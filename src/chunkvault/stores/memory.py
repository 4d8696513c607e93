"""In-memory chunk store backend.

This module provides a chunk store that keeps data in memory. Data is not
persisted between sessions. It is safe to share between threads.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Iterator

from chunkvault.stores.base import (
    Chunk,
    ChunkStore,
    ChunkStoreConfig,
    ChunkWriter,
)

logger = logging.getLogger(__name__)


@dataclass
class MemoryChunkStoreConfig(ChunkStoreConfig):
    """Configuration for the memory chunk store."""

    pass


class MemoryChunk(Chunk):
    """Chunk held in memory."""

    def __init__(self, checksum: bytes, data: bytes) -> None:
        super().__init__(checksum, len(data))
        self._data = data

    def open(self) -> BinaryIO:
        return io.BytesIO(self._data)


class _MemoryChunkWriter(ChunkWriter):
    def __init__(self, store: "MemoryChunkStore", checksum: bytes) -> None:
        super().__init__(store, checksum)
        self._buffer = io.BytesIO()

    def _write_impl(self, data: bytes) -> None:
        self._buffer.write(data)

    def _commit(self) -> None:
        self._store._put(self._checksum, self._buffer.getvalue())
        self._buffer = io.BytesIO()

    def _discard(self) -> None:
        self._buffer = io.BytesIO()


class MemoryChunkStore(ChunkStore[MemoryChunkStoreConfig]):
    """Thread-safe in-memory chunk store.

    Only one writer per checksum can be open at a time; ``open_writer``
    returns None while a chunk is present or being written.

    Example:
        >>> store = MemoryChunkStore()
        >>> with store.open_writer(checksum) as writer:
        ...     writer.write(plaintext)
        >>> store.lookup(checksum).read_bytes() == plaintext
        True
    """

    def __init__(
        self,
        verify_digests: bool = True,
        strict_digests: bool = False,
        **kwargs: Any,
    ) -> None:
        """Initialize the memory store.

        Args:
            verify_digests: Verify plaintext against checksums on commit.
            strict_digests: Reject checksums of an unknown digest type.
            **kwargs: Ignored additional options.
        """
        super().__init__(
            MemoryChunkStoreConfig(
                verify_digests=verify_digests,
                strict_digests=strict_digests,
            )
        )
        self._lock = threading.RLock()
        self._chunks: dict[bytes, MemoryChunk] = {}
        self._pending: set[bytes] = set()

    @classmethod
    def _default_config(cls) -> MemoryChunkStoreConfig:
        return MemoryChunkStoreConfig()

    def _do_initialize(self) -> None:
        pass

    def lookup(self, checksum: bytes) -> Chunk | None:
        with self._lock:
            return self._chunks.get(bytes(checksum))

    def open_writer(self, checksum: bytes) -> ChunkWriter | None:
        checksum = bytes(checksum)
        with self._lock:
            if checksum in self._chunks or checksum in self._pending:
                return None
            self._pending.add(checksum)
        return _MemoryChunkWriter(self, checksum)

    def delete(self, checksum: bytes) -> bool:
        with self._lock:
            return self._chunks.pop(bytes(checksum), None) is not None

    def checksums(self) -> Iterator[bytes]:
        with self._lock:
            keys = list(self._chunks)
        return iter(keys)

    def put(self, data: bytes, checksum: bytes) -> Chunk | None:
        """Store ``data`` directly; returns the resulting chunk handle."""
        writer = self.open_writer(checksum)
        if writer is not None:
            with writer:
                writer.write(data)
        return self.lookup(checksum)

    def _put(self, checksum: bytes, data: bytes) -> None:
        with self._lock:
            self._chunks[checksum] = MemoryChunk(checksum, data)
        logger.debug(f"Stored chunk 0x{checksum.hex()} ({len(data)} bytes)")

    def _release(self, checksum: bytes) -> None:
        with self._lock:
            self._pending.discard(checksum)
