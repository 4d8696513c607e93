"""Storage host chunk list decryption.

``ChunkListDecrypter`` consumes the stream served for one storage host chunk
list and deposits each chunk's plaintext into a chunk store.

Processing per chunk list entry, in declaration order:

1. The offset walker decides whether the entry owns the next stream bytes.
   Duplicate entries are skipped without consuming anything; an entry ahead
   of the running offset ends the walk and the partial result is returned.
2. The entry's bytes are bound to a ``BoundedReader`` view.
3. If the store already holds the checksum the chunk is taken from the
   store, otherwise the view is decrypted into the store.
4. The view is drained, hit or miss, so the next entry starts at the right
   offset.

The input stream is always closed on return. Only failures reading the
stream are raised (as ``StreamIOError``); everything else about a single
chunk is logged and results in that chunk being absent from the result.

Example:
    >>> decrypter = ChunkListDecrypter(store)
    >>> with open("container.bin", "rb") as stream:
    ...     chunks = decrypter.apply(stream, chunk_list, container_index=0)
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, BinaryIO

from chunkvault.chunks.base import (
    ChunkReference,
    DecryptionMetrics,
    DecryptionResult,
    StorageHostChunkList,
    WalkOutcome,
    WalkStep,
)
from chunkvault.chunks.cipher import ChunkDecryptor
from chunkvault.chunks.gate import DedupGate
from chunkvault.chunks.io import DEFAULT_BUFFER_SIZE, BoundedReader, Readable, close_quietly
from chunkvault.chunks.walker import OffsetWalker
from chunkvault.infrastructure.logging import TRACE

if TYPE_CHECKING:
    from chunkvault.infrastructure.config import ChunkVaultConfig
    from chunkvault.stores.base import Chunk, ChunkStore

logger = logging.getLogger(__name__)


class ChunkListDecrypter:
    """Decrypts storage host chunk list streams into a chunk store.

    Limited to type 0x01 chunk keys. Instances hold no per-call state and can
    be shared between threads, each call working on its own stream.
    """

    def __init__(
        self,
        store: "ChunkStore[Any]",
        *,
        buffer_size: int | None = None,
        config: "ChunkVaultConfig | None" = None,
    ) -> None:
        """Initialize the decrypter.

        Args:
            store: Chunk store receiving the plaintext.
            buffer_size: Copy buffer size. Defaults to the configured value.
            config: Optional configuration.
        """
        if buffer_size is None:
            buffer_size = config.buffer_size if config is not None else DEFAULT_BUFFER_SIZE
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive: {buffer_size}")

        self._store = store
        self._buffer_size = buffer_size
        self._gate = DedupGate(store)
        self._decryptor = ChunkDecryptor(store, self._gate, buffer_size)

    @property
    def store(self) -> "ChunkStore[Any]":
        return self._store

    def apply(
        self,
        stream: BinaryIO | Readable,
        container: StorageHostChunkList,
        container_index: int,
    ) -> dict[ChunkReference, "Chunk"]:
        """Decrypt ``stream`` and return the chunks it resolved to.

        Raises:
            StreamIOError: If reading the stream fails.
        """
        return self.apply_with_metrics(stream, container, container_index).chunks

    def apply_with_metrics(
        self,
        stream: BinaryIO | Readable,
        container: StorageHostChunkList,
        container_index: int,
    ) -> DecryptionResult:
        """Decrypt ``stream``, returning the chunks together with call metrics.

        Raises:
            StreamIOError: If reading the stream fails.
        """
        logger.log(TRACE, f"<< apply() - stream: {stream!r} container: {container_index}")

        start_time = time.perf_counter()
        metrics = DecryptionMetrics()
        chunks: dict[ChunkReference, Chunk] = {}
        try:
            for step in OffsetWalker(container, container_index).walk():
                if step.outcome is WalkOutcome.TERMINATED:
                    metrics.terminated = True
                    break
                if step.outcome is WalkOutcome.DUPLICATE:
                    metrics.duplicates += 1
                    continue

                metrics.kept += 1
                chunk = self._chunk(stream, step, metrics)
                if chunk is not None:
                    chunks[step.reference] = chunk
        finally:
            close_quietly(stream)
            metrics.elapsed_ms = (time.perf_counter() - start_time) * 1000

        metrics.resolved = len(chunks)
        logger.log(TRACE, f">> apply() - chunks: {len(chunks)} metrics: {metrics.to_dict()}")
        return DecryptionResult(chunks=chunks, metrics=metrics)

    def _chunk(
        self,
        stream: BinaryIO | Readable,
        step: WalkStep,
        metrics: DecryptionMetrics,
    ) -> "Chunk | None":
        info = step.info
        logger.log(TRACE, f"<< chunk() - {step.reference}: {info!r}")

        with BoundedReader(stream, step.length, self._buffer_size) as view:
            chunk = self._gate.lookup(info.checksum)
            if chunk is not None:
                metrics.store_hits += 1
            else:
                chunk = self._decryptor.decrypt(view, info.wrapped_key, info.checksum, metrics)

        metrics.bytes_consumed += view.consumed
        if view.short:
            metrics.short_reads += 1
            logger.warning(
                f"Stream ended early for chunk {step.reference}: "
                f"{view.consumed} of {info.length} bytes"
            )

        logger.log(TRACE, f">> chunk() - {step.reference}: {chunk!r}")
        return chunk


def decrypt_chunk_list(
    store: "ChunkStore[Any]",
    stream: BinaryIO | Readable,
    container: StorageHostChunkList,
    container_index: int,
    **kwargs: Any,
) -> dict[ChunkReference, "Chunk"]:
    """Decrypt one chunk list stream into ``store``.

    Args:
        store: Chunk store receiving the plaintext.
        stream: The chunk list stream; closed on return.
        container: The chunk list describing the stream.
        container_index: Index of the chunk list within its file.
        **kwargs: Passed to ``ChunkListDecrypter``.
    """
    return ChunkListDecrypter(store, **kwargs).apply(stream, container, container_index)
