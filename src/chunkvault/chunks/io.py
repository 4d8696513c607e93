"""Stream helpers for the shared chunk stream.

All chunks of a container arrive on one stream, in order. Each chunk is read
through a ``BoundedReader`` view that never reads past the chunk and never
closes the shared stream, and every view is drained before the next chunk
is read so that later chunks stay aligned.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Protocol

from chunkvault.chunks.base import StreamIOError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 8192


class Readable(Protocol):
    def read(self, size: int = -1) -> bytes: ...


class Writable(Protocol):
    def write(self, data: bytes) -> int: ...


class BoundedReader:
    """Read-only view of at most ``limit`` bytes of a shared stream.

    Closing the view does not close the underlying stream. Used as a context
    manager, the view is drained on exit.

    Example:
        >>> with BoundedReader(stream, 16) as view:
        ...     header = view.read(4)
        >>> # the remaining 12 bytes have been consumed from ``stream``
    """

    def __init__(
        self,
        stream: BinaryIO | Readable,
        limit: int,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if limit < 0:
            raise ValueError(f"limit must be non-negative: {limit}")
        self._stream = stream
        self._limit = limit
        self._buffer_size = buffer_size
        self._consumed = 0
        self._eof = False
        self._closed = False

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def consumed(self) -> int:
        """Bytes read from the underlying stream through this view."""
        return self._consumed

    @property
    def remaining(self) -> int:
        """Bytes of the view not yet read (ignoring a premature end of stream)."""
        return self._limit - self._consumed

    @property
    def exhausted(self) -> bool:
        """True when the view has been fully read or the stream has ended."""
        return self._eof or self._consumed >= self._limit

    @property
    def short(self) -> bool:
        """True when the stream ended before the view's limit was reached."""
        return self._eof and self._consumed < self._limit

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining when negative).

        Raises:
            StreamIOError: If the underlying stream fails.
        """
        if self._closed:
            raise ValueError("I/O operation on closed BoundedReader")
        return self._read(size)

    def _read(self, size: int) -> bytes:
        if self.exhausted or size == 0:
            return b""

        if size < 0:
            parts = []
            while not self.exhausted:
                part = self._read(self._buffer_size)
                if part:
                    parts.append(part)
            return b"".join(parts)

        wanted = min(size, self.remaining)
        try:
            data = self._stream.read(wanted)
        except OSError as e:
            raise StreamIOError("Chunk stream read failed", e) from e
        except ValueError as e:
            # Closed underneath us, e.g. a caller cancelling the transfer
            raise StreamIOError("Chunk stream closed during read", e) from e

        if not data:
            self._eof = True
            return b""
        self._consumed += len(data)
        return data

    def drain(self) -> int:
        """Read and discard the rest of the view.

        Returns:
            Number of bytes discarded.
        """
        discarded = 0
        while True:
            data = self._read(self._buffer_size)
            if not data:
                return discarded
            discarded += len(data)

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "BoundedReader":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # A failed stream cannot be drained
        if exc_type is None or not issubclass(exc_type, StreamIOError):
            self.drain()
        self._closed = True

    def __repr__(self) -> str:
        return f"BoundedReader(limit={self._limit}, consumed={self._consumed})"


class NullWriter:
    """Write sink that discards everything."""

    def write(self, data: bytes) -> int:
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


def copy_stream(
    source: Readable,
    sink: Writable,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Copy ``source`` to ``sink`` in blocks until ``source`` is exhausted.

    Returns:
        Number of bytes copied.
    """
    total = 0
    while True:
        data = source.read(buffer_size)
        if not data:
            return total
        sink.write(data)
        total += len(data)


def close_quietly(stream: Any) -> None:
    """Close ``stream``, logging rather than raising close errors."""
    if stream is None:
        return
    try:
        stream.close()
    except OSError as e:
        logger.debug(f"Ignoring error closing {stream!r}: {e}")
