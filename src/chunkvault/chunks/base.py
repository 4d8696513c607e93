"""Base types for chunk list decryption.

A storage host chunk list describes a contiguous stream of encrypted chunks.
Each ``ChunkInfo`` gives the offset and length of one chunk within the
stream, the checksum its plaintext is stored under and the wrapped key that
decrypts it. Entries are in declaration order, which is not necessarily
stream order, and several entries may describe the same bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, Sequence

if TYPE_CHECKING:
    from chunkvault.stores.base import Chunk

_U32_MAX = 0xFFFFFFFF


# =============================================================================
# Exceptions
# =============================================================================


class ChunkError(Exception):
    """Base exception for chunk decryption errors."""

    pass


class StreamIOError(ChunkError):
    """Reading the shared chunk stream failed.

    This is the only hard failure of a chunk list decryption; the partial
    result is discarded.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)


class UnsupportedKeyFormatError(ChunkError):
    """A wrapped chunk key is not in the supported 0x01 format."""

    def __init__(self, wrapped_key: bytes) -> None:
        self.wrapped_key = bytes(wrapped_key)
        super().__init__(f"Unsupported chunk encryption key: 0x{self.wrapped_key.hex()}")


class ChunkListFormatError(ChunkError):
    """A chunk list document could not be parsed."""

    pass


# =============================================================================
# Chunk List
# =============================================================================


@dataclass(frozen=True)
class ChunkInfo:
    """Metadata of one encrypted chunk within a stream.

    Attributes:
        offset: Offset of the chunk's ciphertext in the stream.
        length: Length of the ciphertext in bytes.
        checksum: Checksum of the plaintext; the store key.
        wrapped_key: Wrapped chunk encryption key.
    """

    offset: int
    length: int
    checksum: bytes
    wrapped_key: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.offset <= _U32_MAX:
            raise ValueError(f"offset out of range: {self.offset}")
        if not 0 <= self.length <= _U32_MAX:
            raise ValueError(f"length out of range: {self.length}")
        if not self.checksum:
            raise ValueError("checksum must not be empty")
        object.__setattr__(self, "checksum", bytes(self.checksum))
        object.__setattr__(self, "wrapped_key", bytes(self.wrapped_key))

    def __repr__(self) -> str:
        return (
            f"ChunkInfo(offset={self.offset}, length={self.length}, "
            f"checksum=0x{self.checksum.hex()})"
        )


@dataclass(frozen=True)
class StorageHostChunkList:
    """Ordered chunk metadata of one container.

    Attributes:
        chunk_info: Entries in declaration order.
        host: Optional description of the storage host serving the stream.
    """

    chunk_info: tuple[ChunkInfo, ...] = ()
    host: str | None = None

    def __init__(self, chunk_info: Sequence[ChunkInfo] = (), host: str | None = None) -> None:
        object.__setattr__(self, "chunk_info", tuple(chunk_info))
        object.__setattr__(self, "host", host)

    def __len__(self) -> int:
        return len(self.chunk_info)

    def __iter__(self) -> Iterator[ChunkInfo]:
        return iter(self.chunk_info)

    @property
    def stream_length(self) -> int:
        """Bytes of stream covered by the contiguous prefix of the list."""
        offset = 0
        for info in self.chunk_info:
            if info.offset > offset:
                break
            if info.offset == offset:
                offset += info.length
        return offset


@dataclass(frozen=True, order=True)
class ChunkReference:
    """Position of a chunk within a set of containers."""

    container_index: int
    chunk_index: int

    def __str__(self) -> str:
        return f"{self.container_index}:{self.chunk_index}"


# =============================================================================
# Walk Outcomes
# =============================================================================


class WalkOutcome(str, Enum):
    """How the offset walker classified a chunk list entry."""

    # Offset matches the running offset; the entry owns the next bytes
    KEPT = "kept"

    # Offset behind the running offset; bytes already consumed
    DUPLICATE = "duplicate"

    # Offset ahead of the running offset; the rest of the list is unusable
    TERMINATED = "terminated"


@dataclass(frozen=True)
class WalkStep:
    """One entry as seen by the offset walker.

    Attributes:
        reference: Reference of the entry.
        info: The entry itself.
        outcome: Classification of the entry.
        expected_offset: Running offset when the entry was evaluated.
    """

    reference: ChunkReference
    info: ChunkInfo
    outcome: WalkOutcome
    expected_offset: int

    @property
    def keep(self) -> bool:
        return self.outcome is WalkOutcome.KEPT

    @property
    def length(self) -> int:
        """Stream bytes owned by this step."""
        return self.info.length if self.keep else 0


# =============================================================================
# Results
# =============================================================================


@dataclass
class DecryptionMetrics:
    """Counters for one chunk list decryption.

    Attributes:
        kept: Entries whose offset matched the running offset.
        duplicates: Entries skipped as duplicates.
        terminated: Whether the walk stopped on a misordered entry.
        store_hits: Kept entries already present in the store.
        decrypted: Kept entries run through the cipher.
        unsupported_keys: Kept entries with an unsupported wrapped key.
        declined_writes: Writers the store declined to open.
        write_failures: Store writes that failed and were dropped.
        resolved: Entries present in the result.
        bytes_consumed: Stream bytes consumed.
        short_reads: Kept entries for which the stream ended early.
        elapsed_ms: Wall time of the call.
    """

    kept: int = 0
    duplicates: int = 0
    terminated: bool = False
    store_hits: int = 0
    decrypted: int = 0
    unsupported_keys: int = 0
    declined_writes: int = 0
    write_failures: int = 0
    resolved: int = 0
    bytes_consumed: int = 0
    short_reads: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kept": self.kept,
            "duplicates": self.duplicates,
            "terminated": self.terminated,
            "store_hits": self.store_hits,
            "decrypted": self.decrypted,
            "unsupported_keys": self.unsupported_keys,
            "declined_writes": self.declined_writes,
            "write_failures": self.write_failures,
            "resolved": self.resolved,
            "bytes_consumed": self.bytes_consumed,
            "short_reads": self.short_reads,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@dataclass
class DecryptionResult:
    """Chunks resolved by one chunk list decryption, with its metrics."""

    chunks: dict[ChunkReference, "Chunk"] = field(default_factory=dict)
    metrics: DecryptionMetrics = field(default_factory=DecryptionMetrics)

    def __len__(self) -> int:
        return len(self.chunks)
