"""Base classes and interfaces for chunk stores.

A chunk store is a content-addressable store of decrypted chunk data keyed by
checksum. It is shared between concurrent decryptions, so implementations are
responsible for their own locking and for guaranteeing a single writer per
checksum. Callers treat ``lookup`` and ``open_writer`` as atomic and
authoritative and never assume their own write is the one that was kept.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, Generic, Iterator, TypeVar

from chunkvault.stores.digests import ChunkDigester, new_digester

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class StoreError(Exception):
    """Base exception for all store-related errors."""

    pass


class StoreWriteError(StoreError):
    """Raised when writing to store fails."""

    pass


class StoreReadError(StoreError):
    """Raised when reading from store fails."""

    pass


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class ChunkStoreConfig:
    """Base configuration for all chunk stores.

    Attributes:
        verify_digests: Verify plaintext against its checksum before accepting
            a write. Only checksums of a known digest type can be verified.
        strict_digests: Reject writes whose checksum digest type is unknown
            (only relevant when ``verify_digests`` is set).
    """

    verify_digests: bool = True
    strict_digests: bool = False


ConfigT = TypeVar("ConfigT", bound=ChunkStoreConfig)


# =============================================================================
# Chunk Handles
# =============================================================================


class Chunk(ABC):
    """Handle to decrypted chunk data held by a store.

    Chunks are addressed by checksum; two handles with the same checksum are
    equal regardless of which store or backend produced them.
    """

    def __init__(self, checksum: bytes, size: int) -> None:
        self._checksum = bytes(checksum)
        self._size = size

    @property
    def checksum(self) -> bytes:
        return self._checksum

    @property
    def size(self) -> int:
        return self._size

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open the chunk data for reading."""
        pass

    def read_bytes(self) -> bytes:
        """Read the whole chunk into memory."""
        with self.open() as f:
            return f.read()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chunk):
            return NotImplemented
        return self._checksum == other._checksum

    def __hash__(self) -> int:
        return hash(self._checksum)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(checksum=0x{self._checksum.hex()}, size={self._size})"


# =============================================================================
# Writers
# =============================================================================


class ChunkWriter(ABC):
    """Write sink for a single chunk.

    ``close()`` commits the written data to the store, ``abort()`` discards
    it. The store decides on commit whether the write is accepted; a rejected
    write simply leaves the chunk absent.
    """

    def __init__(self, store: "ChunkStore[Any]", checksum: bytes) -> None:
        self._store = store
        self._checksum = bytes(checksum)
        self._digester = store._new_digester(checksum)
        self._bytes_written = 0
        self._closed = False
        self._accepted: bool | None = None

    @property
    def checksum(self) -> bytes:
        return self._checksum

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def accepted(self) -> bool | None:
        """Whether the store accepted the write (None until closed)."""
        return self._accepted

    def write(self, data: bytes) -> int:
        """Write plaintext data.

        Raises:
            StoreWriteError: If the writer is closed or the backend fails.
        """
        if self._closed:
            raise StoreWriteError("Cannot write to a closed chunk writer")
        self._write_impl(data)
        if self._digester is not None:
            self._digester.update(data)
        self._bytes_written += len(data)
        return len(data)

    def close(self) -> None:
        """Commit the chunk if it passes verification, then release the writer."""
        if self._closed:
            return
        self._closed = True
        try:
            self._accepted = self._store._verify(self._checksum, self._digester)
            if self._accepted:
                self._commit()
            else:
                self._discard()
        except BaseException:
            self._accepted = False
            self._discard()
            raise
        finally:
            self._store._release(self._checksum)

    def abort(self) -> None:
        """Discard anything written and release the writer."""
        if self._closed:
            return
        self._closed = True
        self._accepted = False
        try:
            self._discard()
        finally:
            self._store._release(self._checksum)

    def __enter__(self) -> "ChunkWriter":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    @abstractmethod
    def _write_impl(self, data: bytes) -> None:
        pass

    @abstractmethod
    def _commit(self) -> None:
        """Make the written data visible under the writer's checksum."""
        pass

    @abstractmethod
    def _discard(self) -> None:
        pass


# =============================================================================
# Abstract Chunk Store
# =============================================================================


class ChunkStore(ABC, Generic[ConfigT]):
    """Abstract base class for content-addressable chunk stores.

    Example:
        >>> with MemoryChunkStore() as store:
        ...     writer = store.open_writer(checksum)
        ...     if writer is not None:
        ...         with writer:
        ...             writer.write(plaintext)
        ...     chunk = store.lookup(checksum)
    """

    def __init__(self, config: ConfigT | None = None) -> None:
        """Initialize the store with optional configuration.

        Args:
            config: Store configuration. If None, uses default configuration.
        """
        self._config = config or self._default_config()
        self._initialized = False

    @classmethod
    @abstractmethod
    def _default_config(cls) -> ConfigT:
        """Create default configuration for this store type."""
        pass

    @property
    def config(self) -> ConfigT:
        """Get the store configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Initialize the store (create directories, etc.).

        This method is called automatically on first use, but can be called
        explicitly for early initialization.
        """
        if not self._initialized:
            self._do_initialize()
            self._initialized = True

    @abstractmethod
    def _do_initialize(self) -> None:
        """Perform actual initialization. Override in subclasses."""
        pass

    def close(self) -> None:
        """Close any open resources."""
        pass

    def __enter__(self) -> "ChunkStore[ConfigT]":
        self.initialize()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Chunk Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    def lookup(self, checksum: bytes) -> Chunk | None:
        """Get the chunk stored under ``checksum``, if present."""
        pass

    @abstractmethod
    def open_writer(self, checksum: bytes) -> ChunkWriter | None:
        """Open a writer for ``checksum``.

        Returns:
            A writer, or None when the chunk is already present or another
            writer for the same checksum is in flight.
        """
        pass

    @abstractmethod
    def delete(self, checksum: bytes) -> bool:
        """Delete a chunk. Returns True if something was deleted."""
        pass

    @abstractmethod
    def checksums(self) -> Iterator[bytes]:
        """Iterate over the checksums of all stored chunks."""
        pass

    def __contains__(self, checksum: object) -> bool:
        if not isinstance(checksum, (bytes, bytearray)):
            return False
        return self.lookup(bytes(checksum)) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self.checksums())

    # -------------------------------------------------------------------------
    # Writer Support
    # -------------------------------------------------------------------------

    def _new_digester(self, checksum: bytes) -> ChunkDigester | None:
        if not self._config.verify_digests:
            return None
        return new_digester(checksum)

    def _verify(self, checksum: bytes, digester: ChunkDigester | None) -> bool:
        """Decide whether a finished write is accepted."""
        if not self._config.verify_digests:
            return True
        if digester is None:
            if self._config.strict_digests:
                logger.warning(
                    f"Rejecting chunk with unsupported checksum type: 0x{checksum.hex()}"
                )
                return False
            return True
        if not digester.matches(checksum):
            logger.warning(f"Rejecting chunk with checksum mismatch: 0x{checksum.hex()}")
            return False
        return True

    @abstractmethod
    def _release(self, checksum: bytes) -> None:
        """Called by a writer once it is closed or aborted."""
        pass
