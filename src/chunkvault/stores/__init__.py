"""Content-addressable chunk stores.

Stores hold decrypted chunk data keyed by checksum and are shared between
concurrent decryptions.

Example:
    >>> from chunkvault.stores import get_store
    >>>
    >>> store = get_store("filesystem", base_path=".chunkvault/chunks")
    >>> chunk = store.lookup(checksum)
"""

from chunkvault.stores.base import (
    Chunk,
    ChunkStore,
    ChunkStoreConfig,
    ChunkWriter,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from chunkvault.stores.digests import (
    ChunkDigester,
    compute_checksum,
    new_digester,
    verify_checksum,
)
from chunkvault.stores.factory import get_store, list_available_backends, register_store
from chunkvault.stores.filesystem import FileChunk, FileSystemChunkStore
from chunkvault.stores.memory import MemoryChunk, MemoryChunkStore

__all__ = [
    # Base classes
    "Chunk",
    "ChunkStore",
    "ChunkStoreConfig",
    "ChunkWriter",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    # Digests
    "ChunkDigester",
    "compute_checksum",
    "new_digester",
    "verify_checksum",
    # Backends
    "FileChunk",
    "FileSystemChunkStore",
    "MemoryChunk",
    "MemoryChunkStore",
    # Factory functions
    "get_store",
    "list_available_backends",
    "register_store",
]
