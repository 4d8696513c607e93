"""chunkvault - decrypt storage host chunk list streams into a chunk store.

Example:
    >>> import chunkvault as cv
    >>>
    >>> store = cv.get_store("filesystem", base_path=".chunkvault/chunks")
    >>> chunk_list = cv.load_chunk_list("container-0.yaml")
    >>> with open("container-0.bin", "rb") as stream:
    ...     chunks = cv.ChunkListDecrypter(store).apply(stream, chunk_list, 0)
"""

from chunkvault.chunks import (
    ChunkError,
    ChunkInfo,
    ChunkListDecrypter,
    ChunkListFormatError,
    ChunkReference,
    DecryptionMetrics,
    DecryptionResult,
    StorageHostChunkList,
    StreamIOError,
    UnsupportedKeyFormatError,
    decrypt_chunk_list,
    load_chunk_list,
)
from chunkvault.infrastructure import configure_logging, load_config
from chunkvault.stores import (
    Chunk,
    ChunkStore,
    FileSystemChunkStore,
    MemoryChunkStore,
    StoreError,
    compute_checksum,
    get_store,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Decryption
    "ChunkInfo",
    "ChunkListDecrypter",
    "ChunkReference",
    "DecryptionMetrics",
    "DecryptionResult",
    "StorageHostChunkList",
    "decrypt_chunk_list",
    "load_chunk_list",
    # Stores
    "Chunk",
    "ChunkStore",
    "FileSystemChunkStore",
    "MemoryChunkStore",
    "compute_checksum",
    "get_store",
    # Errors
    "ChunkError",
    "ChunkListFormatError",
    "StoreError",
    "StreamIOError",
    "UnsupportedKeyFormatError",
    # Infrastructure
    "configure_logging",
    "load_config",
]
