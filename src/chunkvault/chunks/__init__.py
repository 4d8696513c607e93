"""Chunk list stream decryption.

Example:
    >>> from chunkvault.chunks import ChunkListDecrypter
    >>>
    >>> decrypter = ChunkListDecrypter(store)
    >>> chunks = decrypter.apply(stream, chunk_list, container_index=0)
"""

from chunkvault.chunks.base import (
    ChunkError,
    ChunkInfo,
    ChunkListFormatError,
    ChunkReference,
    DecryptionMetrics,
    DecryptionResult,
    StorageHostChunkList,
    StreamIOError,
    UnsupportedKeyFormatError,
    WalkOutcome,
    WalkStep,
)
from chunkvault.chunks.cipher import (
    ChunkDecryptor,
    CipherReader,
    decrypt_chunk,
    encrypt_chunk,
    is_supported_key,
    unwrap_key,
    wrap_key,
)
from chunkvault.chunks.container import (
    chunk_list_to_dict,
    load_chunk_list,
    parse_chunk_list,
    save_chunk_list,
)
from chunkvault.chunks.decrypter import ChunkListDecrypter, decrypt_chunk_list
from chunkvault.chunks.gate import DedupGate
from chunkvault.chunks.io import BoundedReader, NullWriter, copy_stream
from chunkvault.chunks.walker import OffsetWalker

__all__ = [
    # Types
    "ChunkInfo",
    "ChunkReference",
    "DecryptionMetrics",
    "DecryptionResult",
    "StorageHostChunkList",
    "WalkOutcome",
    "WalkStep",
    # Exceptions
    "ChunkError",
    "ChunkListFormatError",
    "StreamIOError",
    "UnsupportedKeyFormatError",
    # Components
    "BoundedReader",
    "ChunkDecryptor",
    "ChunkListDecrypter",
    "CipherReader",
    "DedupGate",
    "NullWriter",
    "OffsetWalker",
    # Functions
    "chunk_list_to_dict",
    "copy_stream",
    "decrypt_chunk",
    "decrypt_chunk_list",
    "encrypt_chunk",
    "is_supported_key",
    "load_chunk_list",
    "parse_chunk_list",
    "save_chunk_list",
    "unwrap_key",
    "wrap_key",
]
