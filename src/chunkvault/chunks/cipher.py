"""Chunk decryption.

Chunk keys are delivered wrapped. Only type 0x01 keys are supported: a single
0x01 tag byte followed by a raw 16 byte AES key. Chunk ciphertext is AES-128
in CFB mode with a 128 bit feedback segment and an all-zero IV, so it can be
decrypted as a stream without block alignment or padding.

Example:
    >>> key = unwrap_key(chunk_info.wrapped_key)
    >>> reader = CipherReader(BoundedReader(stream, chunk_info.length), key)
    >>> plaintext = reader.read()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

try:
    from cryptography.hazmat.decrepit.ciphers.modes import CFB
except ImportError:
    from cryptography.hazmat.primitives.ciphers.modes import CFB

from chunkvault.chunks.base import StreamIOError, UnsupportedKeyFormatError
from chunkvault.chunks.io import DEFAULT_BUFFER_SIZE, NullWriter, Readable, copy_stream
from chunkvault.stores.base import StoreError

if TYPE_CHECKING:
    from chunkvault.chunks.base import DecryptionMetrics
    from chunkvault.chunks.gate import DedupGate
    from chunkvault.stores.base import Chunk, ChunkStore

logger = logging.getLogger(__name__)

KEY_TYPE_AES_128 = 0x01
WRAPPED_KEY_SIZE = 0x11
AES_BLOCK_SIZE = 16
ZERO_IV = b"\x00" * AES_BLOCK_SIZE


# =============================================================================
# Keys
# =============================================================================


def is_supported_key(wrapped_key: bytes) -> bool:
    """Check whether a wrapped key is a type 0x01 key."""
    return len(wrapped_key) == WRAPPED_KEY_SIZE and wrapped_key[0] == KEY_TYPE_AES_128


def unwrap_key(wrapped_key: bytes) -> bytes:
    """Extract the AES key from a type 0x01 wrapped key.

    Raises:
        UnsupportedKeyFormatError: If the key is not 17 bytes with a 0x01 tag.
    """
    if not is_supported_key(wrapped_key):
        raise UnsupportedKeyFormatError(wrapped_key)
    return bytes(wrapped_key[1:])


def wrap_key(key: bytes) -> bytes:
    """Build a type 0x01 wrapped key from a raw 16 byte AES key."""
    if len(key) != WRAPPED_KEY_SIZE - 1:
        raise ValueError(f"Invalid key size: expected 16 bytes, got {len(key)} bytes")
    return bytes([KEY_TYPE_AES_128]) + bytes(key)


# =============================================================================
# Streaming Decipher
# =============================================================================


class CipherReader:
    """Decrypting reader over a ciphertext source.

    Each ``read`` pulls at most ``size`` bytes of ciphertext from the source
    and returns the same number of plaintext bytes.
    """

    def __init__(self, source: Readable, key: bytes) -> None:
        self._source = source
        self._decryptor = Cipher(algorithms.AES(key), CFB(ZERO_IV)).decryptor()
        self._finalized = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if self._finalized:
            return b""
        data = self._source.read(size)
        if not data:
            self._finalized = True
            return self._decryptor.finalize()
        return self._decryptor.update(data)

    def close(self) -> None:
        if not self._finalized:
            self._finalized = True
            self._decryptor.finalize()


def decrypt_chunk(ciphertext: bytes, wrapped_key: bytes) -> bytes:
    """Decrypt a whole chunk held in memory."""
    decryptor = Cipher(algorithms.AES(unwrap_key(wrapped_key)), CFB(ZERO_IV)).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def encrypt_chunk(plaintext: bytes, wrapped_key: bytes) -> bytes:
    """Encrypt a chunk the way storage hosts serve it."""
    encryptor = Cipher(algorithms.AES(unwrap_key(wrapped_key)), CFB(ZERO_IV)).encryptor()
    return encryptor.update(plaintext) + encryptor.finalize()


# =============================================================================
# Chunk Decryptor
# =============================================================================


class ChunkDecryptor:
    """Decrypts one bounded chunk view into a chunk store.

    Store write failures are not raised: the write is aborted and the chunk
    simply does not resolve. Failures reading the source propagate as
    ``StreamIOError``. The caller is responsible for draining whatever part
    of the view is left unread.
    """

    def __init__(
        self,
        store: "ChunkStore[Any]",
        gate: "DedupGate",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        self._store = store
        self._gate = gate
        self._buffer_size = buffer_size

    def decrypt(
        self,
        view: Readable,
        wrapped_key: bytes,
        checksum: bytes,
        metrics: "DecryptionMetrics | None" = None,
    ) -> "Chunk | None":
        """Decrypt ``view`` into the store under ``checksum``.

        Returns:
            The chunk now stored under ``checksum``, if any.
        """
        try:
            key = unwrap_key(wrapped_key)
        except UnsupportedKeyFormatError as e:
            logger.warning(f"Skipping chunk 0x{checksum.hex()}: {e}")
            if metrics is not None:
                metrics.unsupported_keys += 1
        else:
            self._store_chunk(CipherReader(view, key), view, checksum, metrics)

        return self._gate.lookup(checksum)

    def _store_chunk(
        self,
        reader: CipherReader,
        view: Readable,
        checksum: bytes,
        metrics: "DecryptionMetrics | None",
    ) -> None:
        try:
            writer = self._store.open_writer(checksum)
        except (StoreError, OSError) as e:
            logger.warning(f"Store could not open writer for chunk 0x{checksum.hex()}: {e}")
            if metrics is not None:
                metrics.write_failures += 1
            return

        if writer is None:
            logger.debug(f"Store already contains chunk: 0x{checksum.hex()}")
            if metrics is not None:
                metrics.declined_writes += 1
            copy_stream(view, NullWriter(), self._buffer_size)
            return

        logger.debug(f"Copying chunk into store: 0x{checksum.hex()}")
        if metrics is not None:
            metrics.decrypted += 1
        try:
            copy_stream(reader, writer, self._buffer_size)
        except StreamIOError:
            writer.abort()
            raise
        except (StoreError, OSError) as e:
            logger.warning(f"Store write failed for chunk 0x{checksum.hex()}: {e}")
            if metrics is not None:
                metrics.write_failures += 1
            writer.abort()
            return
        except BaseException:
            writer.abort()
            raise
        finally:
            reader.close()

        try:
            writer.close()
        except (StoreError, OSError) as e:
            logger.warning(f"Store commit failed for chunk 0x{checksum.hex()}: {e}")
            if metrics is not None:
                metrics.write_failures += 1
