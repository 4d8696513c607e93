"""Chunk checksum digests.

A chunk checksum is a one-byte digest type followed by the digest itself.
Stores use this module to verify plaintext before accepting a write, so that
a chunk present in a store can be trusted by checksum alone.

Supported types:
    - 0x01: first 20 bytes of SHA-256(SHA-256(data))

Example:
    >>> checksum = compute_checksum(b"chunk data")
    >>> digester = new_digester(checksum)
    >>> digester.update(b"chunk data")
    >>> digester.matches(checksum)
    True
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from typing import Callable

DIGEST_TYPE_SHA256_X2_160 = 0x01


@dataclass(frozen=True)
class DigestSpec:
    """Describes how a checksum digest type is computed.

    Attributes:
        type_byte: Leading byte identifying the digest type.
        name: Human readable name.
        factory: Creates the inner hashlib object.
        finalize: Turns the inner digest into the stored digest bytes.
        size: Size of the stored digest (without the type byte).
    """

    type_byte: int
    name: str
    factory: Callable[[], "hashlib._Hash"]
    finalize: Callable[[bytes], bytes]
    size: int


def _sha256_x2_160(inner: bytes) -> bytes:
    return hashlib.sha256(inner).digest()[:20]


_DIGESTS: dict[int, DigestSpec] = {
    DIGEST_TYPE_SHA256_X2_160: DigestSpec(
        type_byte=DIGEST_TYPE_SHA256_X2_160,
        name="sha256x2-160",
        factory=hashlib.sha256,
        finalize=_sha256_x2_160,
        size=20,
    ),
}


def digest_spec(checksum: bytes) -> DigestSpec | None:
    """Get the digest spec for a checksum, or None if the type is unknown."""
    if not checksum:
        return None
    spec = _DIGESTS.get(checksum[0])
    if spec is None or len(checksum) != spec.size + 1:
        return None
    return spec


class ChunkDigester:
    """Incremental digest over chunk plaintext."""

    def __init__(self, spec: DigestSpec) -> None:
        self._spec = spec
        self._hash = spec.factory()

    @property
    def spec(self) -> DigestSpec:
        return self._spec

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def checksum(self) -> bytes:
        """Get the full checksum (type byte + digest) of the data so far."""
        digest = self._spec.finalize(self._hash.digest())
        return bytes([self._spec.type_byte]) + digest

    def matches(self, checksum: bytes) -> bool:
        """Timing-safe comparison against an expected checksum."""
        return hmac.compare_digest(self.checksum(), checksum)


def new_digester(checksum: bytes) -> ChunkDigester | None:
    """Create a digester able to verify ``checksum``.

    Returns:
        A digester, or None when the checksum's digest type is not supported.
    """
    spec = digest_spec(checksum)
    if spec is None:
        return None
    return ChunkDigester(spec)


def compute_checksum(data: bytes, digest_type: int = DIGEST_TYPE_SHA256_X2_160) -> bytes:
    """Compute the checksum of ``data`` for the given digest type.

    Raises:
        ValueError: If the digest type is not supported.
    """
    spec = _DIGESTS.get(digest_type)
    if spec is None:
        raise ValueError(f"Unsupported digest type: 0x{digest_type:02x}")
    digester = ChunkDigester(spec)
    digester.update(data)
    return digester.checksum()


def verify_checksum(checksum: bytes, data: bytes) -> bool | None:
    """Verify ``data`` against ``checksum``.

    Returns:
        True/False for supported digest types, None when the type is unknown.
    """
    digester = new_digester(checksum)
    if digester is None:
        return None
    digester.update(data)
    return digester.matches(checksum)
