"""Dedup gate: checksum lookups against the chunk store."""

from __future__ import annotations

import logging
from typing import Any

from chunkvault.stores.base import Chunk, ChunkStore, StoreError

logger = logging.getLogger(__name__)


class DedupGate:
    """Checks the store for a chunk before and after decryption.

    The gate holds no state of its own. The lookup made after a decryption
    is the authoritative result: the store may have kept a concurrent write
    instead of ours, or rejected ours.
    """

    def __init__(self, store: ChunkStore[Any]) -> None:
        self._store = store

    @property
    def store(self) -> ChunkStore[Any]:
        return self._store

    def lookup(self, checksum: bytes) -> Chunk | None:
        """Look up ``checksum``; a failing store lookup counts as a miss."""
        try:
            chunk = self._store.lookup(checksum)
        except StoreError as e:
            logger.warning(f"Store lookup failed for chunk 0x{checksum.hex()}: {e}")
            return None
        if chunk is None:
            logger.debug(f"Chunk not present in store: 0x{checksum.hex()}")
        else:
            logger.debug(f"Chunk present in store: 0x{checksum.hex()}")
        return chunk
