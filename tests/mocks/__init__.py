"""Test doubles for chunk streams and chunk stores.

Builders produce encrypted chunk streams with matching chunk lists; the
stores and streams record how they were used or fail on demand.
"""

from tests.mocks.chunk_mocks import (
    ChunkListBuilder,
    ClosingStream,
    CountingStore,
    FailingLookupStore,
    FailingStream,
    FailingWriteStore,
    RacingStore,
    TrackingStream,
    make_key,
    make_plaintext,
)

__all__ = [
    # Builders
    "ChunkListBuilder",
    "make_key",
    "make_plaintext",
    # Streams
    "ClosingStream",
    "FailingStream",
    "TrackingStream",
    # Stores
    "CountingStore",
    "FailingLookupStore",
    "FailingWriteStore",
    "RacingStore",
]
