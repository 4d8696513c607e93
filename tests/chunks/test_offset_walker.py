"""Tests for the chunk list offset walker.

This module tests:
- Contiguous chunk lists
- Duplicate offset entries
- Misordered (forward gap) entries
- Walker lifecycle
"""

from __future__ import annotations

import pytest

from chunkvault.chunks.base import (
    ChunkInfo,
    ChunkReference,
    StorageHostChunkList,
    WalkOutcome,
)
from chunkvault.chunks.walker import OffsetWalker


def _info(offset: int, length: int, tag: int = 0) -> ChunkInfo:
    return ChunkInfo(
        offset=offset,
        length=length,
        checksum=bytes([0x01, tag]) + b"\x00" * 19,
        wrapped_key=b"\x01" + bytes([tag]) * 16,
    )


def _walk(*infos: ChunkInfo, container_index: int = 0):
    walker = OffsetWalker(StorageHostChunkList(infos), container_index)
    return walker, list(walker.walk())


# =============================================================================
# Contiguous Lists
# =============================================================================


class TestContiguous:
    """Tests for lists whose offsets follow each other."""

    def test_empty_list(self):
        walker, steps = _walk()
        assert steps == []
        assert walker.offset == 0

    def test_all_entries_kept(self):
        walker, steps = _walk(_info(0, 10), _info(10, 5), _info(15, 7))

        assert [s.outcome for s in steps] == [WalkOutcome.KEPT] * 3
        assert [s.expected_offset for s in steps] == [0, 10, 15]
        assert walker.offset == 22

    def test_references_use_container_index(self):
        _, steps = _walk(_info(0, 4), _info(4, 4), container_index=3)

        assert [s.reference for s in steps] == [
            ChunkReference(3, 0),
            ChunkReference(3, 1),
        ]
        assert str(steps[1].reference) == "3:1"

    def test_zero_length_entry(self):
        """A zero length entry is kept and the next entry shares its offset."""
        walker, steps = _walk(_info(0, 0, tag=1), _info(0, 8, tag=2))

        assert [s.outcome for s in steps] == [WalkOutcome.KEPT, WalkOutcome.KEPT]
        assert walker.offset == 8

    def test_step_length(self):
        _, steps = _walk(_info(0, 10), _info(0, 10))
        assert steps[0].length == 10
        assert steps[1].length == 0


# =============================================================================
# Duplicates
# =============================================================================


class TestDuplicates:
    """Tests for entries behind the running offset."""

    def test_duplicate_does_not_advance(self):
        walker, steps = _walk(_info(0, 10, 1), _info(0, 10, 2), _info(10, 6, 3))

        assert [s.outcome for s in steps] == [
            WalkOutcome.KEPT,
            WalkOutcome.DUPLICATE,
            WalkOutcome.KEPT,
        ]
        assert walker.offset == 16

    def test_first_occurrence_wins(self):
        _, steps = _walk(_info(0, 10, 1), _info(0, 10, 2))
        assert steps[0].keep
        assert steps[0].info.checksum[1] == 1
        assert not steps[1].keep

    def test_backward_offset_is_duplicate(self):
        """Any offset behind the running offset is a duplicate, not only exact repeats."""
        _, steps = _walk(_info(0, 10), _info(10, 10), _info(5, 3))
        assert steps[2].outcome is WalkOutcome.DUPLICATE
        assert steps[2].expected_offset == 20


# =============================================================================
# Misordered Lists
# =============================================================================


class TestTermination:
    """Tests for entries ahead of the running offset."""

    def test_gap_terminates(self):
        walker, steps = _walk(_info(0, 10), _info(11, 5), _info(16, 5))

        assert [s.outcome for s in steps] == [WalkOutcome.KEPT, WalkOutcome.TERMINATED]
        assert steps[-1].expected_offset == 10
        assert walker.offset == 10

    def test_first_entry_not_at_zero(self):
        _, steps = _walk(_info(4, 10))
        assert len(steps) == 1
        assert steps[0].outcome is WalkOutcome.TERMINATED
        assert steps[0].length == 0

    def test_terminated_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="chunkvault"):
            _walk(_info(0, 10), _info(20, 5))
        assert "Bad chunk offset" in caplog.text


# =============================================================================
# Lifecycle
# =============================================================================


class TestWalkerLifecycle:
    """Tests for walker reuse and laziness."""

    def test_walk_once(self):
        walker = OffsetWalker(StorageHostChunkList([_info(0, 1)]), 0)
        list(walker.walk())
        with pytest.raises(RuntimeError):
            walker.walk()

    def test_walk_is_lazy(self):
        walker = OffsetWalker(StorageHostChunkList([_info(0, 4), _info(4, 4)]), 0)
        steps = walker.walk()
        assert walker.offset == 0
        next(steps)
        assert walker.offset == 4

    def test_stream_length_matches_walker(self):
        container = StorageHostChunkList(
            [_info(0, 10), _info(0, 10), _info(10, 3), _info(20, 1)]
        )
        walker = OffsetWalker(container, 0)
        list(walker.walk())
        assert container.stream_length == walker.offset == 13
