"""Offset walker over a storage host chunk list.

Entries of a chunk list can reference the same stream offset with different
wrapped keys; such entries are assumed to decrypt to the same data. The
walker tracks the running stream offset and classifies each entry so that
only one entry owns any given range of stream bytes.
"""

from __future__ import annotations

import logging
from typing import Iterator

from chunkvault.chunks.base import (
    ChunkReference,
    StorageHostChunkList,
    WalkOutcome,
    WalkStep,
)

logger = logging.getLogger(__name__)


class OffsetWalker:
    """Walks chunk list entries in declaration order.

    For each entry, compared with the running offset:
        - equal: ``KEPT``, the running offset advances by the entry length
        - behind: ``DUPLICATE``, nothing advances
        - ahead: ``TERMINATED``, the walk ends

    A walker is single use.

    Example:
        >>> walker = OffsetWalker(container, container_index=0)
        >>> for step in walker.walk():
        ...     if step.keep:
        ...         process(step)
    """

    def __init__(self, container: StorageHostChunkList, container_index: int) -> None:
        self._container = container
        self._container_index = container_index
        self._offset = 0
        self._started = False

    @property
    def offset(self) -> int:
        """Running stream offset: the total length of kept entries so far."""
        return self._offset

    def walk(self) -> Iterator[WalkStep]:
        """Lazily classify the container's entries.

        Raises:
            RuntimeError: If the walker has already been used.
        """
        if self._started:
            raise RuntimeError("OffsetWalker can only be walked once")
        self._started = True
        return self._steps()

    def _steps(self) -> Iterator[WalkStep]:
        for index, info in enumerate(self._container.chunk_info):
            reference = ChunkReference(self._container_index, index)

            if info.offset > self._offset:
                logger.warning(
                    f"Bad chunk offset in container {self._container_index}: "
                    f"entry {index} at {info.offset}, expected {self._offset}"
                )
                yield WalkStep(reference, info, WalkOutcome.TERMINATED, self._offset)
                return

            if info.offset < self._offset:
                logger.debug(f"Duplicate offset chunk info {reference}: {info!r}")
                yield WalkStep(reference, info, WalkOutcome.DUPLICATE, self._offset)
                continue

            step = WalkStep(reference, info, WalkOutcome.KEPT, self._offset)
            self._offset += info.length
            yield step
