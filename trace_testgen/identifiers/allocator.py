"""Allocate process-unique internal ids for value identifiers."""

import logging

logger = logging.getLogger(__name__)


class IdAllocator:
    """Hands out monotonically increasing internal ids.

    One allocator is owned by the context that builds a run configuration
    and is passed to every identifier factory. All ids are fixed during
    planning, before any probe fires, so the allocator is not synchronized.
    """

    def __init__(self, start: int = 1):
        if start < 0:
            raise ValueError(f"Allocator start must be non-negative, got {start}")
        self._next = start
        self._issued = 0

    def next_id(self) -> int:
        """Return the next unused internal id."""
        internal_id = self._next
        self._next += 1
        self._issued += 1
        logger.debug(f"Allocated internal id {internal_id}")
        return internal_id

    @property
    def issued(self) -> int:
        """Number of ids handed out so far."""
        return self._issued
