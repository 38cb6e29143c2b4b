"""A FIFO ring buffer kept in storage, with bounds held in memory until committed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RingBufferStorage:
    """Backing storage for a ring buffer: its (start, end) bounds and its items by index."""

    bounds: tuple[int, int] = (0, 0)
    items: dict[int, Any] = field(default_factory=dict)


class RingBuffer:
    """A queue over RingBufferStorage whose indices wrap around at 2**index_bits.

    Items are written to storage at once; the bounds are written only by
    ``commit``, which also runs when the buffer is left as a context manager.
    When the buffer is full, pushing overwrites the oldest item.
    """

    def __init__(self, storage: RingBufferStorage, index_bits: int = 16) -> None:
        if not isinstance(index_bits, int) or index_bits <= 0:
            raise ValueError("index_bits must be a positive integer")
        self._storage = storage
        self._modulus = 1 << index_bits
        self._start, self._end = storage.bounds

    def _next(self, index: int) -> int:
        return (index + 1) % self._modulus

    def push(self, item: Any) -> None:
        """Add an item to the end of the queue, dropping the oldest if it is full."""
        self._storage.items[self._end] = item
        next_index = self._next(self._end)
        if next_index == self._start:
            self._start = self._next(self._start)
        self._end = next_index

    def pop(self) -> Any:
        """Remove and return the item at the start of the queue, or None if it is empty."""
        if self.is_empty():
            return None
        item = self._storage.items.pop(self._start, None)
        self._start = self._next(self._start)
        return item

    def is_empty(self) -> bool:
        return self._start == self._end

    def commit(self) -> None:
        """Write the current bounds to storage."""
        self._storage.bounds = (self._start, self._end)

    def __enter__(self) -> RingBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.commit()