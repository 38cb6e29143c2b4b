"""A pallet exposing a storage-backed ring buffer as a FIFO queue of values."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from runtimekit.ringbuffer import RingBuffer, RingBufferStorage
from runtimekit.runtime import Origin, System, ensure_signed

_INDEX_BITS = 8
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


@dataclass(frozen=True)
class ValueStruct:
    """An item held in the queue."""

    integer: int = 0
    boolean: bool = False

    def __post_init__(self) -> None:
        if not _I32_MIN <= self.integer <= _I32_MAX:
            raise ValueError(f"{self.integer} is not a valid i32")


@dataclass(frozen=True)
class Popped:
    """An item was removed from the queue."""

    integer: int
    boolean: bool


class RingBufferQueue:
    """Signed callers push values onto and pop values off a bounded queue."""

    def __init__(self, system: System) -> None:
        self.system = system
        self._storage = RingBufferStorage()

    def _queue(self) -> RingBuffer:
        return RingBuffer(self._storage, index_bits=_INDEX_BITS)

    def add_to_queue(self, origin: Origin, integer: int, boolean: bool) -> None:
        ensure_signed(origin)
        item = ValueStruct(integer, boolean)
        with self._queue() as queue:
            queue.push(item)

    def add_multiple(self, origin: Origin, integers: Iterable[int], boolean: bool) -> None:
        ensure_signed(origin)
        items = [ValueStruct(integer, boolean) for integer in integers]
        with self._queue() as queue:
            for item in items:
                queue.push(item)

    def pop_from_queue(self, origin: Origin) -> None:
        """Remove the oldest item and emit it in an event; does nothing if the queue is empty."""
        ensure_signed(origin)
        with self._queue() as queue:
            item = queue.pop()
        if item is not None:
            self.system.deposit_event(Popped(item.integer, item.boolean))

    def get_value(self, index: int) -> ValueStruct:
        """The item stored at an index, or the default item if none is."""
        return self._storage.items.get(index, ValueStruct())

    def range(self) -> tuple[int, int]:
        """The committed (start, end) bounds of the queue."""
        return self._storage.bounds