"""Core runtime primitives: call origins, dispatch errors and the system event log."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class DispatchError(Exception):
    """Base class for every error a dispatchable call can raise."""


class BadOrigin(DispatchError):
    """The call was made from an origin it does not accept."""


class _OriginKind(enum.Enum):
    SIGNED = "signed"
    ROOT = "root"
    NONE = "none"


@dataclass(frozen=True)
class Origin:
    """Where a call comes from: a signed account, root, or no one (unsigned)."""

    kind: _OriginKind
    account: Any = None

    @classmethod
    def signed(cls, account: Any) -> Origin:
        return cls(_OriginKind.SIGNED, account)

    @classmethod
    def root(cls) -> Origin:
        return cls(_OriginKind.ROOT)

    @classmethod
    def none(cls) -> Origin:
        return cls(_OriginKind.NONE)


def ensure_signed(origin: Origin) -> Any:
    """Return the signing account, or raise BadOrigin if the origin is not signed."""
    if origin.kind is not _OriginKind.SIGNED:
        raise BadOrigin(f"expected a signed origin, got {origin.kind.value}")
    return origin.account


def ensure_none(origin: Origin) -> None:
    """Raise BadOrigin unless the origin is the unsigned (none) origin."""
    if origin.kind is not _OriginKind.NONE:
        raise BadOrigin(f"expected an unsigned origin, got {origin.kind.value}")


@dataclass(frozen=True)
class EventRecord:
    """An event deposited into the system log, with its phase and topics."""

    event: Any
    phase: str = "Initialization"
    topics: tuple = ()


class System:
    """Holds the current block number and the events deposited in this block."""

    def __init__(self, block_number: int = 0) -> None:
        self._block_number = block_number
        self._events: list[EventRecord] = []

    def set_block_number(self, number: int) -> None:
        if number < 0:
            raise ValueError("block number cannot be negative")
        self._block_number = number

    def block_number(self) -> int:
        return self._block_number

    def deposit_event(self, event: Any) -> None:
        self._events.append(EventRecord(event))

    def events(self) -> list[EventRecord]:
        """Return a copy of the events deposited so far, oldest first."""
        return list(self._events)

    def reset_events(self) -> None:
        self._events.clear()