"""A pallet storing one u32 entry per account in a map."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from runtimekit.runtime import DispatchError, Origin, System, ensure_signed

_U32_MAX = 2**32 - 1


class NoValueStored(DispatchError):
    """The requested user has not stored a value yet."""


class MaxValueReached(DispatchError):
    """The value cannot be incremented further without exceeding the u32 maximum."""


@dataclass(frozen=True)
class EntrySet:
    account: Any
    value: int


@dataclass(frozen=True)
class EntryGot:
    account: Any
    value: int


@dataclass(frozen=True)
class EntryTaken:
    account: Any
    value: int


@dataclass(frozen=True)
class EntryIncreased:
    account: Any
    old_value: int
    new_value: int


def _check_u32(value: int) -> int:
    if not 0 <= value <= _U32_MAX:
        raise ValueError(f"{value} is not a valid u32")
    return value


class SimpleMap:
    """Each account may set, read, take and increase its own entry."""

    def __init__(self, system: System) -> None:
        self.system = system
        self._entries: dict[Any, int] = {}

    def set_single_entry(self, origin: Origin, entry: int) -> None:
        user = ensure_signed(origin)
        self._entries[user] = _check_u32(entry)
        self.system.deposit_event(EntrySet(user, entry))

    def get_single_entry(self, origin: Origin, account: Any) -> None:
        """Emit the entry of any account; the event names the caller."""
        getter = ensure_signed(origin)
        if account not in self._entries:
            raise NoValueStored(account)
        self.system.deposit_event(EntryGot(getter, self._entries[account]))

    def take_single_entry(self, origin: Origin) -> None:
        user = ensure_signed(origin)
        if user not in self._entries:
            raise NoValueStored(user)
        entry = self._entries.pop(user)
        self.system.deposit_event(EntryTaken(user, entry))

    def increase_single_entry(self, origin: Origin, add_this_val: int) -> None:
        user = ensure_signed(origin)
        _check_u32(add_this_val)
        if user not in self._entries:
            raise NoValueStored(user)
        original = self._entries[user]
        new_value = original + add_this_val
        if new_value > _U32_MAX:
            raise MaxValueReached(user)
        self._entries[user] = new_value
        self.system.deposit_event(EntryIncreased(user, original, new_value))

    def simple_map(self, account: Any) -> int:
        """The stored entry for an account, or 0 if none is stored."""
        return self._entries.get(account, 0)