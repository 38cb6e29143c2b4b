"""A membership set of accounts, bounded in size, kept in a storage map."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from runtimekit.runtime import DispatchError, Origin, System, ensure_signed

MAX_MEMBERS = 16
"""When membership reaches this number, no new members may join."""


class AlreadyMember(DispatchError):
    """Cannot join as a member because the account is already a member."""


class NotMember(DispatchError):
    """Cannot give up membership because the account is not a member."""


class MembershipLimitReached(DispatchError):
    """Cannot add another member because the limit is already reached."""


@dataclass(frozen=True)
class MemberAdded:
    account: Any


@dataclass(frozen=True)
class MemberRemoved:
    account: Any


class MapSet:
    """Accounts join and leave the set themselves; lookups are constant time."""

    def __init__(self, system: System) -> None:
        self.system = system
        self._members: set[Any] = set()

    def add_member(self, origin: Origin) -> None:
        new_member = ensure_signed(origin)
        if len(self._members) >= MAX_MEMBERS:
            raise MembershipLimitReached(new_member)
        if new_member in self._members:
            raise AlreadyMember(new_member)
        self._members.add(new_member)
        self.system.deposit_event(MemberAdded(new_member))

    def remove_member(self, origin: Origin) -> None:
        old_member = ensure_signed(origin)
        if old_member not in self._members:
            raise NotMember(old_member)
        self._members.remove(old_member)
        self.system.deposit_event(MemberRemoved(old_member))

    def is_member(self, account: Any) -> bool:
        return account in self._members

    def accounts(self) -> list[Any]:
        """All members in ascending order."""
        return sorted(self._members)

    def __len__(self) -> int:
        return len(self._members)