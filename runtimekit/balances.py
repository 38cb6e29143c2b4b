"""Account balances with reserves, named locks and an existential deposit."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from runtimekit.runtime import DispatchError, System

LOCK_ID_LENGTH = 8


class InsufficientBalance(DispatchError):
    """The account's free balance is too low for the operation."""


class LiquidityRestrictions(DispatchError):
    """The funds exist but are held by a lock."""


class BelowExistentialDeposit(DispatchError):
    """The destination would hold less than the existential deposit."""


@dataclass(frozen=True)
class Transfer:
    source: Any
    dest: Any
    amount: int


@dataclass(frozen=True)
class Reserved:
    account: Any
    amount: int


@dataclass(frozen=True)
class Unreserved:
    account: Any
    amount: int


@dataclass
class _Account:
    free: int = 0
    reserved: int = 0
    locks: dict[bytes, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.free + self.reserved

    @property
    def frozen(self) -> int:
        return max(self.locks.values(), default=0)


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"{amount!r} is not a valid balance")
    return amount


def _check_lock_id(lock_id: bytes) -> bytes:
    lock_id = bytes(lock_id)
    if len(lock_id) != LOCK_ID_LENGTH:
        raise ValueError(f"lock identifier must be {LOCK_ID_LENGTH} bytes")
    return lock_id


class Balances:
    """A currency: free and reserved balances per account, plus withdrawal locks.

    An account whose total balance drops below the existential deposit is
    removed, and whatever dust it held is lost.
    """

    def __init__(
        self,
        system: System,
        existential_deposit: int = 1,
        balances: Optional[Iterable[tuple[Any, int]]] = None,
    ) -> None:
        self.system = system
        self.existential_deposit = _check_amount(existential_deposit)
        self._accounts: dict[Any, _Account] = {}
        for account, free in balances or ():
            self.set_balance(account, free)

    def _get(self, account: Any) -> _Account:
        return self._accounts.get(account) or _Account()

    def _store(self, account: Any, data: _Account) -> None:
        if data.total < self.existential_deposit or data.total == 0:
            self._accounts.pop(account, None)
        else:
            self._accounts[account] = data

    def set_balance(self, account: Any, free: int) -> None:
        """Set the free balance of an account directly."""
        data = self._get(account)
        data.free = _check_amount(free)
        self._store(account, data)

    def free_balance(self, account: Any) -> int:
        return self._get(account).free

    def reserved_balance(self, account: Any) -> int:
        return self._get(account).reserved

    def total_balance(self, account: Any) -> int:
        return self._get(account).total

    def usable_balance(self, account: Any) -> int:
        """The free balance not held by any lock."""
        data = self._get(account)
        return max(0, data.free - data.frozen)

    def _ensure_can_withdraw(self, data: _Account, amount: int) -> None:
        if data.free < amount:
            raise InsufficientBalance(f"free balance {data.free} is below {amount}")
        if data.free - amount < data.frozen:
            raise LiquidityRestrictions("funds are locked")

    def reserve(self, account: Any, amount: int) -> None:
        """Move funds from free to reserved balance."""
        _check_amount(amount)
        if amount == 0:
            return
        data = self._get(account)
        self._ensure_can_withdraw(data, amount)
        data.free -= amount
        data.reserved += amount
        self._store(account, data)
        self.system.deposit_event(Reserved(account, amount))

    def unreserve(self, account: Any, amount: int) -> int:
        """Move up to ``amount`` back to free balance; return the part that could not be moved."""
        _check_amount(amount)
        if amount == 0:
            return 0
        data = self._get(account)
        actual = min(data.reserved, amount)
        if actual:
            data.reserved -= actual
            data.free += actual
            self._store(account, data)
            self.system.deposit_event(Unreserved(account, actual))
        return amount - actual

    def transfer(self, source: Any, dest: Any, amount: int) -> None:
        """Move free funds between accounts, allowing the source to be removed."""
        _check_amount(amount)
        if amount == 0 or source == dest:
            return
        src = self._get(source)
        self._ensure_can_withdraw(src, amount)
        dst = self._get(dest)
        if dst.total + amount < self.existential_deposit:
            raise BelowExistentialDeposit(dest)
        src.free -= amount
        dst.free += amount
        self._store(source, src)
        self._store(dest, dst)
        self.system.deposit_event(Transfer(source, dest, amount))

    def withdraw(self, account: Any, amount: int) -> int:
        """Remove free funds from an account and return the amount taken."""
        _check_amount(amount)
        if amount == 0:
            return 0
        data = self._get(account)
        self._ensure_can_withdraw(data, amount)
        data.free -= amount
        self._store(account, data)
        return amount

    def deposit_creating(self, account: Any, amount: int) -> int:
        """Add funds to an account, creating it if needed; return the amount deposited."""
        _check_amount(amount)
        data = self._get(account)
        if data.total + amount < self.existential_deposit:
            return 0
        data.free += amount
        self._store(account, data)
        return amount

    def set_lock(self, lock_id: bytes, account: Any, amount: int) -> None:
        """Create or replace a lock; a zero amount leaves things unchanged."""
        lock_id = _check_lock_id(lock_id)
        _check_amount(amount)
        if amount == 0:
            return
        data = self._get(account)
        data.locks[lock_id] = amount
        self._store(account, data)

    def extend_lock(self, lock_id: bytes, account: Any, amount: int) -> None:
        """Raise an existing lock to at least ``amount``, or create it."""
        lock_id = _check_lock_id(lock_id)
        _check_amount(amount)
        if amount == 0:
            return
        data = self._get(account)
        data.locks[lock_id] = max(data.locks.get(lock_id, 0), amount)
        self._store(account, data)

    def remove_lock(self, lock_id: bytes, account: Any) -> None:
        lock_id = _check_lock_id(lock_id)
        data = self._accounts.get(account)
        if data is not None:
            data.locks.pop(lock_id, None)

    def locks(self, account: Any) -> dict[bytes, int]:
        """The locks on an account, by identifier."""
        return dict(self._get(account).locks)