"""A pallet that reserves, unreserves and transfers funds of a reservable currency."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from runtimekit.balances import Balances, InsufficientBalance, LiquidityRestrictions
from runtimekit.runtime import DispatchError, Origin, System, ensure_signed


@dataclass(frozen=True)
class LockFunds:
    account: Any
    amount: int
    block_number: int


@dataclass(frozen=True)
class UnlockFunds:
    account: Any
    amount: int
    block_number: int


@dataclass(frozen=True)
class TransferFunds:
    source: Any
    dest: Any
    amount: int
    block_number: int


class ReservableCurrency:
    """Signed callers reserve and release their own funds and move funds around."""

    def __init__(self, system: System, currency: Balances) -> None:
        self.system = system
        self.currency = currency

    def reserve_funds(self, origin: Origin, amount: int) -> None:
        locker = ensure_signed(origin)
        try:
            self.currency.reserve(locker, amount)
        except (InsufficientBalance, LiquidityRestrictions) as err:
            raise DispatchError("locker can't afford to lock the amount requested") from err
        now = self.system.block_number()
        self.system.deposit_event(LockFunds(locker, amount, now))

    def unreserve_funds(self, origin: Origin, amount: int) -> None:
        """Release up to ``amount`` of the caller's reserve; this never fails."""
        unlocker = ensure_signed(origin)
        self.currency.unreserve(unlocker, amount)
        now = self.system.block_number()
        self.system.deposit_event(UnlockFunds(unlocker, amount, now))

    def transfer_funds(self, origin: Origin, dest: Any, amount: int) -> None:
        sender = ensure_signed(origin)
        self.currency.transfer(sender, dest, amount)
        now = self.system.block_number()
        self.system.deposit_event(TransferFunds(sender, dest, amount, now))

    def unreserve_and_transfer(
        self, origin: Origin, to_punish: Any, dest: Any, collateral: int
    ) -> None:
        """Unreserve up to ``collateral`` from one account and transfer it to another.

        Any signed caller may do this to any account.
        """
        ensure_signed(origin)
        overdraft = self.currency.unreserve(to_punish, collateral)
        moved = collateral - overdraft
        self.currency.transfer(to_punish, dest, moved)
        now = self.system.block_number()
        self.system.deposit_event(TransferFunds(to_punish, dest, moved, now))