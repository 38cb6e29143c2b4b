"""A simple on-chain crowdfunding pallet.

A creator opens a fund by placing a deposit. Contributors pay into the fund's
own account until the fund ends. If the goal is met, anyone may dispense the
raised funds to the beneficiary and collect the deposit. If it is not met,
contributors may withdraw their contributions, and after a retirement period
anyone may dissolve the fund and collect whatever is left.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from runtimekit.balances import Balances
from runtimekit.runtime import DispatchError, Origin, System, ensure_signed

PALLET_ID = b"ex/cfund"
_ACCOUNT_PREFIX = b"modl"


class EndTooEarly(DispatchError):
    """A crowdfund must end after it starts."""


class ContributionTooSmall(DispatchError):
    """A contribution must be at least the minimum amount."""


class InvalidIndex(DispatchError):
    """The fund index does not exist."""


class ContributionPeriodOver(DispatchError):
    """The fund has ended; no more contributions are accepted."""


class FundStillActive(DispatchError):
    """Funds may not be withdrawn or dispensed while the fund is active."""


class NoContribution(DispatchError):
    """Nothing to withdraw because the account has not contributed."""


class FundNotRetired(DispatchError):
    """A fund cannot be dissolved before its retirement period has passed."""


class UnsuccessfulFund(DispatchError):
    """Funds cannot be dispensed from a fund that missed its goal."""


@dataclass(frozen=True)
class FundInfo:
    """The state of one crowdfund."""

    beneficiary: Any
    deposit: int
    raised: int
    end: int
    goal: int


@dataclass(frozen=True)
class Created:
    index: int
    block_number: int


@dataclass(frozen=True)
class Contributed:
    account: Any
    index: int
    balance: int
    block_number: int


@dataclass(frozen=True)
class Withdrew:
    account: Any
    index: int
    balance: int
    block_number: int


@dataclass(frozen=True)
class Dissolved:
    index: int
    block_number: int
    reporter: Any


@dataclass(frozen=True)
class Dispensed:
    index: int
    block_number: int
    caller: Any


class SimpleCrowdfund:
    """Creates, funds, refunds and settles crowdfunds in a given currency."""

    def __init__(
        self,
        system: System,
        currency: Balances,
        submission_deposit: int = 1,
        min_contribution: int = 10,
        retirement_period: int = 5,
    ) -> None:
        self.system = system
        self.currency = currency
        self.submission_deposit = submission_deposit
        self.min_contribution = min_contribution
        self.retirement_period = retirement_period
        self._funds: dict[int, FundInfo] = {}
        self._fund_count = 0
        self._contributions: dict[int, dict[Any, int]] = {}

    def fund_account_id(self, index: int) -> bytes:
        """The account holding the funds of the crowdfund with this index."""
        return _ACCOUNT_PREFIX + PALLET_ID + index.to_bytes(4, "little")

    def funds(self, index: int) -> Optional[FundInfo]:
        return self._funds.get(index)

    def fund_count(self) -> int:
        return self._fund_count

    def contribution_get(self, index: int, who: Any) -> int:
        """The total an account has contributed to a fund, or 0."""
        return self._contributions.get(index, {}).get(who, 0)

    def _contribution_put(self, index: int, who: Any, balance: int) -> None:
        self._contributions.setdefault(index, {})[who] = balance

    def _contribution_kill(self, index: int, who: Any) -> None:
        self._contributions.get(index, {}).pop(who, None)

    def _crowdfund_kill(self, index: int) -> None:
        self._contributions.pop(index, None)

    def _fund(self, index: int) -> FundInfo:
        fund = self._funds.get(index)
        if fund is None:
            raise InvalidIndex(index)
        return fund

    def create(self, origin: Origin, beneficiary: Any, goal: int, end: int) -> None:
        creator = ensure_signed(origin)
        now = self.system.block_number()
        if end <= now:
            raise EndTooEarly(end)

        deposit = self.submission_deposit
        taken = self.currency.withdraw(creator, deposit)

        index = self._fund_count
        self._fund_count = index + 1
        self.currency.deposit_creating(self.fund_account_id(index), taken)
        self._funds[index] = FundInfo(
            beneficiary=beneficiary, deposit=deposit, raised=0, end=end, goal=goal
        )
        self.system.deposit_event(Created(index, now))

    def contribute(self, origin: Origin, index: int, value: int) -> None:
        who = ensure_signed(origin)
        if value < self.min_contribution:
            raise ContributionTooSmall(value)
        fund = self._fund(index)

        now = self.system.block_number()
        if fund.end <= now:
            raise ContributionPeriodOver(index)

        self.currency.transfer(who, self.fund_account_id(index), value)
        self._funds[index] = replace(fund, raised=fund.raised + value)

        balance = self.contribution_get(index, who) + value
        self._contribution_put(index, who, balance)
        self.system.deposit_event(Contributed(who, index, balance, now))

    def withdraw(self, origin: Origin, index: int) -> None:
        """Return a contributor's whole contribution after the fund has ended."""
        who = ensure_signed(origin)
        fund = self._fund(index)
        now = self.system.block_number()
        if fund.end >= now:
            raise FundStillActive(index)

        balance = self.contribution_get(index, who)
        if balance <= 0:
            raise NoContribution(who)

        taken = self.currency.withdraw(self.fund_account_id(index), balance)
        # Refunds go only into accounts that still exist; otherwise they are lost.
        if self.currency.total_balance(who) > 0:
            self.currency.deposit_creating(who, taken)

        self._contribution_kill(index, who)
        self._funds[index] = replace(fund, raised=max(0, fund.raised - balance))
        self.system.deposit_event(Withdrew(who, index, balance, now))

    def dissolve(self, origin: Origin, index: int) -> None:
        """Remove a retired fund; the caller collects the deposit and what remains."""
        reporter = ensure_signed(origin)
        fund = self._fund(index)
        now = self.system.block_number()
        if now < fund.end + self.retirement_period:
            raise FundNotRetired(index)

        account = self.fund_account_id(index)
        taken = self.currency.withdraw(account, fund.deposit + fund.raised)
        self.currency.deposit_creating(reporter, taken)

        del self._funds[index]
        self._crowdfund_kill(index)
        self.system.deposit_event(Dissolved(index, now, reporter))

    def dispense(self, origin: Origin, index: int) -> None:
        """Pay a successful fund to its beneficiary; the caller collects the deposit."""
        caller = ensure_signed(origin)
        fund = self._fund(index)
        now = self.system.block_number()
        if now < fund.end:
            raise FundStillActive(index)
        if fund.raised < fund.goal:
            raise UnsuccessfulFund(index)

        account = self.fund_account_id(index)
        raised = self.currency.withdraw(account, fund.raised)
        self.currency.deposit_creating(fund.beneficiary, raised)
        deposit = self.currency.withdraw(account, fund.deposit)
        self.currency.deposit_creating(caller, deposit)

        del self._funds[index]
        self._crowdfund_kill(index)
        self.system.deposit_event(Dispensed(index, now, caller))