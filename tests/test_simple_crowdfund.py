import pytest

from runtimekit.balances import Balances, InsufficientBalance
from runtimekit.runtime import BadOrigin, Origin, System
from runtimekit.simple_crowdfund import (
    ContributionPeriodOver,
    ContributionTooSmall,
    Contributed,
    Created,
    Dispensed,
    Dissolved,
    EndTooEarly,
    FundInfo,
    FundNotRetired,
    FundStillActive,
    InvalidIndex,
    NoContribution,
    SimpleCrowdfund,
    UnsuccessfulFund,
    Withdrew,
)


@pytest.fixture
def env():
    system = System()
    balances = Balances(
        system,
        existential_deposit=1,
        balances=[(1, 1000), (2, 2000), (3, 3000), (4, 4000)],
    )
    crowdfund = SimpleCrowdfund(
        system,
        balances,
        submission_deposit=1,
        min_contribution=10,
        retirement_period=5,
    )
    return system, balances, crowdfund


def run_to_block(system, n):
    system.set_block_number(max(system.block_number(), n))


def crowdfund_events(system):
    kinds = (Created, Contributed, Withdrew, Dissolved, Dispensed)
    return [r.event for r in system.events() if isinstance(r.event, kinds)]


def test_basic_setup_works(env):
    system, _, crowdfund = env
    assert system.block_number() == 0
    assert crowdfund.fund_count() == 0
    assert crowdfund.funds(0) is None
    assert crowdfund.contribution_get(0, 1) == 0


def test_create_works(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    assert crowdfund.fund_count() == 1
    assert crowdfund.funds(0) == FundInfo(
        beneficiary=2, deposit=1, raised=0, end=9, goal=1000
    )
    assert balances.free_balance(1) == 999
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 1
    assert crowdfund_events(system) == [Created(0, 0)]


def test_create_handles_insufficient_balance(env):
    _, _, crowdfund = env
    with pytest.raises(InsufficientBalance):
        crowdfund.create(Origin.signed(1337), 2, 1000, 9)
    assert crowdfund.fund_count() == 0
    assert crowdfund.funds(0) is None


def test_create_rejects_end_not_after_now(env):
    system, balances, crowdfund = env
    system.set_block_number(5)
    with pytest.raises(EndTooEarly):
        crowdfund.create(Origin.signed(1), 2, 1000, 5)
    assert balances.free_balance(1) == 1000
    assert crowdfund.fund_count() == 0


def test_create_requires_signed_origin(env):
    _, _, crowdfund = env
    with pytest.raises(BadOrigin):
        crowdfund.create(Origin.root(), 2, 1000, 9)


def test_fund_accounts_differ_per_index(env):
    _, _, crowdfund = env
    assert crowdfund.fund_account_id(0) == crowdfund.fund_account_id(0)
    assert crowdfund.fund_account_id(0) != crowdfund.fund_account_id(1)


def test_contribute_works(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    assert balances.free_balance(1) == 999
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 1

    assert crowdfund.contribution_get(0, 1) == 0

    crowdfund.contribute(Origin.signed(1), 0, 49)
    assert balances.free_balance(1) == 950
    assert crowdfund.contribution_get(0, 1) == 49
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 50
    assert crowdfund.funds(0).raised == 49
    assert crowdfund_events(system)[-1] == Contributed(1, 0, 49, 0)


def test_contribution_event_carries_running_total(env):
    system, _, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(3), 0, 300)
    crowdfund.contribute(Origin.signed(3), 0, 400)
    assert crowdfund.contribution_get(0, 3) == 700
    assert crowdfund_events(system)[-1] == Contributed(3, 0, 700, 0)


def test_contribute_handles_basic_errors(env):
    system, balances, crowdfund = env
    with pytest.raises(InvalidIndex):
        crowdfund.contribute(Origin.signed(1), 0, 49)
    with pytest.raises(ContributionTooSmall):
        crowdfund.contribute(Origin.signed(1), 0, 9)

    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 101)

    run_to_block(system, 10)

    with pytest.raises(ContributionPeriodOver):
        crowdfund.contribute(Origin.signed(1), 0, 49)
    assert crowdfund.funds(0).raised == 101
    assert balances.free_balance(1) == 898


def test_withdraw_works(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 100)
    crowdfund.contribute(Origin.signed(2), 0, 200)
    crowdfund.contribute(Origin.signed(3), 0, 300)

    run_to_block(system, 50)

    crowdfund.withdraw(Origin.signed(1), 0)
    assert balances.free_balance(1) == 999

    crowdfund.withdraw(Origin.signed(2), 0)
    assert balances.free_balance(2) == 2000

    crowdfund.withdraw(Origin.signed(3), 0)
    assert balances.free_balance(3) == 3000

    assert crowdfund.funds(0).raised == 0
    assert crowdfund.contribution_get(0, 1) == 0
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 1
    assert crowdfund_events(system)[-1] == Withdrew(3, 0, 300, 50)


def test_withdraw_handles_basic_errors(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 49)
    assert balances.free_balance(1) == 950

    run_to_block(system, 5)

    with pytest.raises(FundStillActive):
        crowdfund.withdraw(Origin.signed(1), 0)
    assert crowdfund.contribution_get(0, 1) == 49

    run_to_block(system, 10)

    with pytest.raises(NoContribution):
        crowdfund.withdraw(Origin.signed(2), 0)
    with pytest.raises(InvalidIndex):
        crowdfund.withdraw(Origin.signed(1), 1)


def test_withdraw_not_allowed_at_end_block(env):
    system, _, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 49)
    run_to_block(system, 9)
    with pytest.raises(FundStillActive):
        crowdfund.withdraw(Origin.signed(1), 0)


def test_dissolve_works(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 100)
    crowdfund.contribute(Origin.signed(2), 0, 200)
    crowdfund.contribute(Origin.signed(3), 0, 300)

    run_to_block(system, 50)

    assert balances.free_balance(1) == 899
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 601

    crowdfund.dissolve(Origin.signed(7), 0)

    assert balances.free_balance(crowdfund.fund_account_id(0)) == 0
    assert balances.free_balance(7) == 601
    assert crowdfund.contribution_get(0, 0) == 0
    assert crowdfund.contribution_get(0, 1) == 0
    assert crowdfund.funds(0) is None
    assert crowdfund_events(system)[-1] == Dissolved(0, 50, 7)


def test_dissolve_handles_basic_errors(env):
    system, _, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 100)
    crowdfund.contribute(Origin.signed(2), 0, 200)
    crowdfund.contribute(Origin.signed(3), 0, 300)

    with pytest.raises(InvalidIndex):
        crowdfund.dissolve(Origin.signed(1), 1)
    with pytest.raises(FundNotRetired):
        crowdfund.dissolve(Origin.signed(1), 0)

    run_to_block(system, 10)

    with pytest.raises(FundNotRetired):
        crowdfund.dissolve(Origin.signed(1), 0)
    assert crowdfund.funds(0).raised == 600


def test_dispense_works(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 20, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 100)
    crowdfund.contribute(Origin.signed(2), 0, 200)
    crowdfund.contribute(Origin.signed(3), 0, 300)
    crowdfund.contribute(Origin.signed(3), 0, 400)

    run_to_block(system, 10)

    assert balances.free_balance(1) == 899
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 1001

    crowdfund.dispense(Origin.signed(7), 0)

    assert balances.free_balance(crowdfund.fund_account_id(0)) == 0
    assert balances.free_balance(20) == 1000
    assert balances.free_balance(7) == 1
    assert crowdfund.contribution_get(0, 0) == 0
    assert crowdfund.contribution_get(0, 3) == 0
    assert crowdfund.funds(0) is None
    assert crowdfund_events(system)[-1] == Dispensed(0, 10, 7)


def test_dispense_handles_basic_errors(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.contribute(Origin.signed(1), 0, 100)
    crowdfund.contribute(Origin.signed(2), 0, 200)
    crowdfund.contribute(Origin.signed(3), 0, 300)

    with pytest.raises(InvalidIndex):
        crowdfund.dispense(Origin.signed(1), 1)
    with pytest.raises(FundStillActive):
        crowdfund.dispense(Origin.signed(1), 0)

    run_to_block(system, 10)

    with pytest.raises(UnsuccessfulFund):
        crowdfund.dispense(Origin.signed(1), 0)
    assert balances.free_balance(crowdfund.fund_account_id(0)) == 601
    assert crowdfund.funds(0).raised == 600


def test_second_fund_gets_next_index(env):
    system, balances, crowdfund = env
    crowdfund.create(Origin.signed(1), 2, 1000, 9)
    crowdfund.create(Origin.signed(2), 3, 500, 20)
    assert crowdfund.fund_count() == 2
    assert crowdfund.funds(1) == FundInfo(
        beneficiary=3, deposit=1, raised=0, end=20, goal=500
    )
    assert balances.free_balance(crowdfund.fund_account_id(1)) == 1
    assert crowdfund_events(system) == [Created(0, 0), Created(1, 0)]