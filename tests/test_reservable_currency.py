import pytest

from runtimekit.balances import Balances
from runtimekit.reservable_currency import (
    LockFunds,
    ReservableCurrency,
    TransferFunds,
    UnlockFunds,
)
from runtimekit.runtime import BadOrigin, DispatchError, Origin, System


@pytest.fixture
def ext():
    system = System()
    balances = Balances(
        system,
        existential_deposit=1,
        balances=[(1, 10000), (2, 11000), (3, 12000), (4, 13000), (5, 14000)],
    )
    system.set_block_number(1)
    return system, balances, ReservableCurrency(system, balances)


def _events(system):
    return [record.event for record in system.events()]


def test_new_test_ext_behaves(ext):
    _, balances, _ = ext
    assert balances.free_balance(1) == 10000


def test_reserve_funds(ext):
    system, balances, pallet = ext
    pallet.reserve_funds(Origin.signed(1), 5000)
    assert system.events()[1].event == LockFunds(1, 5000, 1)
    assert balances.free_balance(1) == 5000
    assert balances.reserved_balance(1) == 5000


def test_unreserve_funds(ext):
    system, balances, pallet = ext
    pallet.reserve_funds(Origin.signed(1), 5000)
    assert LockFunds(1, 5000, 1) in _events(system)
    assert balances.free_balance(1) == 5000

    pallet.unreserve_funds(Origin.signed(1), 5000)
    assert UnlockFunds(1, 5000, 1) in _events(system)
    assert balances.free_balance(1) == 10000


def test_transfer_funds(ext):
    system, balances, pallet = ext
    pallet.transfer_funds(Origin.signed(1), 2, 4000)
    assert TransferFunds(1, 2, 4000, 1) in _events(system)
    assert balances.free_balance(1) == 6000
    assert balances.free_balance(2) == 15000


def test_unreserve_and_transfer(ext):
    system, balances, pallet = ext
    pallet.reserve_funds(Origin.signed(1), 4000)
    assert balances.free_balance(1) == 6000
    assert balances.reserved_balance(1) == 4000
    assert LockFunds(1, 4000, 1) in _events(system)

    pallet.unreserve_and_transfer(Origin.signed(1), 1, 2, 6000)
    assert TransferFunds(1, 2, 4000, 1) in _events(system)
    assert balances.reserved_balance(1) == 0
    assert balances.free_balance(1) == 6000
    assert balances.free_balance(2) == 15000


def test_reserve_more_than_free_fails(ext):
    _, balances, pallet = ext
    with pytest.raises(DispatchError, match="can't afford"):
        pallet.reserve_funds(Origin.signed(1), 20000)
    assert balances.reserved_balance(1) == 0


def test_root_rejected(ext):
    _, _, pallet = ext
    with pytest.raises(BadOrigin):
        pallet.reserve_funds(Origin.root(), 10)