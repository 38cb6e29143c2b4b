import pytest

from runtimekit.randomness import CollectiveFlip, RandomnessConsumed, RandomnessPallet
from runtimekit.runtime import BadOrigin, Origin, System

ZERO = bytes(32)


@pytest.fixture
def system():
    s = System()
    s.set_block_number(1)
    return s


@pytest.fixture
def flip(system):
    return CollectiveFlip(system)


@pytest.fixture
def pallet(system, flip):
    return RandomnessPallet(system, flip)


def test_generate_works(pallet, system):
    pallet.consume_randomness(Origin.signed(1))
    assert system.events()[0].event == RandomnessConsumed(ZERO, ZERO)


def test_nonce_increments(pallet):
    assert pallet.nonce() == 0
    pallet.consume_randomness(Origin.signed(1))
    pallet.consume_randomness(Origin.signed(2))
    assert pallet.nonce() == 2


def test_unsigned_rejected(pallet, system):
    with pytest.raises(BadOrigin):
        pallet.consume_randomness(Origin.none())
    assert pallet.nonce() == 0
    assert system.events() == []


def test_random_is_deterministic_and_subject_dependent(flip):
    flip.note_block_hash(b"\x01" * 32)
    flip.note_block_hash(b"\x02" * 32)
    first = flip.random(b"abc")
    assert len(first) == 32
    assert first != ZERO
    assert flip.random(b"abc") == first
    assert flip.random(b"abd") != first


def test_seed_is_random_of_empty_subject(flip):
    flip.note_block_hash(b"\x07" * 32)
    assert flip.random_seed() == flip.random(b"")


def test_consumed_values_differ_by_nonce(pallet, flip, system):
    flip.note_block_hash(b"\x05" * 32)
    pallet.consume_randomness(Origin.signed(1))
    pallet.consume_randomness(Origin.signed(1))
    first, second = (r.event for r in system.events())
    assert first.seed == second.seed
    assert first.value != second.value
    assert first.value == flip.random((0).to_bytes(4, "little"))


def test_note_block_hash_requires_32_bytes(flip):
    with pytest.raises(ValueError):
        flip.note_block_hash(b"\x00" * 31)
    assert flip.random(b"x") == ZERO