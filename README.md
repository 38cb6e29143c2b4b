# runtimekit

A set of small, in-memory blockchain runtime modules. Each module keeps its
own storage, checks who is calling, raises an exception when a call is
rejected and records events in a shared `System`. You can drive them from
tests or experiments without running a node.

## Installation

```
pip install runtimekit
```

To run the test suite:

```
pip install "runtimekit[test]"
pytest
```

## Core concepts

- `runtimekit.runtime.System` holds the current block number
  (`set_block_number`, `block_number`). It also holds the events recorded so
  far (`deposit_event`, `events`, `reset_events`). Each event is wrapped in an
  `EventRecord`.
- `runtimekit.runtime.Origin` says who made a call: `Origin.signed(account)`,
  `Origin.root()` or `Origin.none()`. The helpers `ensure_signed` and
  `ensure_none` check it.
- A rejected call raises a subclass of `runtimekit.runtime.DispatchError`,
  for example `BadOrigin`. The checks run before any storage is changed.

## Modules

| Module | What it does |
| --- | --- |
| `runtimekit.basic` | `HelloSubstrate`, `GenericEvent`, `SimpleEvent`, `LastCaller`: minimal calls and events |
| `runtimekit.simple_map` | `SimpleMap`: a per-account u32 value with set, get, take and checked increase |
| `runtimekit.fixed_point` | `FixedPoint` accumulators using `Permill`, `U16F16` and a hand-rolled 16.16 u32 format |
| `runtimekit.map_set` | `MapSet`: a membership set capped at `MAX_MEMBERS` (16) |
| `runtimekit.ringbuffer` | `RingBuffer` over a `RingBufferStorage`: a FIFO with wrapping indices that commits its bounds on exit |
| `runtimekit.ringbuffer_queue` | `RingBufferQueue`: a queue of `ValueStruct` items built on `RingBuffer` with 8-bit indices |
| `runtimekit.randomness` | `RandomnessPallet` drawing from a `CollectiveFlip` source that mixes noted block hashes |
| `runtimekit.balances` | `Balances`: free and reserved balances, transfers, withdrawals, an existential deposit and named locks |
| `runtimekit.reservable_currency` | `ReservableCurrency`: reserve, unreserve, transfer, and unreserve-and-transfer on top of `Balances` |
| `runtimekit.simple_crowdfund` | `SimpleCrowdfund`: create, contribute, withdraw, dissolve, dispense |
| `runtimekit.ocw_demo` | `OcwDemo`: a bounded number list fed by signed and unsigned submissions, plus an offchain worker |

## Examples

A storage map with checked arithmetic:

```python
from runtimekit.runtime import System, Origin
from runtimekit.simple_map import SimpleMap, EntryIncreased, NoValueStored

system = System()
system.set_block_number(1)
pallet = SimpleMap(system)

pallet.set_single_entry(Origin.signed(2), 19)
pallet.increase_single_entry(Origin.signed(2), 2)
assert pallet.simple_map(2) == 21
assert system.events()[-1].event == EntryIncreased(2, 19, 21)

try:
    pallet.take_single_entry(Origin.signed(5))
except NoValueStored:
    pass
```

A ring buffer commits its bounds to its storage when the `with` block ends:

```python
from runtimekit.ringbuffer import RingBuffer, RingBufferStorage

storage = RingBufferStorage()
with RingBuffer(storage, index_bits=8) as ring:
    ring.push("first")
    ring.push("second")
assert storage.bounds == (0, 2)
```

Reserving funds:

```python
from runtimekit.runtime import System, Origin
from runtimekit.balances import Balances
from runtimekit.reservable_currency import ReservableCurrency

system = System()
system.set_block_number(1)
balances = Balances(system, existential_deposit=1, balances=[(1, 10000), (2, 11000)])
pallet = ReservableCurrency(system, balances)

pallet.reserve_funds(Origin.signed(1), 5000)
assert balances.free_balance(1) == 5000
assert balances.reserved_balance(1) == 5000
```

## The offchain worker

`OcwDemo.offchain_worker(block_number)` runs one of four jobs, chosen by
`block_number % 4`:

- send a signed transaction;
- send an unsigned transaction;
- send an unsigned transaction that carries a payload signed with an
  `AuthorityKey`;
- fetch a JSON document and cache it in `OffchainStorage`.

Transactions go to the `submit` callable you pass in. By default they are
appended to `OcwDemo.transaction_pool`, and unsigned ones must first pass
`validate_unsigned`. The HTTP fetch uses `urllib` unless you pass a `fetcher`.
The default URL is a placeholder at example.com, so set `url` or `fetcher`
before you rely on the fetch job.

## What this package does not do

- It does not run a node, produce blocks, gossip transactions or reach
  consensus. You advance the block number yourself with
  `System.set_block_number`.
- All storage lives in memory and is lost when the objects are discarded.
- Locks can only be set through `Balances` directly, with `set_lock`,
  `extend_lock`, `remove_lock` and `locks`. No module offers lock calls
  dispatched from an `Origin`.