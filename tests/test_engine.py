"""
Unit tests for AllocationEngine.

Tests:
1. Outcomes for allocate / free / compact / inspect, including refusals
2. Refused requests leave the table byte-for-byte identical
3. Policy switches and re-initialization
4. The auto-allocation workload
5. Fragmentation metrics
"""

import random

import pytest

import config
from engine import AllocationEngine, Status
from partition import CompactionDirection, InvalidSizeError
from placement import PlacementPolicy


def fragmented_engine():
    """[A1(0,30), free(30,30), A3(60,30), free(90,10)]"""
    engine = AllocationEngine([100])
    for _ in range(3):
        engine.allocate(30)
    engine.free(1)
    return engine


class TestConstruction:

    def test_default_layout(self):
        engine = AllocationEngine()
        assert engine.total_size == config.DEFAULT_TOTAL_SIZE
        assert engine.policy is PlacementPolicy(config.DEFAULT_POLICY)
        assert engine.history == []

    def test_bad_layout_raises(self):
        with pytest.raises(InvalidSizeError):
            AllocationEngine([10, -1])


class TestAllocate:

    def test_success(self):
        engine = AllocationEngine([100])
        outcome = engine.allocate(30)
        assert outcome.ok
        assert outcome.op == "allocate"
        assert outcome.index == 0
        assert outcome.handle == 1
        assert (outcome.block.address, outcome.block.size, outcome.block.occupied) == (0, 30, True)
        assert engine.history == [outcome]

    @pytest.mark.parametrize("policy, index, address", [
        ("First-Fit", 0, 0),
        ("Best-Fit", 1, 100),
        ("Worst-Fit", 2, 150),
    ])
    def test_placement(self, policy, index, address):
        engine = AllocationEngine([100, 50, 250], policy=policy)
        outcome = engine.allocate(40)
        assert outcome.index == index
        assert outcome.block.address == address
        assert outcome.block.size == 40

    def test_insufficient_space_leaves_table_identical(self):
        engine = fragmented_engine()
        before = engine.snapshot()

        outcome = engine.allocate(35)
        assert outcome.status is Status.INSUFFICIENT_SPACE
        assert not outcome.ok
        assert outcome.size == 35
        assert engine.snapshot() == before

    @pytest.mark.parametrize("size", [0, -5, 2.5, True])
    def test_invalid_size(self, size):
        engine = AllocationEngine([100])
        outcome = engine.allocate(size)
        assert outcome.status is Status.INVALID_SIZE
        assert outcome.reason
        assert engine.snapshot() == AllocationEngine([100]).snapshot()


class TestFree:

    def test_success_reports_merged_block(self):
        engine = AllocationEngine([100])
        engine.allocate(30)
        outcome = engine.free(0)
        assert outcome.ok
        assert outcome.handle == 1
        assert outcome.size == 30
        assert outcome.index == 0
        assert (outcome.block.address, outcome.block.size, outcome.block.occupied) == (0, 100, False)

    @pytest.mark.parametrize("index", [-1, 4, 99])
    def test_invalid_index(self, index):
        engine = fragmented_engine()
        before = engine.snapshot()
        outcome = engine.free(index)
        assert outcome.status is Status.INVALID_INDEX
        assert engine.snapshot() == before

    def test_free_block_twice(self):
        engine = fragmented_engine()
        outcome = engine.free(1)
        assert outcome.status is Status.NOT_ALLOCATED

    def test_stale_handle(self):
        engine = fragmented_engine()
        outcome = engine.free(0, block_id=3)
        assert outcome.status is Status.INVALID_INDEX
        assert engine.snapshot()[0].occupied

    def test_free_by_handle(self):
        engine = fragmented_engine()
        outcome = engine.free_block(3)
        assert outcome.ok
        assert outcome.index == 1
        assert [b.occupied for b in engine.snapshot()] == [True, False]

    def test_unknown_handle(self):
        engine = fragmented_engine()
        outcome = engine.free_block(2)
        assert outcome.status is Status.INVALID_INDEX
        assert outcome.handle == 2


class TestCompact:

    def test_success_then_noop(self):
        engine = fragmented_engine()
        assert engine.can_compact()

        outcome = engine.compact()
        assert outcome.ok
        assert outcome.direction is CompactionDirection.LOW
        assert outcome.size == 40
        assert outcome.index == 2
        assert (outcome.block.address, outcome.block.size) == (60, 40)

        again = engine.compact()
        assert again.status is Status.NOTHING_TO_COMPACT
        assert not engine.can_compact()

    def test_compaction_satisfies_blocked_request(self):
        engine = fragmented_engine()
        assert not engine.allocate(35).ok
        engine.compact()
        assert engine.allocate(35).ok

    def test_compact_high(self):
        engine = fragmented_engine()
        outcome = engine.compact("high")
        assert outcome.ok
        assert outcome.index == 0
        assert (outcome.block.address, outcome.block.size) == (0, 40)

    def test_full_table(self):
        engine = AllocationEngine([100])
        engine.allocate(100)
        outcome = engine.compact()
        assert outcome.status is Status.NOTHING_TO_COMPACT
        assert outcome.index is None


class TestInspect:

    def test_inspect(self):
        engine = fragmented_engine()
        outcome = engine.inspect(2)
        assert outcome.ok
        assert outcome.handle == 3
        assert outcome.block.address == 60

    def test_inspect_out_of_range_is_not_recorded(self):
        engine = fragmented_engine()
        recorded = len(engine.history)
        assert engine.inspect(7).status is Status.INVALID_INDEX
        assert len(engine.history) == recorded


class TestSetup:

    def test_initialize_replaces_table_and_history(self):
        engine = fragmented_engine()
        outcome = engine.initialize([10, 20, 30])
        assert outcome.ok
        assert outcome.size == 60
        assert engine.history == [outcome]
        assert [(b.address, b.size) for b in engine.snapshot()] == [(0, 10), (10, 20), (30, 30)]

    @pytest.mark.parametrize("sizes", [[], [10, 0]])
    def test_initialize_rejects_bad_layout(self, sizes):
        engine = fragmented_engine()
        before = engine.snapshot()
        outcome = engine.initialize(sizes)
        assert outcome.status is Status.INVALID_SIZE
        assert engine.snapshot() == before

    def test_set_policy_rebuilds(self):
        engine = AllocationEngine([100, 50, 250])
        engine.allocate(40)
        engine.set_policy(PlacementPolicy.WORST_FIT)
        assert engine.policy is PlacementPolicy.WORST_FIT
        assert not any(b.occupied for b in engine.snapshot())
        assert engine.allocate(40).block.address == 150

    def test_same_policy_keeps_table(self):
        engine = AllocationEngine([100])
        engine.allocate(40)
        engine.set_policy("First-Fit")
        assert engine.snapshot()[0].occupied

    def test_reset(self):
        engine = fragmented_engine()
        engine.reset()
        assert [(b.address, b.size, b.occupied) for b in engine.snapshot()] == [(0, 100, False)]


class TestFill:

    def test_fills_until_full(self):
        engine = AllocationEngine([100])
        outcomes = list(engine.fill(rng=random.Random(3), low=1, high=10, max_steps=1000))
        assert engine.is_full
        assert all(o.op == "allocate" for o in outcomes)
        assert all(o.status in (Status.OK, Status.INSUFFICIENT_SPACE) for o in outcomes)
        assert sum(o.size for o in outcomes if o.ok) == 100

    def test_step_cap(self):
        engine = AllocationEngine([100])
        outcomes = list(engine.fill(low=200, high=300, max_steps=5))
        assert len(outcomes) == 5
        assert all(o.status is Status.INSUFFICIENT_SPACE for o in outcomes)

    def test_stops_between_steps(self):
        engine = AllocationEngine([100])
        steps = engine.fill(rng=random.Random(1), low=1, high=10)
        next(steps)
        assert len(engine.history) == 1

    def test_full_table_yields_nothing(self):
        engine = AllocationEngine([10])
        engine.allocate(10)
        assert list(engine.fill()) == []


class TestFragmentation:

    def test_empty(self):
        metrics = AllocationEngine([100]).fragmentation()
        assert metrics == {"external": 0.0, "internal": 0.0, "fragment_percent": 0, "utilization": 0.0}

    def test_external(self):
        engine = fragmented_engine()
        metrics = engine.fragmentation()
        assert metrics["external"] == 0.25
        assert metrics["internal"] == 0.0
        assert metrics["utilization"] == 0.6

        engine.compact()
        assert engine.fragmentation()["external"] == 0.0

    def test_internal_with_fixed_partitions(self):
        engine = AllocationEngine([50, 50], split=False)
        engine.allocate(20)
        metrics = engine.fragmentation()
        assert metrics["internal"] == 0.6
        assert metrics["fragment_percent"] == 60
        assert metrics["utilization"] == 0.5

        engine.compact()
        metrics = engine.fragmentation()
        assert metrics["internal"] == 0.0
        assert metrics["fragment_percent"] == 0
        assert metrics["utilization"] == 0.2

    def test_percent_truncates(self):
        engine = AllocationEngine([30], split=False)
        engine.allocate(20)
        assert engine.fragmentation()["fragment_percent"] == 33
