"""Tests for ReplicatedSet local operations."""

import pytest

from causalset.components.crdt.protocol import ReplicatedState
from causalset.components.crdt.replicated_set import ReplicatedSet, ReplicatedSetStats, Tombstone
from causalset.core.causal_clock import CausalClock


def clock(*values: int) -> CausalClock:
    return CausalClock.from_vector(values)


class TestReplicatedSetCreation:
    """Tests for ReplicatedSet construction."""

    def test_initial_set_is_empty(self):
        s = ReplicatedSet(3, 1)
        assert len(s) == 0
        assert s.values() == frozenset()
        assert s.tombstone_count == 0

    def test_initial_clocks_are_zero(self):
        s = ReplicatedSet(3, 1)
        assert s.self_index == 1
        assert s.replica_count == 3
        assert s.clock == CausalClock(3)
        assert s.known_clocks == [CausalClock(3)] * 3

    def test_initial_clock_sets_own_slot_only(self):
        start = clock(0, 5)
        s = ReplicatedSet(2, 1, initial_clock=start)
        assert s.clock == clock(0, 5)
        assert s.known_clocks[0] == CausalClock(2)

    def test_initial_clock_is_copied(self):
        start = clock(0, 5)
        s = ReplicatedSet(2, 1, initial_clock=start)
        start.increment(1)
        assert s.clock == clock(0, 5)

    def test_initial_clock_size_mismatch(self):
        with pytest.raises(ValueError):
            ReplicatedSet(2, 0, initial_clock=CausalClock(3))

    @pytest.mark.parametrize("count", [0, -2])
    def test_non_positive_replica_count(self, count):
        with pytest.raises(ValueError):
            ReplicatedSet(count, 0)

    @pytest.mark.parametrize("index", [-1, 2, 7])
    def test_self_index_out_of_range(self, index):
        with pytest.raises(IndexError):
            ReplicatedSet(2, index)

    def test_implements_replicated_state_protocol(self):
        assert isinstance(ReplicatedSet(2, 0), ReplicatedState)

    def test_repr(self):
        s = ReplicatedSet(2, 1)
        s.add("apple")
        assert "self_index=1" in repr(s)
        assert "apple" in repr(s)


class TestAdd:
    def test_add_element(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        assert "apple" in s
        assert s.contains("apple")

    def test_add_advances_own_slot(self):
        s = ReplicatedSet(2, 1)
        s.add("apple")
        s.add("banana")
        assert s.clock == clock(0, 2)

    def test_timestamp_is_clock_after_add(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        assert s.timestamps("apple") == frozenset({clock(1, 0)})

    def test_duplicate_adds_accumulate_timestamps(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("apple")
        assert s.timestamps("apple") == frozenset({clock(1, 0), clock(2, 0)})
        assert len(s) == 1

    def test_stored_timestamp_does_not_follow_clock(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("banana")
        s.add("cherry")
        assert s.timestamps("apple") == frozenset({clock(1, 0)})

    def test_returned_timestamps_are_copies(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        (ts,) = s.timestamps("apple")
        ts.increment(0)
        assert s.timestamps("apple") == frozenset({clock(1, 0)})

    def test_accepts_any_hashable(self):
        s = ReplicatedSet(1, 0)
        s.add(5)
        s.add(("x", 1))
        s.add(frozenset({1}))
        assert s.values() == frozenset({5, ("x", 1), frozenset({1})})


class TestRemove:
    def test_remove_missing_returns_false(self):
        s = ReplicatedSet(2, 0)
        assert s.remove("apple") is False
        assert s.clock == CausalClock(2)
        assert s.tombstone_count == 0

    def test_remove_present_returns_true(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        assert s.remove("apple") is True

    def test_remove_advances_clock(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        assert s.clock == clock(2, 0)

    def test_remove_tombstones_every_timestamp(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("apple")
        s.remove("apple")
        assert s.tombstones("apple") == frozenset(
            {
                Tombstone(clock(1, 0), clock(3, 0)),
                Tombstone(clock(2, 0), clock(3, 0)),
            }
        )

    def test_remove_keeps_value_in_s_until_merge(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        assert s.timestamps("apple") == frozenset({clock(1, 0)})

    def test_membership_is_false_right_after_remove(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        assert "apple" not in s
        assert s.values() == frozenset()
        assert len(s) == 0

    def test_tombstones_accumulate(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        s.remove("apple")
        assert s.tombstones("apple") == frozenset(
            {
                Tombstone(clock(1, 0), clock(2, 0)),
                Tombstone(clock(1, 0), clock(3, 0)),
            }
        )
        assert s.tombstone_count == 2

    def test_add_after_remove(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        s.add("apple")
        assert "apple" in s

    def test_remove_leaves_other_values(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("banana")
        s.remove("apple")
        assert s.values() == frozenset({"banana"})


class TestContains:
    def test_contains_false_for_unknown(self):
        s = ReplicatedSet(2, 0)
        assert not s.contains("apple")
        assert "apple" not in s

    def test_contains_with_one_uncovered_timestamp(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.remove("apple")
        s.add("apple")
        assert s.contains("apple")


class TestIteration:
    def test_iter_yields_members(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("banana")
        s.add("cherry")
        s.remove("banana")
        assert set(s) == {"apple", "cherry"}
        assert len(s) == 2

    def test_value_property(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        assert s.value == frozenset({"apple"})


class TestTombstone:
    def test_covers_equal_and_earlier(self):
        t = Tombstone(clock(2, 1), clock(3, 1))
        assert t.covers(clock(2, 1))
        assert t.covers(clock(1, 1))
        assert not t.covers(clock(2, 2))
        assert not t.covers(clock(0, 2))

    def test_is_stable_needs_every_clock_later(self):
        t = Tombstone(clock(1, 0), clock(2, 0))
        assert t.is_stable([clock(3, 0), clock(2, 1)])
        assert not t.is_stable([clock(3, 0), clock(0, 1)])
        assert not t.is_stable([clock(3, 0), clock(2, 0)])

    def test_hashable_and_structural(self):
        assert Tombstone(clock(1, 0), clock(2, 0)) == Tombstone(clock(1, 0), clock(2, 0))
        assert len({Tombstone(clock(1, 0), clock(2, 0)), Tombstone(clock(1, 0), clock(2, 0))}) == 1

    def test_str(self):
        assert str(Tombstone(clock(1, 0), clock(2, 0))) == "[1 0]@[2 0]"


class TestDeepCopy:
    def test_copy_has_same_state(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("banana")
        s.remove("banana")
        c = s.deep_copy()
        assert c.values() == s.values()
        assert c.clock == s.clock
        assert c.tombstones("banana") == s.tombstones("banana")
        assert c.self_index == 0

    def test_copy_is_independent(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        c = s.deep_copy()
        s.add("banana")
        s.remove("apple")
        assert c.values() == frozenset({"apple"})
        assert c.clock == clock(1, 0)
        assert c.tombstone_count == 0

    def test_mutating_copy_leaves_original(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        c = s.deep_copy()
        c.add("apple")
        assert s.timestamps("apple") == frozenset({clock(1, 0)})


class TestEquality:
    def test_equal_when_s_keys_match(self, pair):
        a, b = pair
        a.add("apple")
        b.add("apple")
        assert a == b

    def test_not_equal_when_s_keys_differ(self, pair):
        a, b = pair
        a.add("apple")
        b.add("banana")
        assert a != b

    def test_equality_ignores_tombstones(self, pair):
        a, b = pair
        a.add("apple")
        b.add("apple")
        a.remove("apple")
        # apple is still a key of a's S until a merge runs
        assert a == b

    def test_not_equal_to_other_types(self):
        assert ReplicatedSet(1, 0) != {"apple"}

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(ReplicatedSet(1, 0))


class TestStatsAndRendering:
    def test_stats_count_local_operations(self):
        s = ReplicatedSet(2, 0)
        s.add("apple")
        s.add("banana")
        s.remove("apple")
        s.remove("cherry")
        assert s.stats == ReplicatedSetStats(adds=2, removes=1, removes_missed=1)

    def test_str_shows_s_r_and_clocks(self):
        s = ReplicatedSet(2, 0)
        s.add(5)
        s.remove(5)
        text = str(s)
        assert text.startswith("s: {5: ['[1 0]']}")
        assert "r: {5: ['[1 0]@[2 0]']}" in text
        assert text.endswith("clock: [[2 0][0 0]]")
