"""Add/remove set CRDT with causal garbage collection of tombstones.

Each replica keeps two maps keyed by element:

- **added** (S): the vector-clock timestamps of every ``add`` it knows of.
- **removed** (R): tombstones, each pairing an add timestamp that some
  ``remove`` observed with the clock of that remove.

An element is a member while at least one of its add timestamps is not
covered by a tombstone. Merging another replica's snapshot unions both
maps, drops add timestamps covered by tombstones, and forgets tombstones
once every replica is known to have seen the remove that created them.
That last step keeps R bounded without letting stale replicas resurrect
removed elements.

Example::

    a = ReplicatedSet(2, 0)
    b = ReplicatedSet(2, 1)
    a.add(5)
    b.add(7)
    a.merge_in(b.deep_copy())
    b.merge_in(a.deep_copy())
    assert a.values() == b.values() == frozenset({5, 7})
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterator
from dataclasses import dataclass
from typing import Self

from causalset.core.causal_clock import CausalClock, Comparison

logger = logging.getLogger(__name__)

# Outcomes of timestamp.compare(tombstone.added) under which the tombstone cancels the add.
_COVERED = (Comparison.EQUAL, Comparison.EARLIER)


@dataclass(frozen=True)
class Tombstone:
    """Record that one add of an element has been removed.

    Attributes:
        added: Copy of the add timestamp the remove observed.
        removed: Copy of the removing replica's clock right after the remove.
    """

    added: CausalClock
    removed: CausalClock

    def copy(self) -> Tombstone:
        return Tombstone(self.added.copy(), self.removed.copy())

    def covers(self, timestamp: CausalClock) -> bool:
        """True if ``timestamp`` is this add or causally precedes it."""
        return timestamp.compare(self.added) in _COVERED

    def is_stable(self, clocks: list[CausalClock]) -> bool:
        """True if the remove is EARLIER than every clock in ``clocks``."""
        return all(self.removed.compare(clock) is Comparison.EARLIER for clock in clocks)

    def __str__(self) -> str:
        return f"{self.added}@{self.removed}"


@dataclass(frozen=True)
class ReplicatedSetStats:
    """Statistics for a ReplicatedSet replica.

    Attributes:
        adds: Local add operations.
        removes: Local removes that found the element and wrote tombstones.
        removes_missed: Local removes of elements absent from S.
        merges: Snapshots merged in.
        timestamps_discarded: Add timestamps dropped by tombstones during merges.
        tombstones_pruned: Tombstones forgotten once causally stable.
    """

    adds: int = 0
    removes: int = 0
    removes_missed: int = 0
    merges: int = 0
    timestamps_discarded: int = 0
    tombstones_pruned: int = 0


class ReplicatedSet:
    """One replica of the add/remove set.

    Args:
        replica_count: Number of replicas in the system (clock size).
        self_index: This replica's slot in every clock.
        initial_clock: Optional starting value for this replica's own clock.
            Every other replica's clock starts at zero.

    Raises:
        ValueError: If ``replica_count`` is not positive or
            ``initial_clock`` has the wrong size.
        IndexError: If ``self_index`` is not a valid slot.
    """

    __slots__ = (
        "_self_index",
        "_clocks",
        "_added",
        "_removed",
        "_adds",
        "_removes",
        "_removes_missed",
        "_merges",
        "_timestamps_discarded",
        "_tombstones_pruned",
    )

    def __init__(
        self,
        replica_count: int,
        self_index: int,
        initial_clock: CausalClock | None = None,
    ):
        if replica_count < 1:
            raise ValueError(f"Replica count must be positive, got {replica_count}")
        if not 0 <= self_index < replica_count:
            raise IndexError(
                f"Replica index {self_index} out of range for {replica_count} replicas"
            )
        if initial_clock is not None and initial_clock.size != replica_count:
            raise ValueError(
                f"Initial clock has {initial_clock.size} slots, expected {replica_count}"
            )

        self._self_index = self_index
        self._clocks: list[CausalClock] = [CausalClock(replica_count) for _ in range(replica_count)]
        if initial_clock is not None:
            self._clocks[self_index] = initial_clock.copy()
        self._added: dict[Hashable, set[CausalClock]] = {}
        self._removed: dict[Hashable, set[Tombstone]] = {}
        self._adds = 0
        self._removes = 0
        self._removes_missed = 0
        self._merges = 0
        self._timestamps_discarded = 0
        self._tombstones_pruned = 0

    @property
    def self_index(self) -> int:
        """This replica's slot."""
        return self._self_index

    @property
    def replica_count(self) -> int:
        """Number of replicas this replica knows about."""
        return len(self._clocks)

    @property
    def clock(self) -> CausalClock:
        """Copy of this replica's own clock."""
        return self._clocks[self._self_index].copy()

    @property
    def known_clocks(self) -> list[CausalClock]:
        """Copies of the last-known clock of every replica, this one included."""
        return [clock.copy() for clock in self._clocks]

    @property
    def value(self) -> frozenset:
        """Current members (alias for ``values()``)."""
        return self.values()

    @property
    def tombstone_count(self) -> int:
        """Total tombstones currently held in R."""
        return sum(len(tombstones) for tombstones in self._removed.values())

    @property
    def timestamp_count(self) -> int:
        """Total add timestamps currently held in S."""
        return sum(len(stamps) for stamps in self._added.values())

    @property
    def stats(self) -> ReplicatedSetStats:
        """Return a frozen snapshot of replica statistics."""
        return ReplicatedSetStats(
            adds=self._adds,
            removes=self._removes,
            removes_missed=self._removes_missed,
            merges=self._merges,
            timestamps_discarded=self._timestamps_discarded,
            tombstones_pruned=self._tombstones_pruned,
        )

    def timestamps(self, value: Hashable) -> frozenset[CausalClock]:
        """Copies of the add timestamps held in S for ``value``."""
        return frozenset(ts.copy() for ts in self._added.get(value, ()))

    def tombstones(self, value: Hashable) -> frozenset[Tombstone]:
        """Copies of the tombstones held in R for ``value``."""
        return frozenset(t.copy() for t in self._removed.get(value, ()))

    def _tick(self) -> CausalClock:
        own = self._clocks[self._self_index]
        own.increment(self._self_index)
        return own

    def add(self, value: Hashable) -> None:
        """Add ``value`` under a fresh timestamp.

        Args:
            value: The element to add. Must be hashable.
        """
        timestamp = self._tick().copy()
        self._added.setdefault(value, set()).add(timestamp)
        self._adds += 1

    def remove(self, value: Hashable) -> bool:
        """Tombstone every add of ``value`` this replica has seen.

        The element stays in S until the next merge discards the covered
        timestamps, but ``contains`` reports it gone straight away.

        Args:
            value: The element to remove.

        Returns:
            False if ``value`` has no add timestamps here, True otherwise.
        """
        timestamps = self._added.get(value)
        if timestamps is None:
            self._removes_missed += 1
            return False

        removed_at = self._tick().copy()
        self._removed.setdefault(value, set()).update(
            Tombstone(ts.copy(), removed_at.copy()) for ts in timestamps
        )
        self._removes += 1
        return True

    def contains(self, value: Hashable) -> bool:
        """Check whether ``value`` is a member.

        Args:
            value: The element to check.

        Returns:
            True if some add timestamp of ``value`` is not covered by a tombstone.
        """
        timestamps = self._added.get(value)
        if not timestamps:
            return False
        tombstones = self._removed.get(value)
        if not tombstones:
            return True
        return any(not _is_covered(ts, tombstones) for ts in timestamps)

    def values(self) -> frozenset:
        """Frozenset of current members, in no particular order."""
        return frozenset(v for v in self._added if self.contains(v))

    def deep_copy(self) -> Self:
        """Return a snapshot sharing no mutable state with this replica."""
        clone = type(self)(len(self._clocks), self._self_index)
        clone._clocks = [clock.copy() for clock in self._clocks]
        clone._added = {v: {ts.copy() for ts in stamps} for v, stamps in self._added.items()}
        clone._removed = {v: {t.copy() for t in stones} for v, stones in self._removed.items()}
        clone._adds = self._adds
        clone._removes = self._removes
        clone._removes_missed = self._removes_missed
        clone._merges = self._merges
        clone._timestamps_discarded = self._timestamps_discarded
        clone._tombstones_pruned = self._tombstones_pruned
        return clone

    def merge_in(self, sender: ReplicatedSet) -> None:
        """Fold another replica's snapshot into this one.

        ``sender`` should be a ``deep_copy()`` that nothing else mutates.
        It must also be fresh: a snapshot held back until after this
        replica has pruned a tombstone brings back the add that tombstone
        cancelled, because nothing is left here to cover it. Transports
        that can delay or replay snapshots have to drop stale ones.

        Steps, in order:

        1. Count the receipt as a local event.
        2. Merge every known clock with the sender's, then merge our own
           clock with the sender's own clock.
        3. Union S and R key by key.
        4. Drop add timestamps covered by a tombstone; drop empty keys.
        5. Forget tombstones whose remove is EARLIER than every known
           clock; drop empty keys.

        Args:
            sender: Snapshot of another replica.

        Raises:
            ValueError: If the sender was built for a different replica count.
        """
        if len(sender._clocks) != len(self._clocks):
            raise ValueError(
                f"Cannot merge a replica of {len(sender._clocks)} into one of "
                f"{len(self._clocks)}"
            )

        own = self._tick()
        for mine, theirs in zip(self._clocks, sender._clocks):
            mine.merge_in(theirs)
        own.merge_in(sender._clocks[sender._self_index])

        _union_by_key(self._added, sender._added, CausalClock.copy)
        _union_by_key(self._removed, sender._removed, Tombstone.copy)

        discarded = 0
        for value in list(self._added):
            tombstones = self._removed.get(value)
            if not tombstones:
                continue
            timestamps = self._added[value]
            survivors = {ts for ts in timestamps if not _is_covered(ts, tombstones)}
            discarded += len(timestamps) - len(survivors)
            if survivors:
                self._added[value] = survivors
            else:
                del self._added[value]

        pruned = 0
        for value in list(self._removed):
            tombstones = self._removed[value]
            kept = {t for t in tombstones if not t.is_stable(self._clocks)}
            pruned += len(tombstones) - len(kept)
            if kept:
                self._removed[value] = kept
            else:
                del self._removed[value]

        self._merges += 1
        self._timestamps_discarded += discarded
        self._tombstones_pruned += pruned
        logger.debug(
            "[replica %d] merged replica %d: clock=%s, %d timestamps discarded, "
            "%d tombstones pruned, %d tombstones held",
            self._self_index,
            sender._self_index,
            own,
            discarded,
            pruned,
            self.tombstone_count,
        )

    def __contains__(self, value: object) -> bool:
        return self.contains(value)

    def __len__(self) -> int:
        return sum(1 for v in self._added if self.contains(v))

    def __iter__(self) -> Iterator[Hashable]:
        return iter(v for v in self._added if self.contains(v))

    def __str__(self) -> str:
        added = {v: sorted(str(ts) for ts in stamps) for v, stamps in self._added.items()}
        removed = {v: sorted(str(t) for t in stones) for v, stones in self._removed.items()}
        clocks = "".join(str(clock) for clock in self._clocks)
        return f"s: {added} r: {removed} clock: [{clocks}]"

    def __repr__(self) -> str:
        return (
            f"ReplicatedSet(self_index={self._self_index!r}, "
            f"replica_count={len(self._clocks)!r}, values={self.values()!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReplicatedSet):
            return NotImplemented
        # Replicas agree once their S key sets match, whatever tombstones remain
        return self._added.keys() == other._added.keys()

    __hash__ = None  # type: ignore[assignment]


def _is_covered(timestamp: CausalClock, tombstones: set[Tombstone]) -> bool:
    return any(t.covers(timestamp) for t in tombstones)


def _union_by_key(target: dict, source: dict, copy) -> None:
    """Union ``source``'s per-key sets into ``target``, copying every item."""
    for key, items in source.items():
        target.setdefault(key, set()).update(copy(item) for item in items)
