"""Fixed-size vector clock for tracking causality between replicas.

Every replica owns one slot of the vector, addressed by a dense integer
index ``0..N-1``. A replica only ever increments its own slot; all other
slots advance through ``merge_in`` (element-wise max) when state arrives
from another replica.

Comparing two clocks yields one of four outcomes:

- **EQUAL**: identical in every slot.
- **LATER**: ``>=`` in every slot and ``>`` in at least one.
- **EARLIER**: the mirror image of LATER.
- **CONCURRENT**: neither dominates the other.

Clocks are mutable, but a clock recorded as a timestamp must be a
``copy()`` that is never touched again. Equality and hashing cover the
full slot vector so timestamps can live in sets.

Usage::

    a = CausalClock(3)
    a.increment(0)
    b = a.copy()
    b.increment(1)
    assert a.compare(b) is Comparison.EARLIER
    assert b.merge_in(a) == b
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Self


class Comparison(Enum):
    """Outcome of comparing two clocks under the happened-before order."""

    LATER = "later"
    EARLIER = "earlier"
    EQUAL = "equal"
    CONCURRENT = "concurrent"

    def inverse(self) -> Comparison:
        """The outcome of the same comparison with the operands swapped."""
        if self is Comparison.LATER:
            return Comparison.EARLIER
        if self is Comparison.EARLIER:
            return Comparison.LATER
        return self


class CausalClock:
    """Vector of per-replica event counters.

    Args:
        size: Number of replicas (slots). Must be non-negative.

    Raises:
        ValueError: If ``size`` is negative.
    """

    __slots__ = ("_vector",)

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Clock size must be non-negative, got {size}")
        self._vector: list[int] = [0] * size

    @classmethod
    def from_vector(cls, values: Iterable[int]) -> Self:
        """Build a clock from explicit counter values.

        Args:
            values: One non-negative counter per slot.

        Raises:
            ValueError: If any counter is negative.
        """
        vector = [int(v) for v in values]
        for index, counter in enumerate(vector):
            if counter < 0:
                raise ValueError(
                    f"Clock counters must be non-negative, got {counter} at slot {index}"
                )
        clock = cls(0)
        clock._vector = vector
        return clock

    @property
    def size(self) -> int:
        """Number of slots in this clock."""
        return len(self._vector)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._vector):
            raise IndexError(
                f"Clock slot {index} out of range for a clock of size {len(self._vector)}"
            )

    def _check_size(self, other: CausalClock) -> None:
        if len(self._vector) != len(other._vector):
            raise ValueError(
                f"Clock size mismatch: {len(self._vector)} != {len(other._vector)}"
            )

    def increment(self, index: int) -> None:
        """Record a local event on the given slot.

        Args:
            index: The slot to advance by one.

        Raises:
            IndexError: If ``index`` is not a valid slot.
        """
        self._check_index(index)
        self._vector[index] += 1

    def compare(self, other: CausalClock) -> Comparison:
        """Compare this clock against ``other`` slot by slot.

        Args:
            other: A clock of the same size.

        Returns:
            Where this clock sits relative to ``other``.

        Raises:
            ValueError: If the clocks have different sizes.
        """
        self._check_size(other)
        greater = False
        smaller = False
        for mine, theirs in zip(self._vector, other._vector):
            if mine > theirs:
                greater = True
            elif mine < theirs:
                smaller = True
            if greater and smaller:
                return Comparison.CONCURRENT

        if greater:
            return Comparison.LATER
        if smaller:
            return Comparison.EARLIER
        return Comparison.EQUAL

    def happened_before(self, other: CausalClock) -> bool:
        """True if this clock is strictly EARLIER than ``other``."""
        return self.compare(other) is Comparison.EARLIER

    def is_concurrent(self, other: CausalClock) -> bool:
        """True if neither clock dominates the other."""
        return self.compare(other) is Comparison.CONCURRENT

    def merge_in(self, other: CausalClock) -> Self:
        """Take the element-wise max of this clock and ``other``, in place.

        Args:
            other: A clock of the same size.

        Returns:
            This clock, for chaining.

        Raises:
            ValueError: If the clocks have different sizes.
        """
        self._check_size(other)
        self._vector = [max(mine, theirs) for mine, theirs in zip(self._vector, other._vector)]
        return self

    def copy(self) -> CausalClock:
        """Return an independent clock with the same counters."""
        clone = CausalClock(0)
        clone._vector = list(self._vector)
        return clone

    def to_list(self) -> list[int]:
        """Return the counters as a new list."""
        return list(self._vector)

    def __getitem__(self, index: int) -> int:
        self._check_index(index)
        return self._vector[index]

    def __len__(self) -> int:
        return len(self._vector)

    def __iter__(self) -> Iterator[int]:
        return iter(self._vector)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CausalClock):
            return NotImplemented
        return self._vector == other._vector

    def __hash__(self) -> int:
        return hash(tuple(self._vector))

    def __str__(self) -> str:
        return "[" + " ".join(str(counter) for counter in self._vector) + "]"

    def __repr__(self) -> str:
        return f"CausalClock({self._vector!r})"
