"""Protocol for state-based replicated data types.

A replica's full state is copied with ``deep_copy()``, handed to a peer
by whatever transport the embedder uses, and folded in there with
``merge_in()``. Repeated merges of the same snapshot must not change the
observable value, and replicas that have exchanged state with each other
must converge to the same value.
"""

from __future__ import annotations

from typing import Any, Protocol, Self, runtime_checkable


@runtime_checkable
class ReplicatedState(Protocol):
    """Protocol for replica state types.

    All replica states must support:
    - ``value``: Read the current resolved value.
    - ``deep_copy()``: Take an isolated snapshot to send to a peer.
    - ``merge_in(other)``: Fold a peer's snapshot into this replica (in-place).
    """

    @property
    def value(self) -> Any:
        """The current resolved value of this replica."""
        ...

    def deep_copy(self) -> Self:
        """Return a snapshot sharing no mutable state with this replica."""
        ...

    def merge_in(self, other: Self) -> None:
        """Merge another replica's snapshot into this one (in-place).

        Args:
            other: A snapshot of another replica of the same type.
        """
        ...
