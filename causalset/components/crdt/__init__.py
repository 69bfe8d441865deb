"""Conflict-free Replicated Data Types (CRDTs).

CRDTs are data structures that converge automatically once replicas
have exchanged state, without requiring consensus. Merge operations are
commutative, associative, and idempotent.

Provided CRDTs:

- **ReplicatedSet**: Add/remove set with vector-clock timestamps and
  causally-stable tombstone garbage collection
"""

from causalset.components.crdt.protocol import ReplicatedState
from causalset.components.crdt.replicated_set import (
    ReplicatedSet,
    ReplicatedSetStats,
    Tombstone,
)

__all__ = [
    "ReplicatedState",
    "ReplicatedSet",
    "ReplicatedSetStats",
    "Tombstone",
]
