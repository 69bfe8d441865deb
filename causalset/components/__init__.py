"""Replicated data type components."""

from causalset.components.crdt import (
    ReplicatedSet,
    ReplicatedSetStats,
    ReplicatedState,
    Tombstone,
)

__all__ = [
    "ReplicatedSet",
    "ReplicatedSetStats",
    "ReplicatedState",
    "Tombstone",
]
