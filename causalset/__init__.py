"""causalset - an add/remove set CRDT with causal tombstone collection.

Replicas accept ``add`` and ``remove`` without coordination and converge
once they have exchanged state through ``merge_in``. Vector clocks order
adds against removes, and tombstones are forgotten once every replica is
known to have seen them.

Usage::

    from causalset import ReplicatedSet

    a = ReplicatedSet(replica_count=2, self_index=0)
    b = ReplicatedSet(replica_count=2, self_index=1)
    a.add("apple")
    b.merge_in(a.deep_copy())
    assert "apple" in b
"""

import logging

from causalset.components.crdt import (
    ReplicatedSet,
    ReplicatedSetStats,
    ReplicatedState,
    Tombstone,
)
from causalset.core import CausalClock, Comparison
from causalset.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)

logging.getLogger("causalset").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Core
    "CausalClock",
    "Comparison",
    # CRDTs
    "ReplicatedSet",
    "ReplicatedSetStats",
    "ReplicatedState",
    "Tombstone",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
