"""Randomized convergence harness for ReplicatedSet.

Drives N independent replicas through a log of add / remove / merge
operations, then synchronizes them through a hub and checks that every
replica ends up with the same S key set.

Synchronization runs ``rounds`` passes of: the hub merges every spoke,
then every spoke merges the hub. Two passes are needed before every
replica's view of every other clock dominates all tombstones, at which
point R can be emptied and all replicas agree.

Example::

    result = run_trial(TrialConfig(seed=7, num_events=25, num_replicas=4))
    assert result.converged

    df = sweep(seeds=range(1, 50), event_counts=[10, 20], replica_counts=[2, 3])
    assert df["converged"].all()
"""

from __future__ import annotations

import itertools
import logging
import random
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from causalset.components.crdt.replicated_set import ReplicatedSet

logger = logging.getLogger(__name__)


class OperationKind(Enum):
    ADD = "add"
    REMOVE = "remove"
    MERGE = "merge"


@dataclass(frozen=True)
class Operation:
    """One step of an operation log.

    Attributes:
        kind: What the replica does.
        replica: Index of the replica performing the step.
        value: Element for ADD / REMOVE.
        remote: Index of the replica whose snapshot is merged, for MERGE.
    """

    kind: OperationKind
    replica: int
    value: Hashable | None = None
    remote: int | None = None

    @classmethod
    def add(cls, replica: int, value: Hashable) -> Operation:
        return cls(OperationKind.ADD, replica, value=value)

    @classmethod
    def remove(cls, replica: int, value: Hashable) -> Operation:
        return cls(OperationKind.REMOVE, replica, value=value)

    @classmethod
    def merge(cls, replica: int, remote: int) -> Operation:
        return cls(OperationKind.MERGE, replica, remote=remote)

    def __str__(self) -> str:
        if self.kind is OperationKind.MERGE:
            return f"merge replica {self.remote} into replica {self.replica}"
        return f"{self.kind.value} {self.value!r} on replica {self.replica}"


@dataclass(frozen=True)
class TrialConfig:
    """Parameters of one randomized trial.

    Attributes:
        seed: Random seed; 0 draws from an unseeded stream.
        num_events: Number of random steps to attempt.
        num_replicas: Number of replicas.
        max_value: Added elements are drawn from ``range(max_value)``.
        sync_rounds: Hub synchronization passes after the random steps.
        hub: Replica used as the synchronization hub.
    """

    seed: int = 0
    num_events: int = 20
    num_replicas: int = 3
    max_value: int = 10
    sync_rounds: int = 2
    hub: int = 0

    def __post_init__(self) -> None:
        if self.num_events < 0:
            raise ValueError(f"num_events must be non-negative, got {self.num_events}")
        if self.num_replicas < 1:
            raise ValueError(f"num_replicas must be positive, got {self.num_replicas}")
        if self.max_value < 1:
            raise ValueError(f"max_value must be positive, got {self.max_value}")
        if self.sync_rounds < 0:
            raise ValueError(f"sync_rounds must be non-negative, got {self.sync_rounds}")
        if not 0 <= self.hub < self.num_replicas:
            raise ValueError(
                f"hub {self.hub} out of range for {self.num_replicas} replicas"
            )

    def rng(self) -> random.Random:
        return random.Random() if self.seed == 0 else random.Random(self.seed)


@dataclass(frozen=True)
class TrialResult:
    """Outcome of one trial.

    Attributes:
        config: The trial parameters.
        operations: Operations actually applied before synchronization.
        converged: Whether every replica's S key set matched after sync.
        values: Member values of each replica after sync.
        tombstones: Tombstones left in each replica after sync.
    """

    config: TrialConfig
    operations: tuple[Operation, ...] = field(repr=False)
    converged: bool
    values: tuple[frozenset, ...]
    tombstones: tuple[int, ...]

    def to_row(self) -> dict:
        """Flatten into a dict suitable for a DataFrame row."""
        return {
            "seed": self.config.seed,
            "num_events": self.config.num_events,
            "num_replicas": self.config.num_replicas,
            "max_value": self.config.max_value,
            "operations": len(self.operations),
            "converged": self.converged,
            "final_size": len(self.values[0]) if self.values else 0,
            "tombstones_left": sum(self.tombstones),
        }


SWEEP_COLUMNS = [
    "seed",
    "num_events",
    "num_replicas",
    "max_value",
    "operations",
    "converged",
    "final_size",
    "tombstones_left",
]


class ConvergenceHarness:
    """Owns a group of replicas and applies operations to them.

    Args:
        num_replicas: Number of replicas to create, indexed ``0..n-1``.
    """

    def __init__(self, num_replicas: int):
        if num_replicas < 1:
            raise ValueError(f"num_replicas must be positive, got {num_replicas}")
        self._replicas = [ReplicatedSet(num_replicas, i) for i in range(num_replicas)]

    @property
    def replicas(self) -> list[ReplicatedSet]:
        return list(self._replicas)

    def __getitem__(self, index: int) -> ReplicatedSet:
        return self._replicas[index]

    def __len__(self) -> int:
        return len(self._replicas)

    def apply(self, op: Operation) -> None:
        """Apply one operation to the replica it names."""
        replica = self._replicas[op.replica]
        logger.debug("Applying: %s", op)
        if op.kind is OperationKind.ADD:
            replica.add(op.value)
        elif op.kind is OperationKind.REMOVE:
            replica.remove(op.value)
        else:
            replica.merge_in(self._replicas[op.remote].deep_copy())

    def apply_all(self, ops: Iterable[Operation]) -> None:
        for op in ops:
            self.apply(op)

    def run_random(self, rng: random.Random, num_events: int, max_value: int) -> list[Operation]:
        """Apply ``num_events`` random steps and return the operations applied.

        A remove picks one of the chosen replica's current members; when
        the replica is empty the step is skipped and nothing is recorded.
        """
        applied: list[Operation] = []
        for _ in range(num_events):
            index = rng.randrange(len(self._replicas))
            opcode = rng.randrange(3)
            if opcode == 0:
                op = Operation.add(index, rng.randrange(max_value))
            elif opcode == 1:
                members = sorted(self._replicas[index].values())
                if not members:
                    logger.debug("Remove skipped: replica %d is empty", index)
                    continue
                op = Operation.remove(index, members[rng.randrange(len(members))])
            else:
                op = Operation.merge(index, rng.randrange(len(self._replicas)))
            self.apply(op)
            applied.append(op)
        return applied

    def synchronize(self, rounds: int = 2, hub: int = 0) -> None:
        """Exchange state through ``hub``: spokes into the hub, then back out."""
        self.apply_all(sync_operations(len(self._replicas), rounds, hub))

    def converged(self) -> bool:
        """True if every replica has the same S key set as the first."""
        first = self._replicas[0]
        return all(first == other for other in self._replicas[1:])

    def agreed_values(self) -> frozenset | None:
        """The common member set, or None if replicas disagree."""
        if not self.converged():
            return None
        return self._replicas[0].values()

    def tombstone_counts(self) -> list[int]:
        return [replica.tombstone_count for replica in self._replicas]

    def timestamp_counts(self) -> list[int]:
        return [replica.timestamp_count for replica in self._replicas]

    def dump(self) -> str:
        """One line of state per replica."""
        return "\n".join(f"{i}: {replica}" for i, replica in enumerate(self._replicas))


def generate_operations(config: TrialConfig) -> list[Operation]:
    """Produce the random operation log ``config`` describes.

    Removes are chosen from live replica state, so the log is generated
    against a scratch harness. Replaying it on a fresh harness reproduces
    the same states.
    """
    return ConvergenceHarness(config.num_replicas).run_random(
        config.rng(), config.num_events, config.max_value
    )


def sync_operations(num_replicas: int, rounds: int = 2, hub: int = 0) -> list[Operation]:
    """The merges of ``rounds`` hub-and-spoke passes, in order."""
    spokes = [i for i in range(num_replicas) if i != hub]
    ops: list[Operation] = []
    for _ in range(rounds):
        ops.extend(Operation.merge(hub, i) for i in spokes)
        ops.extend(Operation.merge(i, hub) for i in spokes)
    return ops


TRACE_COLUMNS = ["step", "phase", "operation", "members", "timestamps", "tombstones", "converged"]


def trace_trial(config: TrialConfig) -> pd.DataFrame:
    """Replay a trial one operation at a time, recording metadata size.

    Returns:
        One row per applied operation (random phase, then sync phase) with
        the total S timestamps and R tombstones held across all replicas.
    """
    harness = ConvergenceHarness(config.num_replicas)
    phases = [
        ("random", generate_operations(config)),
        ("sync", sync_operations(config.num_replicas, config.sync_rounds, config.hub)),
    ]
    rows = []
    step = 0
    for phase, ops in phases:
        for op in ops:
            harness.apply(op)
            step += 1
            rows.append(
                {
                    "step": step,
                    "phase": phase,
                    "operation": str(op),
                    "members": sum(len(replica) for replica in harness.replicas),
                    "timestamps": sum(harness.timestamp_counts()),
                    "tombstones": sum(harness.tombstone_counts()),
                    "converged": harness.converged(),
                }
            )
    return pd.DataFrame(rows, columns=TRACE_COLUMNS)


def run_trial(config: TrialConfig) -> TrialResult:
    """Run random steps, synchronize through the hub and check convergence."""
    harness = ConvergenceHarness(config.num_replicas)
    operations = harness.run_random(config.rng(), config.num_events, config.max_value)
    harness.synchronize(rounds=config.sync_rounds, hub=config.hub)

    converged = harness.converged()
    if not converged:
        logger.warning(
            "Replicas diverged for seed=%d events=%d replicas=%d\n%s",
            config.seed,
            config.num_events,
            config.num_replicas,
            harness.dump(),
        )
    return TrialResult(
        config=config,
        operations=tuple(operations),
        converged=converged,
        values=tuple(replica.values() for replica in harness.replicas),
        tombstones=tuple(harness.tombstone_counts()),
    )


def sweep(
    seeds: Iterable[int],
    event_counts: Iterable[int],
    replica_counts: Iterable[int],
    max_values: Iterable[int] = (10,),
) -> pd.DataFrame:
    """Run a trial for every parameter combination.

    Returns:
        One row per trial with the columns in ``SWEEP_COLUMNS``.
    """
    rows = [
        run_trial(
            TrialConfig(
                seed=seed,
                num_events=events,
                num_replicas=replicas,
                max_value=max_value,
            )
        ).to_row()
        for seed, events, replicas, max_value in itertools.product(
            list(seeds), list(event_counts), list(replica_counts), list(max_values)
        )
    ]
    df = pd.DataFrame(rows, columns=SWEEP_COLUMNS)
    logger.info(
        "Sweep finished: %d trials, %d diverged",
        len(df),
        int((~df["converged"]).sum()) if len(df) else 0,
    )
    return df
