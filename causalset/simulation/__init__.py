"""Convergence harness: drive replicas through operation logs and check agreement."""

from causalset.simulation.convergence import (
    SWEEP_COLUMNS,
    TRACE_COLUMNS,
    ConvergenceHarness,
    Operation,
    OperationKind,
    TrialConfig,
    TrialResult,
    generate_operations,
    run_trial,
    sweep,
    sync_operations,
    trace_trial,
)

__all__ = [
    "SWEEP_COLUMNS",
    "TRACE_COLUMNS",
    "ConvergenceHarness",
    "Operation",
    "OperationKind",
    "TrialConfig",
    "TrialResult",
    "generate_operations",
    "run_trial",
    "sweep",
    "sync_operations",
    "trace_trial",
]
