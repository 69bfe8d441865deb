"""Tombstone growth and collection over a randomized operation log.

Runs a random add/remove/merge log across several replicas, then the
hub-and-spoke synchronization, and plots how many add timestamps (S)
and tombstones (R) the group holds after every step. Also runs a small
parameter sweep and prints how many trials converged.

Usage:
    python examples/tombstone_growth.py --replicas 4 --events 200
    python examples/tombstone_growth.py --no-viz
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from causalset.simulation import TrialConfig, sweep, trace_trial


def visualize_trace(df: pd.DataFrame, config: TrialConfig, output_dir: Path) -> None:
    """Plot metadata size per step and save it under ``output_dir``."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    output_dir.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(df["step"], df["timestamps"], label="S timestamps")
    ax.plot(df["step"], df["tombstones"], label="R tombstones")
    sync = df[df["phase"] == "sync"]
    if not sync.empty:
        ax.axvspan(sync["step"].min(), sync["step"].max(), color="grey", alpha=0.2, label="sync")
    ax.set_xlabel("operation")
    ax.set_ylabel("entries (all replicas)")
    ax.set_title(
        f"{config.num_replicas} replicas, {config.num_events} events, seed {config.seed}"
    )
    ax.grid(True)
    ax.legend()
    fig.tight_layout()

    path = output_dir / "tombstone_growth.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    print(f"Saved: {path}")


def summarize_sweep(df: pd.DataFrame) -> None:
    by_replicas = df.groupby("num_replicas").agg(
        trials=("converged", "size"),
        converged=("converged", "sum"),
        mean_size=("final_size", "mean"),
        tombstones_left=("tombstones_left", "sum"),
    )
    print(by_replicas.to_string())


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Tombstone growth demo")
    parser.add_argument("--replicas", type=int, default=4)
    parser.add_argument("--events", type=int, default=200)
    parser.add_argument("--max-value", type=int, default=10)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=str, default="output/tombstone_growth")
    parser.add_argument("--no-viz", action="store_true")
    args = parser.parse_args()

    config = TrialConfig(
        seed=args.seed,
        num_events=args.events,
        num_replicas=args.replicas,
        max_value=args.max_value,
    )
    trace = trace_trial(config)

    peak = trace.loc[trace["tombstones"].idxmax()] if not trace.empty else None
    print("=" * 60)
    print("Tombstone Growth")
    print("=" * 60)
    print(f"Steps: {len(trace)}")
    if peak is not None:
        print(f"Peak tombstones: {peak['tombstones']} at step {peak['step']}")
        final = trace.iloc[-1]
        print(f"Final tombstones: {final['tombstones']}")
        print(f"Converged: {final['converged']}")
    print()

    summarize_sweep(
        sweep(
            seeds=range(1, 21),
            event_counts=[10, 50, 100],
            replica_counts=[2, 3, 5],
            max_values=[args.max_value],
        )
    )

    if not args.no_viz:
        visualize_trace(trace, config, Path(args.output))
