"""Causality tracking primitives."""

from causalset.core.causal_clock import CausalClock, Comparison

__all__ = [
    "CausalClock",
    "Comparison",
]
