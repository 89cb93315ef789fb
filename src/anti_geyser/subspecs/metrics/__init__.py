"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking engine behavior.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    claims,
    current_epoch,
    epochs_finalized,
    finalized_epoch,
    generate_metrics,
    open_epoch_effective_stake,
    operation_time,
    participants,
    rejected_operations,
    rewards_paid,
    stakes,
    total_staked,
    withdrawals,
)

__all__ = [
    "REGISTRY",
    "claims",
    "current_epoch",
    "epochs_finalized",
    "finalized_epoch",
    "generate_metrics",
    "open_epoch_effective_stake",
    "operation_time",
    "participants",
    "rejected_operations",
    "rewards_paid",
    "stakes",
    "total_staked",
    "withdrawals",
]
