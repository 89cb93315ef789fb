"""
Metric registry using prometheus_client.

Provides pre-defined metrics for a staking engine.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a dedicated registry for anti-geyser metrics.
#
# Using a dedicated registry avoids pollution from default Python process metrics.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Program State
# -----------------------------------------------------------------------------

current_epoch = Gauge(
    "anti_geyser_current_epoch",
    "Current program epoch",
    registry=REGISTRY,
)

finalized_epoch = Gauge(
    "anti_geyser_finalized_epoch",
    "Latest finalized epoch (-1 before the first snapshot)",
    registry=REGISTRY,
)

total_staked = Gauge(
    "anti_geyser_total_staked",
    "Total staked amount, in tokens",
    registry=REGISTRY,
)

open_epoch_effective_stake = Gauge(
    "anti_geyser_open_epoch_effective_stake",
    "Running total effective stake of the open epoch, in tokens",
    registry=REGISTRY,
)

participants = Gauge(
    "anti_geyser_participants",
    "Participants that ever staked",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Operations
# -----------------------------------------------------------------------------

stakes = Counter(
    "anti_geyser_stakes_total",
    "Successful stake operations",
    registry=REGISTRY,
)

withdrawals = Counter(
    "anti_geyser_withdrawals_total",
    "Successful withdraw operations",
    registry=REGISTRY,
)

claims = Counter(
    "anti_geyser_claims_total",
    "Successful reward claims",
    registry=REGISTRY,
)

rewards_paid = Counter(
    "anti_geyser_rewards_paid_tokens_total",
    "Reward tokens paid out by claims",
    registry=REGISTRY,
)

epochs_finalized = Counter(
    "anti_geyser_epochs_finalized_total",
    "Epochs snapshotted",
    registry=REGISTRY,
)

rejected_operations = Counter(
    "anti_geyser_rejected_operations_total",
    "Operations rejected with a staking error",
    ["error"],
    registry=REGISTRY,
)

operation_time = Histogram(
    "anti_geyser_operation_seconds",
    "Engine operation duration",
    ["operation"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
