"""Epoch registry: running aggregates and the snapshot state machine."""

from .registry import AggregateState, EpochRegistry, EpochTotal, SlopeChange

__all__ = [
    "AggregateState",
    "EpochRegistry",
    "EpochTotal",
    "SlopeChange",
]
