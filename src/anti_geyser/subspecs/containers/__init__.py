"""
The container types for the staking engine.

Containers are frozen pydantic models. State changes produce new instances
via `model_copy(update=...)`; nothing is mutated in place.
"""

from .epoch import Epoch, EpochRecord
from .position import (
    ParticipantId,
    Position,
    PositionCheckpoint,
    PositionState,
    PositionStatus,
    PositionView,
)

__all__ = [
    "Epoch",
    "EpochRecord",
    "ParticipantId",
    "Position",
    "PositionCheckpoint",
    "PositionState",
    "PositionStatus",
    "PositionView",
]
