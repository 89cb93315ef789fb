"""Test helpers shared across the anti_geyser test tree."""

from .builders import (
    EPOCH_LENGTH,
    FUNDING,
    PARTICIPANTS,
    START,
    TOTAL_EPOCHS,
    fund,
    make_config,
    make_state,
)

__all__ = [
    "EPOCH_LENGTH",
    "FUNDING",
    "PARTICIPANTS",
    "START",
    "TOTAL_EPOCHS",
    "fund",
    "make_config",
    "make_state",
]
