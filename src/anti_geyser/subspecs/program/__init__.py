"""Program parameters and the epoch clock."""

from .clock import EpochClock
from .config import ProgramConfig

__all__ = [
    "EpochClock",
    "ProgramConfig",
]
