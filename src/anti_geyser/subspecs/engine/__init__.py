"""
The staking engine: the single mutation gateway over positions and epochs.
"""

from anti_geyser.types.exceptions import (
    AlreadyFinalized,
    EpochNotEnded,
    EpochNotFinalized,
    InsufficientBalance,
    InsufficientStake,
    InvalidAmount,
    NothingToClaim,
    OutOfOrderFinalization,
    ProgramInactive,
    SnapshotError,
    StakingError,
)

from .engine import DEFAULT_ACCOUNT, StakingEngine
from .token import InMemoryTokenBank, TokenBank

__all__ = [
    # Engine
    "DEFAULT_ACCOUNT",
    "StakingEngine",
    # Tokens
    "InMemoryTokenBank",
    "TokenBank",
    # Errors
    "AlreadyFinalized",
    "EpochNotEnded",
    "EpochNotFinalized",
    "InsufficientBalance",
    "InsufficientStake",
    "InvalidAmount",
    "NothingToClaim",
    "OutOfOrderFinalization",
    "ProgramInactive",
    "SnapshotError",
    "StakingError",
]
