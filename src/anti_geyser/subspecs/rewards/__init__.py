"""Reward accrual over finalized epochs."""

from .accrual import Accrual, EpochShare, accrue, epoch_share

__all__ = [
    "Accrual",
    "EpochShare",
    "accrue",
    "epoch_share",
]
