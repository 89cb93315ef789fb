"""Epoch index and per-epoch reward record."""

from __future__ import annotations

from functools import total_ordering

from anti_geyser.types import StrictBaseModel, Uint64, Uint256


@total_ordering
class Epoch(Uint64):
    """Represents an epoch number as a 64-bit unsigned integer."""

    def next(self) -> Epoch:
        """The epoch immediately after this one."""
        return Epoch(int(self) + 1)

    def distance_from(self, earlier: Epoch) -> int:
        """
        Number of whole epochs between `earlier` and this epoch.

        Raises:
            AssertionError: If `earlier` is after this epoch.
        """
        assert int(earlier) <= int(self), "Epoch distance must not be negative"
        return int(self) - int(earlier)


class EpochRecord(StrictBaseModel):
    """
    Aggregate accounting for one epoch.

    Open epochs report their running total with `finalized = False`. Once an
    epoch is finalized its record is frozen forever: no later stake, withdrawal
    or claim changes `total_effective_stake` or `reward_allocated`.
    """

    total_effective_stake: Uint256
    """Sum of every participant's effective stake during the epoch."""

    reward_allocated: Uint256 = Uint256(0)
    """Reward tokens distributed pro rata for this epoch (0 until finalized)."""

    finalized: bool = False
    """Whether the record has been snapshotted and frozen."""
