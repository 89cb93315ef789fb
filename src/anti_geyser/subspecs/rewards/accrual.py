"""
Reward Accrual
==============

A participant's share of a finalized epoch is

    reward = rewardAllocated * effectiveStake / totalEffectiveStake

computed from the position state that was in force during that epoch, never
from the live position. Integer division rounds down, so the shares of one
epoch never add up to more than its allocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from anti_geyser.subspecs.containers import Epoch, ParticipantId
from anti_geyser.subspecs.epochs import EpochRegistry
from anti_geyser.subspecs.ledger import PositionLedger
from anti_geyser.subspecs.program import ProgramConfig
from anti_geyser.subspecs.weighting import effective_stake
from anti_geyser.types import Uint256
from anti_geyser.types.exceptions import EpochNotFinalized


def epoch_share(reward: int, stake: int, total: int) -> int:
    """Pro-rata share of an epoch's reward, zero when nobody staked."""
    if total == 0:
        return 0
    return int(reward) * int(stake) // int(total)


@dataclass(frozen=True, slots=True)
class EpochShare:
    """One participant's reward for one finalized epoch."""

    epoch: Epoch
    effective_stake: Uint256
    total_effective_stake: Uint256
    reward: Uint256


@dataclass(frozen=True, slots=True)
class Accrual:
    """Rewards accrued over a range of epochs."""

    amount: Uint256
    """Sum of every per-epoch reward."""

    through: Epoch | None
    """Last epoch of the range that was accounted, `None` for an empty range."""

    shares: list[EpochShare] = field(default_factory=list)
    """Per-epoch breakdown, one entry per finalized epoch walked."""


def accrue(
    ledger: PositionLedger,
    registry: EpochRegistry,
    config: ProgramConfig,
    participant: ParticipantId,
    start: int,
    end: int,
    require_finalized: bool = False,
) -> Accrual:
    """
    Sum a participant's rewards over epochs `[start, end)`.

    Read-only: nothing is mutated, so repeated calls agree until the next
    stake, withdrawal, claim or snapshot.

    Raises:
        EpochNotFinalized: If `require_finalized` is set and an epoch in the
            range has not been snapshotted. Otherwise such epochs are skipped.
    """
    total = 0
    through: Epoch | None = None
    shares: list[EpochShare] = []

    for index in range(start, end):
        epoch = Epoch(index)
        if not registry.is_finalized(epoch):
            if require_finalized:
                raise EpochNotFinalized(index)
            continue

        record = registry.record(epoch)
        stake = effective_stake(ledger.state_at(participant, epoch), epoch, config)
        reward = epoch_share(
            int(record.reward_allocated), int(stake), int(record.total_effective_stake)
        )

        total += reward
        through = epoch
        shares.append(
            EpochShare(
                epoch=epoch,
                effective_stake=stake,
                total_effective_stake=record.total_effective_stake,
                reward=Uint256(reward),
            )
        )

    return Accrual(amount=Uint256(total), through=through, shares=shares)
