"""Participant position containers."""

from __future__ import annotations

from enum import Enum

from anti_geyser.types import StrictBaseModel, Uint64, Uint256

from .epoch import Epoch

ParticipantId = str
"""Opaque participant identity (a wallet address). Used only as a lookup key."""


class PositionStatus(Enum):
    """Lifecycle of a participant's position."""

    UNINITIALIZED = "uninitialized"
    """The participant has never staked."""

    ACTIVE = "active"
    """The participant currently has a positive stake."""

    DORMANT = "dormant"
    """The participant staked before but has withdrawn everything."""


class PositionState(StrictBaseModel):
    """
    The reward-relevant part of a position.

    These three fields, together with an epoch index, fully determine the
    position's effective stake. Tenure is not stored: it is derived from the
    join epoch at read time.
    """

    amount: Uint256
    """Staked balance in base units."""

    join_epoch: Epoch
    """Epoch of the first stake, reset by every withdrawal."""

    churn_count: Uint64
    """Cumulative number of withdrawals."""

    @property
    def is_active(self) -> bool:
        """Whether any stake is held."""
        return int(self.amount) > 0


class PositionCheckpoint(PositionState):
    """
    A historical position state.

    The state applies from `epoch` (inclusive) until the epoch of the next
    checkpoint. A participant has at most one checkpoint per epoch: the last
    action within an epoch determines that epoch's contribution.
    """

    epoch: Epoch
    """First epoch in which this state was in force."""

    def to_state(self) -> PositionState:
        """Strip the epoch marker."""
        return PositionState(
            amount=self.amount,
            join_epoch=self.join_epoch,
            churn_count=self.churn_count,
        )


class Position(StrictBaseModel):
    """
    A participant's live position.

    Positions are created on the first stake and never deleted: a fully
    withdrawn position stays behind as a dormant record of its history.
    """

    amount: Uint256
    """Currently staked balance."""

    join_epoch: Epoch
    """Epoch of the first stake, or of the most recent withdrawal or re-entry."""

    last_claim_epoch: Epoch | None = None
    """Last epoch whose rewards were paid out, `None` before the first claim."""

    next_claim_epoch: Epoch
    """First epoch not yet paid out."""

    churn_count: Uint64 = Uint64(0)
    """Cumulative number of withdrawals ever made."""

    last_withdraw_epoch: Epoch | None = None
    """Epoch of the most recent withdrawal, `None` if the participant never withdrew."""

    @property
    def status(self) -> PositionStatus:
        """Active while any stake is held, dormant afterwards."""
        return PositionStatus.ACTIVE if int(self.amount) > 0 else PositionStatus.DORMANT

    @property
    def state(self) -> PositionState:
        """The reward-relevant part of this position."""
        return PositionState(
            amount=self.amount,
            join_epoch=self.join_epoch,
            churn_count=self.churn_count,
        )

    def tenure_at(self, epoch: Epoch) -> Uint64:
        """
        Consecutive epochs held without a withdrawal as of `epoch`.

        Every withdrawal moves the join epoch forward, so tenure is simply the
        distance from the join epoch. A dormant position has no tenure.
        """
        if self.status is PositionStatus.DORMANT or int(epoch) < int(self.join_epoch):
            return Uint64(0)
        return Uint64(int(epoch) - int(self.join_epoch))


class PositionView(StrictBaseModel):
    """The `getPosition` answer: a position as seen from the current epoch."""

    amount: Uint256
    join_epoch: Epoch
    last_claim_epoch: Epoch | None
    tenure_epochs: Uint64
    churn_count: Uint64
