"""
Position Ledger
===============

Per-participant state and its stake/withdraw transitions.

Each participant moves through three states:

    Uninitialized --stake--> Active --withdraw all--> Dormant --stake--> Active

Besides the live `Position`, the ledger keeps a checkpoint history. A
checkpoint records the reward-relevant state in force from its epoch onwards.
Past epochs are thus rewarded with the join epoch, tenure and churn count that
applied then, even after a later withdrawal rewrote the live position.

Tenure is never swept: it is derived at read time from the join epoch, which
every withdrawal moves forward.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from anti_geyser.subspecs.containers import (
    Epoch,
    ParticipantId,
    Position,
    PositionCheckpoint,
    PositionState,
    PositionStatus,
)
from anti_geyser.types import Uint64, Uint256


@dataclass(frozen=True, slots=True)
class Transition:
    """The reward-relevant state of a position before and after an action."""

    previous: PositionState | None
    """State in force before the action, `None` for a first stake."""

    current: PositionState
    """State in force after the action."""


class PositionLedger:
    """
    Owns every participant's position and its checkpoint history.

    The ledger only applies transitions. Preconditions (positive amounts,
    sufficient stake, program window) are checked by the engine beforehand.
    """

    def __init__(self) -> None:
        self._positions: dict[ParticipantId, Position] = {}
        self._checkpoints: dict[ParticipantId, list[PositionCheckpoint]] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, participant: object) -> bool:
        return participant in self._positions

    def get(self, participant: ParticipantId) -> Position | None:
        """Look up a live position."""
        return self._positions.get(participant)

    def status(self, participant: ParticipantId) -> PositionStatus:
        """Lifecycle state of a participant."""
        position = self._positions.get(participant)
        return PositionStatus.UNINITIALIZED if position is None else position.status

    def participants(self) -> list[ParticipantId]:
        """Every participant that ever staked, in first-stake order."""
        return list(self._positions)

    def checkpoints(self, participant: ParticipantId) -> list[PositionCheckpoint]:
        """A copy of a participant's checkpoint history, oldest first."""
        return list(self._checkpoints.get(participant, ()))

    def total_staked(self) -> int:
        """Sum of every live staked amount."""
        return sum(int(p.amount) for p in self._positions.values())

    def apply_stake(
        self,
        participant: ParticipantId,
        amount: Uint256,
        epoch: Epoch,
        reset_on_top_up: bool = False,
    ) -> Transition:
        """
        Add stake to a position.

        A first stake, or a stake on a dormant position, joins at `epoch`.
        A top-up on an active position keeps its standing unless
        `reset_on_top_up` is set.
        """
        assert int(amount) > 0, "Stake amount must be positive"
        position = self._positions.get(participant)

        if position is None:
            previous = None
            updated = Position(
                amount=amount,
                join_epoch=epoch,
                next_claim_epoch=epoch,
            )
        else:
            previous = position.state
            rejoin = position.status is PositionStatus.DORMANT or reset_on_top_up
            updated = position.model_copy(
                update={
                    "amount": position.amount + amount,
                    "join_epoch": epoch if rejoin else position.join_epoch,
                }
            )

        self._store(participant, updated, epoch)
        return Transition(previous=previous, current=updated.state)

    def apply_withdraw(
        self, participant: ParticipantId, amount: Uint256, epoch: Epoch
    ) -> Transition:
        """
        Remove stake from a position.

        Any withdrawal, partial or full, counts as one churn and forfeits the
        accumulated standing: the join epoch moves to `epoch`.
        """
        position = self._positions.get(participant)
        assert position is not None, f"Unknown participant {participant}"
        assert 0 < int(amount) <= int(position.amount), "Withdrawal exceeds stake"

        previous = position.state
        updated = position.model_copy(
            update={
                "amount": position.amount - amount,
                "join_epoch": epoch,
                "churn_count": position.churn_count + Uint64(1),
                "last_withdraw_epoch": epoch,
            }
        )

        self._store(participant, updated, epoch)
        return Transition(previous=previous, current=updated.state)

    def advance_claim(self, participant: ParticipantId, through: Epoch) -> Position:
        """Mark every epoch up to and including `through` as paid out."""
        position = self._positions[participant]
        updated = position.model_copy(
            update={"last_claim_epoch": through, "next_claim_epoch": through.next()}
        )
        self._positions[participant] = updated
        return updated

    def state_at(self, participant: ParticipantId, epoch: Epoch) -> PositionState | None:
        """
        The position state that was in force during `epoch`.

        Returns `None` if the participant had not staked yet.
        """
        history = self._checkpoints.get(participant)
        if not history:
            return None

        index = bisect_right(history, int(epoch), key=lambda c: int(c.epoch))
        if index == 0:
            return None
        return history[index - 1].to_state()

    def restore(
        self,
        positions: dict[ParticipantId, Position],
        checkpoints: dict[ParticipantId, list[PositionCheckpoint]],
    ) -> None:
        """Replace the ledger contents with previously persisted state."""
        self._positions = dict(positions)
        self._checkpoints = {
            participant: sorted(history, key=lambda c: int(c.epoch))
            for participant, history in checkpoints.items()
        }

    def reset(
        self,
        participant: ParticipantId,
        position: Position | None,
        history: list[PositionCheckpoint],
    ) -> None:
        """Put back a participant's earlier entry. `None` removes the participant."""
        if position is None:
            self._positions.pop(participant, None)
            self._checkpoints.pop(participant, None)
        else:
            self._positions[participant] = position
            self._checkpoints[participant] = list(history)

    def _store(self, participant: ParticipantId, position: Position, epoch: Epoch) -> None:
        """Save a position and checkpoint its state. The last action in an epoch wins."""
        self._positions[participant] = position

        checkpoint = PositionCheckpoint(
            epoch=epoch,
            amount=position.amount,
            join_epoch=position.join_epoch,
            churn_count=position.churn_count,
        )
        history = self._checkpoints.setdefault(participant, [])
        if history and int(history[-1].epoch) == int(epoch):
            history[-1] = checkpoint
        else:
            assert not history or int(history[-1].epoch) < int(epoch), "Checkpoints out of order"
            history.append(checkpoint)
