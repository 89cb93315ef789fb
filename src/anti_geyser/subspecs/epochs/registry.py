"""
Epoch Registry
==============

Per-epoch aggregate state and its finalize-once transition.

Every epoch is `Open` until it is finalized, then `Finalized` forever.

The Running Aggregate
---------------------

The open epoch's total effective stake is the sum of every position's weight
line `base + slope * min(tenure, tMax)`. Rather than re-evaluating every
position when an epoch ends, the registry keeps the sum as

    total = base_total + tenure_bonus

with `slope` the summed slope of positions still gaining tenure. Closing an
epoch adds `slope` to `tenure_bonus`, then retires the slopes of positions
whose tenure reaches `tMax` (scheduled in `slope_changes` at `join + tMax`).
The cost of closing an epoch is independent of the number of participants.
"""

from __future__ import annotations

from anti_geyser.subspecs.containers import Epoch, EpochRecord
from anti_geyser.subspecs.program import ProgramConfig
from anti_geyser.subspecs.weighting import StakeWeight
from anti_geyser.types import CamelModel, Uint256
from anti_geyser.types.exceptions import AlreadyFinalized, EpochNotEnded, OutOfOrderFinalization


class SlopeChange(CamelModel):
    """Slope retired from the aggregate when the open epoch reaches `epoch`."""

    epoch: int
    slope: int


class EpochTotal(CamelModel):
    """Running total of an ended epoch that is not finalized yet."""

    epoch: int
    total: int


class AggregateState(CamelModel):
    """
    The registry's running state, detached for persistence.

    Finalized records are persisted separately; this holds everything else.
    """

    open_epoch: int
    """The epoch whose running total is live."""

    base_total: int
    """Sum of every contributing position's base weight."""

    tenure_bonus: int
    """Accumulated tenure bonus of every contributing position."""

    slope: int
    """Sum of slopes of positions still gaining tenure."""

    slope_changes: list[SlopeChange] = []
    """Scheduled slope retirements."""

    closed_totals: list[EpochTotal] = []
    """Totals of ended epochs not yet finalized."""


class EpochRegistry:
    """
    Running effective-stake aggregate and the finalized epoch records.

    Epochs are finalized in strictly increasing order without gaps, and only
    after their wall-clock end.
    """

    def __init__(self, config: ProgramConfig) -> None:
        self._t_max = int(config.t_max)
        self._total_epochs = int(config.total_epochs)

        self._open_epoch = 0
        self._base_total = 0
        self._tenure_bonus = 0
        self._slope = 0
        self._slope_changes: dict[int, int] = {}

        self._closed_totals: dict[int, int] = {}
        self._records: dict[int, EpochRecord] = {}

    @property
    def open_epoch(self) -> int:
        """The epoch currently accumulating, `totalEpochs` once the program ended."""
        return self._open_epoch

    @property
    def running_total(self) -> int:
        """Total effective stake of the open epoch so far."""
        return self._base_total + self._tenure_bonus

    @property
    def next_to_finalize(self) -> int:
        """The only epoch that may be finalized next."""
        return len(self._records)

    def last_finalized(self) -> Epoch | None:
        """The most recently finalized epoch, `None` if none is."""
        return Epoch(len(self._records) - 1) if self._records else None

    def is_finalized(self, epoch: Epoch) -> bool:
        """Whether an epoch has been frozen."""
        return int(epoch) in self._records

    def advance_to(self, epoch: int) -> list[int]:
        """
        Close every epoch before `epoch`, freezing its running total.

        Never advances past the end of the program. Returns the closed epochs.
        """
        target = min(int(epoch), self._total_epochs)
        closed = []
        while self._open_epoch < target:
            self._closed_totals[self._open_epoch] = self.running_total
            closed.append(self._open_epoch)

            self._open_epoch += 1
            self._tenure_bonus += self._slope
            self._slope -= self._slope_changes.pop(self._open_epoch, 0)
        return closed

    def apply(
        self,
        previous: StakeWeight,
        previous_join: int,
        current: StakeWeight,
        current_join: int,
    ) -> None:
        """
        Swap one position's contribution to the open epoch.

        The previous weight is removed exactly as it was added, then the new
        weight is added as of the open epoch.
        """
        assert self._open_epoch < self._total_epochs, "The program has ended"
        self._contribute(previous, previous_join, sign=-1)
        self._contribute(current, current_join, sign=1)

    def finalize(self, epoch: Epoch, elapsed: int, reward: Uint256) -> EpochRecord:
        """
        Freeze an ended epoch's total effective stake and reward allocation.

        Rejecting a repeated call keeps blind retries from double-accounting.

        Raises:
            AlreadyFinalized: If the epoch is already frozen.
            EpochNotEnded: If the epoch's wall-clock end has not passed.
            OutOfOrderFinalization: If an earlier epoch is still open.
        """
        index = int(epoch)
        if index in self._records:
            raise AlreadyFinalized(index)
        if index >= elapsed:
            raise EpochNotEnded(index, elapsed)
        if index != self.next_to_finalize:
            raise OutOfOrderFinalization(index, self.next_to_finalize)

        self.advance_to(index + 1)
        record = EpochRecord(
            total_effective_stake=Uint256(self._closed_totals.pop(index)),
            reward_allocated=reward,
            finalized=True,
        )
        self._records[index] = record
        return record

    def record(self, epoch: Epoch) -> EpochRecord:
        """
        The record of an epoch.

        Finalized epochs return their frozen record. Other epochs return the
        pending view: the total accumulated so far and no reward.
        """
        index = int(epoch)
        if index in self._records:
            return self._records[index]
        if index in self._closed_totals:
            total = self._closed_totals[index]
        elif index == self._open_epoch:
            total = self.running_total
        else:
            total = 0
        return EpochRecord(total_effective_stake=Uint256(total))

    def records(self) -> dict[int, EpochRecord]:
        """A copy of every finalized record."""
        return dict(self._records)

    def export_state(self) -> AggregateState:
        """Detach the running state for persistence."""
        return AggregateState(
            open_epoch=self._open_epoch,
            base_total=self._base_total,
            tenure_bonus=self._tenure_bonus,
            slope=self._slope,
            slope_changes=[
                SlopeChange(epoch=e, slope=s) for e, s in sorted(self._slope_changes.items())
            ],
            closed_totals=[
                EpochTotal(epoch=e, total=t) for e, t in sorted(self._closed_totals.items())
            ],
        )

    def restore(self, state: AggregateState, records: dict[int, EpochRecord]) -> None:
        """Replace the registry contents with previously persisted state."""
        assert sorted(records) == list(range(len(records))), "Finalized records have gaps"
        self._open_epoch = state.open_epoch
        self._base_total = state.base_total
        self._tenure_bonus = state.tenure_bonus
        self._slope = state.slope
        self._slope_changes = {c.epoch: c.slope for c in state.slope_changes}
        self._closed_totals = {t.epoch: t.total for t in state.closed_totals}
        self._records = dict(records)

    def _contribute(self, weight: StakeWeight, join: int, sign: int) -> None:
        """Add (`sign=1`) or remove (`sign=-1`) a weight line at the open epoch."""
        if weight.base == 0 and weight.slope == 0:
            return
        assert join <= self._open_epoch, "Position joins after the open epoch"

        tenure = min(self._open_epoch - join, self._t_max)
        self._base_total += sign * weight.base
        self._tenure_bonus += sign * weight.slope * tenure

        # Positions below tMax keep gaining tenure until their retirement epoch.
        retire = join + self._t_max
        if self._open_epoch < retire and weight.slope:
            self._slope += sign * weight.slope
            remaining = self._slope_changes.get(retire, 0) + sign * weight.slope
            if remaining:
                self._slope_changes[retire] = remaining
            else:
                self._slope_changes.pop(retire, None)

        assert self._base_total >= 0 and self._tenure_bonus >= 0 and self._slope >= 0
