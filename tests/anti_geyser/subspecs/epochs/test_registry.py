"""Tests for the epoch registry aggregate and its finalization rules."""

import pytest

from anti_geyser.subspecs.containers import Epoch
from anti_geyser.subspecs.epochs import EpochRegistry
from anti_geyser.subspecs.weighting import ZERO_WEIGHT, StakeWeight
from anti_geyser.types import Uint64, Uint256
from anti_geyser.types.exceptions import (
    AlreadyFinalized,
    EpochNotEnded,
    OutOfOrderFinalization,
)
from tests.anti_geyser.helpers import make_config

WEIGHT = StakeWeight(base=100, slope=10)
"""A position gaining 10 per epoch of tenure."""

REWARD = Uint256(1_000)


@pytest.fixture
def registry() -> EpochRegistry:
    """A registry over 10 epochs with a tenure cap of 3."""
    return EpochRegistry(make_config(t_max=Uint64(3)))


def totals(registry: EpochRegistry, count: int) -> list[int]:
    return [int(registry.record(Epoch(e)).total_effective_stake) for e in range(count)]


class TestAggregate:
    """The running total follows the summed weight lines."""

    def test_empty_registry(self, registry: EpochRegistry) -> None:
        """A fresh registry reports empty, open epochs."""
        record = registry.record(Epoch(0))

        assert record.total_effective_stake == Uint256(0)
        assert record.reward_allocated == Uint256(0)
        assert not record.finalized
        assert registry.last_finalized() is None
        assert registry.next_to_finalize == 0

    def test_tenure_bonus_grows_until_cap(self, registry: EpochRegistry) -> None:
        """The total grows by the slope each epoch until tMax."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(6)

        assert totals(registry, 7) == [100, 110, 120, 130, 130, 130, 130]

    def test_late_joiner_starts_at_its_base(self, registry: EpochRegistry) -> None:
        """Lines joining later add their base and retire on their own schedule."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(2)
        registry.apply(ZERO_WEIGHT, 0, StakeWeight(base=50, slope=5), 2)
        registry.advance_to(7)

        # The first line caps at epoch 3, the second at epoch 5.
        assert totals(registry, 8) == [100, 110, 170, 185, 190, 195, 195, 195]

    def test_swap_removes_previous_contribution(self, registry: EpochRegistry) -> None:
        """Removing a weight undoes its base, bonus and slope."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(2)
        registry.apply(WEIGHT, 0, ZERO_WEIGHT, 2)

        assert registry.running_total == 0
        state = registry.export_state()
        assert state.slope == 0
        assert state.slope_changes == []

    def test_swap_after_tenure_cap(self, registry: EpochRegistry) -> None:
        """Weights past tMax are removed without touching the slope."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(5)
        registry.apply(WEIGHT, 0, StakeWeight(base=40, slope=4), 5)

        assert registry.running_total == 40
        registry.advance_to(6)
        assert registry.running_total == 44

    def test_advance_stops_at_program_end(self, registry: EpochRegistry) -> None:
        """The open epoch never moves past the last epoch."""
        closed = registry.advance_to(100)

        assert closed == list(range(10))
        assert registry.open_epoch == 10
        assert registry.advance_to(100) == []

    def test_apply_after_end_is_a_programming_error(self, registry: EpochRegistry) -> None:
        """Nothing may change the aggregate once the program is over."""
        registry.advance_to(10)

        with pytest.raises(AssertionError):
            registry.apply(ZERO_WEIGHT, 0, WEIGHT, 9)


class TestFinalize:
    """Epochs are frozen once, in order, after they end."""

    def test_finalize_freezes_record(self, registry: EpochRegistry) -> None:
        """A finalized record ignores later changes to the aggregate."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        record = registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        assert record.finalized
        assert record.total_effective_stake == Uint256(100)
        assert record.reward_allocated == REWARD
        assert registry.is_finalized(Epoch(0))
        assert registry.last_finalized() == Epoch(0)
        assert registry.open_epoch == 1

        # Later stake does not touch the frozen record.
        registry.apply(ZERO_WEIGHT, 0, StakeWeight(base=900, slope=0), 1)
        assert registry.record(Epoch(0)) == record

    def test_finalize_uses_total_at_epoch_end(self, registry: EpochRegistry) -> None:
        """Finalizing late uses each epoch's total as it closed."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(3)
        registry.apply(WEIGHT, 0, ZERO_WEIGHT, 3)

        records = [registry.finalize(Epoch(e), elapsed=4, reward=REWARD) for e in range(3)]
        assert [int(r.total_effective_stake) for r in records] == [100, 110, 120]
        assert registry.record(Epoch(3)).total_effective_stake == Uint256(0)

    def test_already_finalized(self, registry: EpochRegistry) -> None:
        """Finalizing twice is rejected."""
        registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        with pytest.raises(AlreadyFinalized) as exc_info:
            registry.finalize(Epoch(0), elapsed=5, reward=REWARD)
        assert exc_info.value.epoch == 0

    def test_not_ended(self, registry: EpochRegistry) -> None:
        """Live epochs cannot be finalized."""
        with pytest.raises(EpochNotEnded):
            registry.finalize(Epoch(0), elapsed=0, reward=REWARD)
        assert registry.last_finalized() is None

    def test_out_of_order(self, registry: EpochRegistry) -> None:
        """Epochs must be finalized without gaps."""
        with pytest.raises(OutOfOrderFinalization):
            registry.finalize(Epoch(1), elapsed=3, reward=REWARD)
        assert registry.next_to_finalize == 0

    def test_already_finalized_checked_before_timing(self, registry: EpochRegistry) -> None:
        """A repeated snapshot reports AlreadyFinalized first."""
        registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        with pytest.raises(AlreadyFinalized):
            registry.finalize(Epoch(0), elapsed=0, reward=REWARD)

    def test_not_ended_checked_before_order(self, registry: EpochRegistry) -> None:
        """A future epoch reports EpochNotEnded before ordering."""
        with pytest.raises(EpochNotEnded):
            registry.finalize(Epoch(5), elapsed=2, reward=REWARD)


class TestPersistence:
    """The running state detaches and restores without loss."""

    def test_export_restore(self, registry: EpochRegistry) -> None:
        """A restored registry continues exactly like the original."""
        registry.apply(ZERO_WEIGHT, 0, WEIGHT, 0)
        registry.advance_to(2)
        registry.apply(ZERO_WEIGHT, 0, StakeWeight(base=50, slope=5), 2)
        registry.finalize(Epoch(0), elapsed=3, reward=REWARD)
        registry.advance_to(3)

        restored = EpochRegistry(make_config(t_max=Uint64(3)))
        restored.restore(registry.export_state(), registry.records())

        assert restored.export_state() == registry.export_state()
        assert restored.records() == registry.records()
        assert totals(restored, 4) == totals(registry, 4)

        restored.advance_to(8)
        registry.advance_to(8)
        assert restored.running_total == registry.running_total

    def test_restore_rejects_gaps(self, registry: EpochRegistry) -> None:
        """Finalized records must start at epoch 0 without gaps."""
        source = EpochRegistry(make_config(t_max=Uint64(3)))
        source.finalize(Epoch(0), elapsed=2, reward=REWARD)
        source.finalize(Epoch(1), elapsed=2, reward=REWARD)
        records = source.records()
        del records[0]

        with pytest.raises(AssertionError):
            registry.restore(source.export_state(), records)
