"""Tests for reward accrual over finalized epochs."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from anti_geyser.subspecs.containers import Epoch
from anti_geyser.subspecs.epochs import EpochRegistry
from anti_geyser.subspecs.ledger import PositionLedger
from anti_geyser.subspecs.rewards import accrue, epoch_share
from anti_geyser.subspecs.weighting import ZERO_WEIGHT, stake_weight
from anti_geyser.types import Uint256, to_wad
from anti_geyser.types.exceptions import EpochNotFinalized
from tests.anti_geyser.helpers import make_config

CONFIG = make_config()
REWARD = to_wad("1000")


def stake(ledger: PositionLedger, registry: EpochRegistry, who: str, tokens: str) -> None:
    """Stake at the registry's open epoch and update the aggregate."""
    epoch = Epoch(registry.open_epoch)
    transition = ledger.apply_stake(who, to_wad(tokens), epoch)
    previous = transition.previous
    registry.apply(
        ZERO_WEIGHT if previous is None else stake_weight(previous, CONFIG),
        0 if previous is None else int(previous.join_epoch),
        stake_weight(transition.current, CONFIG),
        int(transition.current.join_epoch),
    )


class TestEpochShare:
    """Pro-rata share of one epoch."""

    def test_zero_total_pays_nothing(self) -> None:
        assert epoch_share(1_000, 0, 0) == 0

    def test_sole_staker_takes_everything(self) -> None:
        assert epoch_share(1_000, 7, 7) == 1_000

    def test_rounds_down(self) -> None:
        assert epoch_share(1_000, 1, 3) == 333

    @given(
        st.integers(min_value=0, max_value=10**24),
        st.lists(st.integers(min_value=0, max_value=10**30), min_size=1, max_size=20),
    )
    def test_shares_never_exceed_allocation(self, reward: int, stakes: list[int]) -> None:
        total = sum(stakes)
        assert sum(epoch_share(reward, s, total) for s in stakes) <= reward


class TestAccrue:
    """Accrual walks finalized epochs with the state in force during each."""

    def test_two_stakers(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        stake(ledger, registry, "alice", "1000")
        stake(ledger, registry, "bob", "3000")
        registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        alice = accrue(ledger, registry, CONFIG, "alice", 0, 1)
        bob = accrue(ledger, registry, CONFIG, "bob", 0, 1)

        assert alice.amount == to_wad("250")
        assert bob.amount == to_wad("750")
        assert alice.through == Epoch(0)
        assert len(alice.shares) == 1
        assert alice.shares[0].total_effective_stake == to_wad("4000")

    def test_unfinalized_epochs_are_skipped(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        stake(ledger, registry, "alice", "1000")
        registry.finalize(Epoch(0), elapsed=3, reward=REWARD)

        accrual = accrue(ledger, registry, CONFIG, "alice", 0, 3)
        assert accrual.amount == REWARD
        assert accrual.through == Epoch(0)

    def test_require_finalized(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        stake(ledger, registry, "alice", "1000")
        registry.finalize(Epoch(0), elapsed=3, reward=REWARD)

        with pytest.raises(EpochNotFinalized):
            accrue(ledger, registry, CONFIG, "alice", 0, 3, require_finalized=True)

    def test_empty_range(self) -> None:
        accrual = accrue(PositionLedger(), EpochRegistry(CONFIG), CONFIG, "alice", 2, 2)

        assert accrual.amount == Uint256(0)
        assert accrual.through is None
        assert accrual.shares == []

    def test_stranger_earns_nothing(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        stake(ledger, registry, "alice", "1000")
        registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        accrual = accrue(ledger, registry, CONFIG, "mallory", 0, 1)
        assert accrual.amount == Uint256(0)
        assert accrual.through == Epoch(0)

    def test_empty_epoch_pays_nobody(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        registry.finalize(Epoch(0), elapsed=2, reward=REWARD)
        stake(ledger, registry, "alice", "1000")
        registry.finalize(Epoch(1), elapsed=2, reward=REWARD)

        accrual = accrue(ledger, registry, CONFIG, "alice", 0, 2)
        assert [int(s.reward) for s in accrual.shares] == [0, int(REWARD)]

    def test_accrual_is_read_only(self) -> None:
        ledger = PositionLedger()
        registry = EpochRegistry(CONFIG)
        stake(ledger, registry, "alice", "1000")
        registry.finalize(Epoch(0), elapsed=1, reward=REWARD)

        first = accrue(ledger, registry, CONFIG, "alice", 0, 1)
        second = accrue(ledger, registry, CONFIG, "alice", 0, 1)
        assert first == second
