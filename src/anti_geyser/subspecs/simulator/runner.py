"""
Scenario runner.

Drives a fresh `StakingEngine` through a scenario on a simulated clock. Each
epoch follows the same script:

1. Apply the epoch's deposits, then its withdrawals.
2. Advance the clock by one epoch length.
3. Finalize the epoch that just ended.
4. Record every actor's position, effective stake and pending rewards.

The program's last epoch ends on the final clock advance and is finalized by
the last iteration, so every reward is claimable when the run completes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from anti_geyser.subspecs.engine import InMemoryTokenBank, StakingEngine
from anti_geyser.subspecs.program import EpochClock, ProgramConfig
from anti_geyser.types import Uint256, format_wad

from .scenario import Scenario

logger = logging.getLogger(__name__)

SIMULATION_START = 1_700_000_000
"""Unix timestamp epoch 0 begins at in every simulation."""


class SimulatedTime:
    """A manually advanced time source for `EpochClock`."""

    def __init__(self, start: int) -> None:
        self.now = start

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        """Move time forward."""
        assert seconds >= 0, "Time only moves forward"
        self.now += seconds


@dataclass(frozen=True, slots=True)
class ActorStats:
    """One actor's state at the end of an epoch."""

    staked: Uint256
    effective_stake: Uint256
    pending_rewards: Uint256
    join_epoch: int
    tenure_epochs: int
    churn_count: int

    def to_json(self) -> dict[str, str]:
        """Results-file form: amounts as token-unit decimal strings."""
        return {
            "staked": format_wad(self.staked),
            "effectiveStake": format_wad(self.effective_stake),
            "pendingRewards": format_wad(self.pending_rewards),
            "joinEpoch": str(self.join_epoch),
            "tenureEpochs": str(self.tenure_epochs),
            "churnCount": str(self.churn_count),
        }


@dataclass(frozen=True, slots=True)
class EpochStats:
    """Every actor's state at the end of one epoch."""

    epoch: int
    actors: dict[str, ActorStats]

    def to_json(self) -> dict[str, Any]:
        return {
            "epoch": self.epoch,
            "actors": {name: stats.to_json() for name, stats in self.actors.items()},
        }


@dataclass(frozen=True, slots=True)
class SimulationResult:
    """The outcome of a scenario run."""

    scenario: Scenario
    config: ProgramConfig
    epochs: list[EpochStats] = field(default_factory=list)
    """Per-epoch stats, in epoch order."""

    @property
    def final(self) -> EpochStats:
        """Stats at the end of the program."""
        assert self.epochs, "Simulation recorded no epochs"
        return self.epochs[-1]

    def rewards(self) -> dict[str, Uint256]:
        """Each actor's total rewards at the end of the program."""
        return {name: stats.pending_rewards for name, stats in self.final.actors.items()}

    def to_json(self) -> list[dict[str, Any]]:
        """The per-epoch results file."""
        return [epoch.to_json() for epoch in self.epochs]


def _withdraw_amount(engine: StakingEngine, actor: str, amount: Uint256 | None) -> Uint256:
    """The amount a withdrawal moves, everything when unspecified."""
    if amount is not None:
        return amount
    position = engine.get_position(actor)
    return Uint256(0) if position is None else position.amount


def _collect(engine: StakingEngine, scenario: Scenario, epoch: int) -> EpochStats:
    actors: dict[str, ActorStats] = {}
    for actor in scenario.actors:
        position = engine.get_position(actor.name)
        if position is None:
            actors[actor.name] = ActorStats(Uint256(0), Uint256(0), Uint256(0), 0, 0, 0)
            continue

        actors[actor.name] = ActorStats(
            staked=position.amount,
            effective_stake=engine.effective_stake(actor.name, epoch),
            pending_rewards=engine.pending_rewards(actor.name),
            join_epoch=int(position.join_epoch),
            tenure_epochs=int(position.tenure_epochs),
            churn_count=int(position.churn_count),
        )
    return EpochStats(epoch=epoch, actors=actors)


def run_scenario(scenario: Scenario) -> SimulationResult:
    """
    Run a scenario against a fresh in-memory engine.

    Actors are funded with exactly the stake tokens their deposits need and
    the engine account with the whole reward budget.

    Raises:
        StakingError: If a scheduled action is rejected, e.g. a withdrawal
            larger than the actor's stake.
    """
    config = scenario.program_config(start_time=SIMULATION_START)
    time = SimulatedTime(SIMULATION_START)
    clock = EpochClock.for_program(config, time_fn=time)

    stake_token = InMemoryTokenBank("LP")
    reward_token = InMemoryTokenBank("REWARD")
    engine = StakingEngine(config, clock, stake_token, reward_token)

    total_epochs = int(config.total_epochs)
    reward_token.mint(
        engine.account, Uint256(int(config.reward_per_epoch) * total_epochs)
    )
    for actor in scenario.actors:
        stake_token.mint(actor.name, actor.funding)

    logger.info("Running scenario %r over %d epochs", scenario.name, total_epochs)
    result = SimulationResult(scenario=scenario, config=config)

    for epoch in range(total_epochs):
        for actor in scenario.actors:
            for deposit in actor.deposits:
                if deposit.epoch == epoch:
                    engine.stake(actor.name, deposit.amount)

        for actor in scenario.actors:
            for withdrawal in actor.withdrawals:
                if withdrawal.epoch == epoch:
                    amount = _withdraw_amount(engine, actor.name, withdrawal.amount)
                    engine.withdraw(actor.name, amount)

        time.advance(int(config.epoch_length))

        if not engine.epochs(epoch).finalized:
            engine.snapshot_epoch(epoch)

        result.epochs.append(_collect(engine, scenario, epoch))

    last = engine.last_finalized_epoch()
    assert last is not None and int(last) == total_epochs - 1, "Simulation left epochs open"

    logger.info(
        "Scenario %r distributed %s of %s reward tokens",
        scenario.name,
        format_wad(sum(int(r) for r in result.rewards().values())),
        format_wad(int(config.reward_per_epoch) * total_epochs),
    )
    return result
