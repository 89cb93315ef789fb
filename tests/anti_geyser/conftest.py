"""
Shared pytest fixtures for all anti_geyser tests.

Every engine runs on a simulated clock: epoch `e` starts at
`START + e * EPOCH_LENGTH`, and tests move time with the `goto` fixture.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from anti_geyser.subspecs.engine import InMemoryTokenBank, StakingEngine
from anti_geyser.subspecs.program import EpochClock, ProgramConfig
from anti_geyser.subspecs.simulator import SimulatedTime
from tests.anti_geyser.helpers import EPOCH_LENGTH, START, fund, make_config


@pytest.fixture
def config() -> ProgramConfig:
    """The default test program."""
    return make_config()


@pytest.fixture
def time_source() -> SimulatedTime:
    """Simulated wall clock, at the start of epoch 0."""
    return SimulatedTime(START)


@pytest.fixture
def goto(time_source: SimulatedTime) -> Callable[[int], None]:
    """Move the simulated clock to the start of an epoch."""

    def _goto(epoch: int) -> None:
        time_source.now = START + epoch * EPOCH_LENGTH

    return _goto


@pytest.fixture
def clock(config: ProgramConfig, time_source: SimulatedTime) -> EpochClock:
    """Epoch clock of the default test program."""
    return EpochClock.for_program(config, time_fn=time_source)


@pytest.fixture
def stake_token() -> InMemoryTokenBank:
    """Token participants stake."""
    return InMemoryTokenBank("LP")


@pytest.fixture
def reward_token() -> InMemoryTokenBank:
    """Token rewards are paid in."""
    return InMemoryTokenBank("REWARD")


@pytest.fixture
def engine_factory(
    time_source: SimulatedTime,
    stake_token: InMemoryTokenBank,
    reward_token: InMemoryTokenBank,
) -> Callable[..., StakingEngine]:
    """Factory for funded engines with custom program parameters."""

    def _create(**overrides: object) -> StakingEngine:
        config = make_config(**overrides)
        clock = EpochClock.for_program(config, time_fn=time_source)
        engine = StakingEngine(config, clock, stake_token, reward_token)
        fund(engine, stake_token, reward_token)
        return engine

    return _create


@pytest.fixture
def engine(engine_factory: Callable[..., StakingEngine]) -> StakingEngine:
    """A funded engine running the default test program."""
    return engine_factory()
