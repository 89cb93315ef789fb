"""
Keeper service that drives epoch finalization.

The Keeper Problem
------------------
Rewards for an epoch can only be claimed once the epoch is finalized, and
epochs must be finalized in order. Any caller may finalize an ended epoch,
but somebody has to do it reliably, right after every boundary.

KeeperService is that somebody - a simple timer loop.

How It Works
------------
1. Finalize every ended, unfinalized epoch, oldest first
2. Sleep until the next epoch boundary plus a grace period
3. Repeat until the program is over and fully finalized, or until stopped
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from anti_geyser.subspecs.containers import Epoch
from anti_geyser.subspecs.engine import StakingEngine
from anti_geyser.types.exceptions import SnapshotError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeeperConfig:
    """Configuration for the keeper."""

    grace_seconds: float = 1.0
    """Delay after each epoch boundary before finalizing."""

    idle_seconds: float = 60.0
    """Longest single sleep, so that stop requests are noticed."""


@dataclass(slots=True)
class KeeperService:
    """
    Finalizes epochs as soon as they end.

    The service is intentionally minimal:
    - Timer loop that wakes after every epoch boundary
    - Finalizes every ended epoch in order
    - Exits once the last epoch is finalized
    """

    engine: StakingEngine
    """Engine whose epochs we finalize."""

    config: KeeperConfig = field(default_factory=KeeperConfig)
    """Keeper configuration."""

    _running: bool = field(default=False, repr=False)
    """Whether the service is running."""

    def tick(self) -> list[Epoch]:
        """
        Finalize every ended epoch that is still open.

        A concurrent caller may finalize an epoch first; the keeper simply
        moves on.

        Returns:
            The epochs finalized by this pass.
        """
        try:
            finalized = self.engine.finalize_ended_epochs()
        except SnapshotError as e:
            logger.warning("Keeper pass interrupted: %s", e.message)
            return []

        for epoch in finalized:
            logger.info("Keeper finalized epoch %d", int(epoch))
        return finalized

    def is_done(self) -> bool:
        """Whether the program is over and every epoch is finalized."""
        last = self.engine.last_finalized_epoch()
        total = int(self.engine.config.total_epochs)
        return last is not None and int(last) == total - 1

    async def run(self) -> None:
        """
        Main loop - finalize ended epochs after every boundary.

        The loop continues until the service is stopped or the program is
        over and fully finalized.
        """
        self._running = True
        logger.info("Keeper started")

        while self._running:
            self.tick()
            if self.is_done():
                logger.info("All %d epochs finalized", int(self.engine.config.total_epochs))
                break

            await self._sleep_until_next_epoch()

        self._running = False
        logger.info("Keeper stopped")

    async def _sleep_until_next_epoch(self) -> None:
        """Sleep until just after the next epoch boundary."""
        delay = self.engine.clock.seconds_until_next_epoch()
        if delay == 0.0:
            delay = float(self.engine.clock.epoch_length)
        await asyncio.sleep(min(delay + self.config.grace_seconds, self.config.idle_seconds))

    def stop(self) -> None:
        """
        Stop the service.

        Sets the running flag to False, causing the run() loop to exit
        after completing its current sleep cycle.
        """
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the service is currently running."""
        return self._running
