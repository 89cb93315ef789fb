"""
Epoch Clock
===========

Time-to-epoch conversion for a staking program.

Epoch boundaries are derived purely from wall-clock time: epoch `n` covers
`[start + n * length, start + (n + 1) * length)`. No operation ever waits for
an epoch to end; operations only ask which epoch "now" falls into.
"""

from dataclasses import dataclass
from time import time as wall_time
from typing import Callable

from anti_geyser.subspecs.containers import Epoch

from .config import ProgramConfig


@dataclass(frozen=True, slots=True)
class EpochClock:
    """
    Converts wall-clock time to program epochs.

    All time values are in seconds (Unix timestamps).
    """

    start_time: int
    """Unix timestamp (seconds) when epoch 0 began."""

    epoch_length: int
    """Length of one epoch in seconds."""

    total_epochs: int
    """Number of epochs in the program."""

    time_fn: Callable[[], float] = wall_time
    """Time source function (injectable for testing and simulation)."""

    @classmethod
    def for_program(
        cls, config: ProgramConfig, time_fn: Callable[[], float] = wall_time
    ) -> "EpochClock":
        """Build the clock that matches a program configuration."""
        return cls(
            start_time=int(config.start_time),
            epoch_length=int(config.epoch_length),
            total_epochs=int(config.total_epochs),
            time_fn=time_fn,
        )

    def current_time(self) -> int:
        """Get current wall-clock time as a Unix timestamp in seconds."""
        return int(self.time_fn())

    def _seconds_since_start(self) -> int:
        """Seconds elapsed since epoch 0 began (0 before the start)."""
        return max(0, self.current_time() - self.start_time)

    def raw_epoch(self) -> int:
        """
        The unclamped epoch index of the current time.

        Keeps counting after the program ends, which is what tells whether
        the final epoch has closed.
        """
        return self._seconds_since_start() // self.epoch_length

    def current_epoch(self) -> Epoch:
        """
        Get the current epoch, clamped to the program's last epoch.

        Returns epoch 0 before the program starts.
        """
        return Epoch(min(self.raw_epoch(), self.total_epochs - 1))

    def elapsed_epochs(self) -> int:
        """
        Number of epochs whose wall-clock end has passed.

        Epoch `e` has ended exactly when `e < elapsed_epochs()`.
        """
        return min(self.raw_epoch(), self.total_epochs)

    def has_ended(self) -> bool:
        """Whether the final epoch of the program has closed."""
        return self.raw_epoch() >= self.total_epochs

    def epoch_start(self, epoch: Epoch) -> int:
        """Unix timestamp at which `epoch` begins."""
        return self.start_time + int(epoch) * self.epoch_length

    def epoch_end(self, epoch: Epoch) -> int:
        """Unix timestamp at which `epoch` ends."""
        return self.epoch_start(epoch) + self.epoch_length

    def seconds_until_next_epoch(self) -> float:
        """
        Calculate seconds until the next epoch boundary.

        Returns time until the start if the program has not begun.
        Returns 0.0 if exactly at a boundary.
        """
        now = self.time_fn()
        elapsed = now - self.start_time

        if elapsed < 0:
            # Before the start - return time until the start.
            return -elapsed

        into_epoch = elapsed % self.epoch_length
        return float(self.epoch_length - into_epoch) if into_epoch else 0.0
