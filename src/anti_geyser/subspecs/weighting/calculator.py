"""
Effective-Stake Calculator
==========================

Translates a position and an epoch into the weighted stake that divides that
epoch's reward pool:

    effectiveStake = amount * tenureMultiplier * decay * (1 - churnPenalty)

where

- `decay = 0.5 ** (joinEpoch / halfLife)` rewards early joiners,
- `tenureMultiplier = 1 + alpha * min(tenure, tMax)` rewards holding,
- `churnPenalty` grows with every withdrawal and is capped below 100%.

Everything is integer arithmetic on 18-decimal fixed point. Results are
rounded down at every step, so the same inputs produce the same output on
every call site: live accrual, read-only queries and the epoch aggregate.

Because the tenure multiplier is affine in tenure, a position's effective
stake over time is a line `base + slope * min(tenure, tMax)`. `StakeWeight`
holds that line; the epoch registry sums lines instead of positions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache

from anti_geyser.subspecs.containers import Epoch, PositionState
from anti_geyser.subspecs.program import ProgramConfig
from anti_geyser.types import WAD, Uint256
from anti_geyser.types.fixed_point import bps_to_wad, wad_mul


def integer_root(n: int, k: int) -> int:
    """
    Compute `floor(n ** (1 / k))` exactly.

    Integer Newton iteration started from above the true root. The float
    estimate only seeds the iteration; the result never depends on it.
    """
    assert n >= 0, "Cannot take the root of a negative number"
    assert k >= 1, "Root degree must be at least 1"
    if n < 2 or k == 1:
        return n

    # Seed above the root so that Newton descends monotonically.
    log_root = math.log2(n) / k
    if log_root < 1000:
        x = int(2**log_root * (1 + 1e-9)) + 2
    else:
        x = 1 << -(-n.bit_length() // k)
    while x**k <= n:
        x *= 2

    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            return x
        x = y


@lru_cache(maxsize=4096)
def decay_factor(join_epoch: int, half_life: int) -> int:
    """
    Join-time decay `0.5 ** (join_epoch / half_life)` as a wad fraction.

    Splitting `join_epoch = q * half_life + r` turns the power into a whole
    number of halvings (a right shift by `q`) and one fractional power
    `2 ** (-r / half_life)`, taken as an exact integer root.

    Non-increasing in `join_epoch`; a join at epoch 0 gives exactly `WAD`.
    """
    assert half_life > 0, "Half-life must be positive"
    q, r = divmod(int(join_epoch), int(half_life))
    if r == 0:
        fraction = WAD
    else:
        fraction = integer_root(WAD**half_life // 2**r, half_life)
    return fraction >> q


def tenure_multiplier(tenure: int, alpha: int, t_max: int) -> int:
    """Tenure bonus `1 + alpha * min(tenure, tMax)` as a wad value."""
    return WAD + int(alpha) * min(int(tenure), int(t_max))


def churn_penalty(churn_count: int, per_withdrawal: int, maximum: int) -> int:
    """
    Churn penalty as a wad fraction in `[0, 1)`.

    Linear in the number of withdrawals, `per_withdrawal` basis points each,
    capped at `maximum` basis points.
    """
    return bps_to_wad(min(int(churn_count) * int(per_withdrawal), int(maximum)))


@dataclass(frozen=True, slots=True)
class StakeWeight:
    """
    A position's effective stake as a function of its tenure.

    The value at tenure `t` is `base + slope * min(t, tMax)`.
    """

    base: int
    """Effective stake at tenure 0: amount after decay and churn penalty."""

    slope: int
    """Effective stake gained per epoch of tenure, until tMax."""

    def at_tenure(self, tenure: int, t_max: int) -> int:
        """Evaluate the line at a tenure, clamping the bonus at `t_max`."""
        return self.base + self.slope * min(int(tenure), int(t_max))


ZERO_WEIGHT = StakeWeight(base=0, slope=0)
"""The weight of an empty position."""


def stake_weight(state: PositionState, config: ProgramConfig) -> StakeWeight:
    """Compute the weight line of a position state."""
    amount = int(state.amount)
    if amount == 0:
        return ZERO_WEIGHT

    decay = decay_factor(int(state.join_epoch), int(config.half_life))
    penalty = churn_penalty(
        int(state.churn_count),
        int(config.churn_penalty_per_withdrawal),
        int(config.max_churn_penalty),
    )

    base = wad_mul(wad_mul(amount, decay), WAD - penalty)
    slope = wad_mul(base, int(config.alpha))
    return StakeWeight(base=base, slope=slope)


def effective_stake(
    state: PositionState | None, epoch: Epoch, config: ProgramConfig
) -> Uint256:
    """
    The effective stake of a position state during an epoch.

    Deterministic and side-effect free. Zero for a missing or empty state and
    for any epoch before the state's join epoch.
    """
    if state is None or not state.is_active or int(epoch) < int(state.join_epoch):
        return Uint256(0)

    tenure = int(epoch) - int(state.join_epoch)
    return Uint256(stake_weight(state, config).at_tenure(tenure, int(config.t_max)))
