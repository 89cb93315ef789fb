"""
Program Configuration

Parameters of one staking program. They are written once when the program is
activated and are read-only afterwards; only the `active` flag can be toggled
by an administrator to pause and resume the program.

Program files are YAML documents with camelCase keys, mirroring the field names
of the reference ABI:

    epochLength: 86400
    rewardPerEpoch: "1000"
    halfLife: 2
    alpha: "0.02"
    tMax: 10
    startTime: 1704067200
    totalEpochs: 30
    active: true
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import field_validator, model_validator
from typing_extensions import Final

from anti_geyser.types import BASIS_POINTS, StrictBaseModel, Uint64, Uint256, to_wad

# --- Defaults (the reference admin panel's initial values) ---

DEFAULT_EPOCH_LENGTH: Final = Uint64(86_400)
"""One day per epoch."""

DEFAULT_REWARD_PER_EPOCH: Final = to_wad("1000")
"""1000 reward tokens per epoch."""

DEFAULT_HALF_LIFE: Final = Uint64(2)
"""Join-time rewards halve for every two epochs of delay."""

DEFAULT_ALPHA: Final = to_wad("0.02")
"""2% tenure bonus per epoch held."""

DEFAULT_T_MAX: Final = Uint64(10)
"""Tenure bonus stops growing after ten epochs."""

DEFAULT_TOTAL_EPOCHS: Final = Uint64(30)
"""Thirty-epoch program."""

MAX_HALF_LIFE: Final = 4_096
"""Largest accepted half-life. The exact decay root costs grow with it."""

DEFAULT_CHURN_PENALTY_PER_WITHDRAWAL: Final = Uint64(2_000)
"""Each withdrawal removes 20% of effective stake."""

DEFAULT_MAX_CHURN_PENALTY: Final = Uint64(9_000)
"""The churn penalty never exceeds 90%."""


class ProgramConfig(StrictBaseModel):
    """
    The immutable parameters of a staking program.

    Amount-like fields (`reward_per_epoch`, `alpha`) are fixed-point values
    with 18 decimals. In YAML or JSON they may be written either as decimal
    strings in token units ("1000", "0.02") or as raw base-unit integers.
    """

    epoch_length: Uint64 = DEFAULT_EPOCH_LENGTH
    """Wall-clock span of one epoch, in seconds."""

    reward_per_epoch: Uint256 = DEFAULT_REWARD_PER_EPOCH
    """Reward tokens allocated to each finalized epoch."""

    half_life: Uint64 = DEFAULT_HALF_LIFE
    """Join-time decay half-life, in epochs."""

    alpha: Uint256 = DEFAULT_ALPHA
    """Tenure bonus per epoch held (fixed-point fraction)."""

    t_max: Uint64 = DEFAULT_T_MAX
    """Cap on tenure bonus accumulation, in epochs."""

    start_time: Uint64 = Uint64(0)
    """Unix timestamp at which epoch 0 begins."""

    total_epochs: Uint64 = DEFAULT_TOTAL_EPOCHS
    """Program duration, in epochs."""

    active: bool = True
    """Whether staking and claims are permitted."""

    churn_penalty_per_withdrawal: Uint64 = DEFAULT_CHURN_PENALTY_PER_WITHDRAWAL
    """Churn penalty added by each withdrawal, in basis points."""

    max_churn_penalty: Uint64 = DEFAULT_MAX_CHURN_PENALTY
    """Upper bound of the churn penalty, in basis points. Must stay below 100%."""

    top_up_resets_standing: bool = False
    """
    Whether a stake on top of an active position resets its join epoch.

    The default preserves standing, rewarding continued participation.
    """

    @field_validator("reward_per_epoch", "alpha", mode="before")
    @classmethod
    def parse_token_units(cls, v: Any) -> Any:
        """
        Convert decimal strings in token units to base units.

        Raw integers pass through untouched and are taken as base units.
        """
        if isinstance(v, (str, Decimal, float)) and not isinstance(v, bool):
            return to_wad(str(v) if isinstance(v, float) else v)
        return v

    @model_validator(mode="after")
    def validate_parameters(self) -> ProgramConfig:
        """Reject parameter combinations the engine cannot run with."""
        if int(self.epoch_length) == 0:
            raise ValueError("epochLength must be positive")
        if int(self.total_epochs) == 0:
            raise ValueError("totalEpochs must be positive")
        if int(self.half_life) == 0:
            raise ValueError("halfLife must be positive")
        if int(self.half_life) > MAX_HALF_LIFE:
            raise ValueError(f"halfLife must not exceed {MAX_HALF_LIFE} epochs")
        if int(self.churn_penalty_per_withdrawal) > BASIS_POINTS:
            raise ValueError(
                f"churnPenaltyPerWithdrawal ({self.churn_penalty_per_withdrawal}) "
                f"exceeds {BASIS_POINTS} basis points"
            )
        if int(self.max_churn_penalty) >= BASIS_POINTS:
            raise ValueError(
                f"maxChurnPenalty ({self.max_churn_penalty}) must be below "
                f"{BASIS_POINTS} basis points"
            )
        return self

    @property
    def end_time(self) -> int:
        """Unix timestamp at which the last epoch ends."""
        return int(self.start_time) + int(self.epoch_length) * int(self.total_epochs)

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> ProgramConfig:
        """
        Load a program from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            pydantic.ValidationError: If the data fails validation.
        """
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)

    @classmethod
    def from_yaml(cls, content: str) -> ProgramConfig:
        """
        Load a program from a YAML string.

        Useful for testing or programmatic program generation.
        """
        data = yaml.safe_load(content)
        return cls.model_validate(data)
