"""Effective-stake weighting: decay, tenure bonus and churn penalty."""

from .calculator import (
    ZERO_WEIGHT,
    StakeWeight,
    churn_penalty,
    decay_factor,
    effective_stake,
    integer_root,
    stake_weight,
    tenure_multiplier,
)

__all__ = [
    "StakeWeight",
    "ZERO_WEIGHT",
    "churn_penalty",
    "decay_factor",
    "effective_stake",
    "integer_root",
    "stake_weight",
    "tenure_multiplier",
]
