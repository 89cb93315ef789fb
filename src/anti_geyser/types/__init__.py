"""Reusable type definitions for the staking engine."""

from .base import CamelModel, StrictBaseModel
from .fixed_point import BASIS_POINTS, DECIMALS, WAD, format_wad, to_wad, wad_mul
from .uint import BaseUint, Uint64, Uint256

__all__ = [
    # Core types
    "BaseUint",
    "Uint64",
    "Uint256",
    "CamelModel",
    "StrictBaseModel",
    # Fixed point
    "BASIS_POINTS",
    "DECIMALS",
    "WAD",
    "format_wad",
    "to_wad",
    "wad_mul",
]
