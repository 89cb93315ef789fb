"""
Fixed-Point Amounts
===================

Every amount handled by the engine is an integer count of base units with
18 implied decimal places, the same scale as the reference token ABI.

Fractions (the tenure bonus `alpha`, the join-time decay, the churn penalty)
use the same scale: `WAD` represents 1.0.

All helpers round toward zero. Rounding is therefore always in favour of the
reward pool, never of a claimant.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Final

from .uint import Uint256

DECIMALS: Final = 18
"""Number of implied decimal places of every amount."""

WAD: Final = 10**DECIMALS
"""One whole token (or the fraction 1.0) in base units."""

BASIS_POINTS: Final = 10_000
"""Denominator of a basis-point fraction (100% = 10,000 bps)."""


def to_wad(value: str | Decimal | int) -> Uint256:
    """
    Convert a token-unit decimal into base units.

    Integers are interpreted as whole tokens here. Callers holding raw base
    units should construct a `Uint256` directly instead.

    Examples:
        to_wad("1000") == Uint256(1000 * 10**18)
        to_wad("0.02") == Uint256(2 * 10**16)

    Raises:
        ValueError: If the value is not a number, is negative, or has more
            than `DECIMALS` fractional digits.
    """
    if isinstance(value, bool):
        raise ValueError("Booleans are not amounts")
    try:
        number = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e

    if not number.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if number < 0:
        raise ValueError(f"Amount must not be negative, got {value!r}")

    # The default 28-digit context would silently round large amounts.
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = number.scaleb(DECIMALS)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value!r} has more than {DECIMALS} decimal places")
    return Uint256(int(scaled))


def format_wad(amount: int, places: int | None = None) -> str:
    """
    Render base units as a token-unit decimal string.

    Trailing zeros are stripped unless `places` is given, in which case the
    value is truncated (never rounded up) to that many decimals.
    """
    whole, fraction = divmod(int(amount), WAD)
    digits = f"{fraction:0{DECIMALS}d}"

    if places is not None:
        digits = digits[:places]
        return f"{whole}.{digits}" if places > 0 else str(whole)

    digits = digits.rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def wad_mul(a: int, b: int) -> int:
    """Multiply two fixed-point values, rounding down."""
    return int(a) * int(b) // WAD


def bps_to_wad(bps: int) -> int:
    """Convert a basis-point fraction into a fixed-point fraction."""
    return int(bps) * WAD // BASIS_POINTS
