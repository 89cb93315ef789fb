"""Position ledger and stake/withdraw transitions."""

from .ledger import PositionLedger, Transition

__all__ = [
    "PositionLedger",
    "Transition",
]
