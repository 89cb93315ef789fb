"""API endpoint handlers."""

from . import actions, epochs, health, metrics, positions, program

__all__ = [
    "actions",
    "epochs",
    "health",
    "metrics",
    "positions",
    "program",
]
