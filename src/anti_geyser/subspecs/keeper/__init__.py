"""Keeper service: automated epoch finalization."""

from .service import KeeperConfig, KeeperService

__all__ = [
    "KeeperConfig",
    "KeeperService",
]
