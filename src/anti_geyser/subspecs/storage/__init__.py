"""
Storage module for persistent staking state.

Provides database abstraction for engine state persistence.
Uses SQLite for simplicity and correctness.
"""

from .database import Database
from .namespaces import SCHEMA_VERSION
from .sqlite import SQLiteDatabase

__all__ = [
    "Database",
    "SCHEMA_VERSION",
    "SQLiteDatabase",
]
