"""
Database namespace definitions for storage tables.

Defines table names and schema constants for SQLite storage.
Each namespace represents a logical grouping of related data.

Token amounts are uint256 values and do not fit SQLite's 64-bit INTEGER, so
they are stored as decimal TEXT. Epoch indexes and counters are INTEGER.
"""

from __future__ import annotations

from dataclasses import dataclass

SCHEMA_VERSION = 1
"""Version of the table layout below, recorded alongside the program."""


@dataclass(frozen=True, slots=True)
class ProgramNamespace:
    """
    Namespace for the program configuration.

    A single row keyed by a fixed id. The configuration is stored as its
    camelCase JSON dump, next to the schema version it was written with.
    """

    TABLE_NAME: str = "program"
    """Table name for the program configuration."""

    KEY: int = 1
    """Primary key of the only row."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS program (
            id INTEGER PRIMARY KEY,
            schema_version INTEGER NOT NULL,
            config TEXT NOT NULL
        )
    """
    """SQL to create program table."""


@dataclass(frozen=True, slots=True)
class PositionNamespace:
    """
    Namespace for live positions.

    One row per participant that ever staked. Rows are never deleted.
    """

    TABLE_NAME: str = "positions"
    """Table name for position storage."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS positions (
            participant TEXT PRIMARY KEY,
            amount TEXT NOT NULL,
            join_epoch INTEGER NOT NULL,
            last_claim_epoch INTEGER,
            next_claim_epoch INTEGER NOT NULL,
            churn_count INTEGER NOT NULL,
            last_withdraw_epoch INTEGER
        )
    """
    """SQL to create positions table."""


@dataclass(frozen=True, slots=True)
class CheckpointNamespace:
    """
    Namespace for position history.

    At most one checkpoint per participant and epoch.
    """

    TABLE_NAME: str = "position_checkpoints"
    """Table name for checkpoint storage."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS position_checkpoints (
            participant TEXT NOT NULL,
            epoch INTEGER NOT NULL,
            amount TEXT NOT NULL,
            join_epoch INTEGER NOT NULL,
            churn_count INTEGER NOT NULL,
            PRIMARY KEY (participant, epoch)
        )
    """
    """SQL to create checkpoints table."""


@dataclass(frozen=True, slots=True)
class EpochNamespace:
    """
    Namespace for finalized epoch records.

    Rows are only ever inserted: a finalized epoch is immutable.
    """

    TABLE_NAME: str = "epochs"
    """Table name for epoch records."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS epochs (
            epoch INTEGER PRIMARY KEY,
            total_effective_stake TEXT NOT NULL,
            reward_allocated TEXT NOT NULL,
            finalized INTEGER NOT NULL
        )
    """
    """SQL to create epochs table."""


@dataclass(frozen=True, slots=True)
class AggregateNamespace:
    """
    Namespace for the running effective-stake aggregate.

    The scalar part is a single row. Ended-but-unfinalized totals live in
    their own table keyed by epoch.
    """

    TABLE_NAME: str = "aggregate"
    """Table name for the aggregate scalars."""

    TOTALS_TABLE_NAME: str = "closed_totals"
    """Table name for ended epochs awaiting finalization."""

    KEY: int = 1
    """Primary key of the only aggregate row."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS aggregate (
            id INTEGER PRIMARY KEY,
            open_epoch INTEGER NOT NULL,
            base_total TEXT NOT NULL,
            tenure_bonus TEXT NOT NULL,
            slope TEXT NOT NULL
        )
    """
    """SQL to create aggregate table."""

    CREATE_TOTALS_TABLE: str = """
        CREATE TABLE IF NOT EXISTS closed_totals (
            epoch INTEGER PRIMARY KEY,
            total TEXT NOT NULL
        )
    """
    """SQL to create closed totals table."""


@dataclass(frozen=True, slots=True)
class SlopeChangeNamespace:
    """
    Namespace for scheduled slope retirements.

    Keyed by the epoch at which the slope stops accruing.
    """

    TABLE_NAME: str = "slope_changes"
    """Table name for slope changes."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS slope_changes (
            epoch INTEGER PRIMARY KEY,
            slope TEXT NOT NULL
        )
    """
    """SQL to create slope changes table."""


# Singleton instances for convenient access
PROGRAM = ProgramNamespace()
POSITIONS = PositionNamespace()
CHECKPOINTS = CheckpointNamespace()
EPOCHS = EpochNamespace()
AGGREGATE = AggregateNamespace()
SLOPE_CHANGES = SlopeChangeNamespace()
