"""
SQLite database implementation for staking state storage.

This module provides persistent storage for the staking engine:

- The program configuration and the schema version it was written with
- Live positions and their checkpoint history
- Finalized epoch records
- The running effective-stake aggregate and its slope schedule

Amounts are stored as decimal TEXT and converted back to `Uint256` on read.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from anti_geyser.subspecs.containers import (
    Epoch,
    EpochRecord,
    ParticipantId,
    Position,
    PositionCheckpoint,
)
from anti_geyser.subspecs.epochs import AggregateState, EpochTotal, SlopeChange
from anti_geyser.subspecs.program import ProgramConfig
from anti_geyser.types import Uint64, Uint256

from .namespaces import (
    AGGREGATE,
    CHECKPOINTS,
    EPOCHS,
    POSITIONS,
    PROGRAM,
    SCHEMA_VERSION,
    SLOPE_CHANGES,
)

logger = logging.getLogger(__name__)


def _optional_epoch(value: int | None) -> Epoch | None:
    return None if value is None else Epoch(value)


class SQLiteDatabase:
    """
    SQLite implementation of the Database protocol.

    Stores staking state in a single SQLite file.
    Thread-safe through SQLite's built-in locking.

    Each write commits immediately unless it runs inside `atomic()`, in which
    case the whole block commits or rolls back together.
    """

    def __init__(self, path: Path | str) -> None:
        """
        Initialize SQLite database.

        Creates database file and tables if they don't exist.

        Args:
            path: Path to SQLite database file.
                  Use ":memory:" for in-memory database.
        """
        self._path = Path(path) if isinstance(path, str) else path

        # The check_same_thread=False flag allows the API server and the
        # keeper to share this connection. The engine lock serializes writers.
        self._conn = sqlite3.connect(
            str(self._path),
            check_same_thread=False,
        )

        # Row factory enables dict-like access: row["column_name"].
        self._conn.row_factory = sqlite3.Row

        # Nesting depth of atomic() blocks. Commits wait for depth 0.
        self._depth = 0

        self._init_schema()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        cursor = self._conn.cursor()
        cursor.execute(PROGRAM.CREATE_TABLE)
        cursor.execute(POSITIONS.CREATE_TABLE)
        cursor.execute(CHECKPOINTS.CREATE_TABLE)
        cursor.execute(EPOCHS.CREATE_TABLE)
        cursor.execute(AGGREGATE.CREATE_TABLE)
        cursor.execute(AGGREGATE.CREATE_TOTALS_TABLE)
        cursor.execute(SLOPE_CHANGES.CREATE_TABLE)
        self._conn.commit()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Commit every write in the block together, or none of them."""
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
                logger.warning("Rolled back storage transaction")
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._conn.commit()

    def _commit(self) -> None:
        """Commit now, unless an enclosing atomic() block will."""
        if self._depth == 0:
            self._conn.commit()

    # -------------------------------------------------------------------------
    # Program Operations
    # -------------------------------------------------------------------------

    def get_program(self) -> ProgramConfig | None:
        """Retrieve the program configuration."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"SELECT schema_version, config FROM {PROGRAM.TABLE_NAME} WHERE id = ?",
            (PROGRAM.KEY,),
        )
        row = cursor.fetchone()
        if row is None:
            return None

        # Later layouts must migrate explicitly; never read them blindly.
        if row["schema_version"] != SCHEMA_VERSION:
            raise ValueError(
                f"Unsupported schema version {row['schema_version']} (expected {SCHEMA_VERSION})"
            )
        return ProgramConfig.model_validate_json(row["config"])

    def put_program(self, config: ProgramConfig) -> None:
        """Store the program configuration."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"""
            INSERT OR REPLACE INTO {PROGRAM.TABLE_NAME} (id, schema_version, config)
            VALUES (?, ?, ?)
            """,
            (PROGRAM.KEY, SCHEMA_VERSION, config.model_dump_json(by_alias=True)),
        )
        self._commit()

    # -------------------------------------------------------------------------
    # Position Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_position(row: sqlite3.Row) -> Position:
        return Position(
            amount=Uint256(int(row["amount"])),
            join_epoch=Epoch(row["join_epoch"]),
            last_claim_epoch=_optional_epoch(row["last_claim_epoch"]),
            next_claim_epoch=Epoch(row["next_claim_epoch"]),
            churn_count=Uint64(row["churn_count"]),
            last_withdraw_epoch=_optional_epoch(row["last_withdraw_epoch"]),
        )

    def get_position(self, participant: ParticipantId) -> Position | None:
        """Retrieve one participant's live position."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"SELECT * FROM {POSITIONS.TABLE_NAME} WHERE participant = ?",
            (participant,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_position(row)

    def put_position(self, participant: ParticipantId, position: Position) -> None:
        """Store a participant's live position."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"""
            INSERT OR REPLACE INTO {POSITIONS.TABLE_NAME} (
                participant, amount, join_epoch, last_claim_epoch,
                next_claim_epoch, churn_count, last_withdraw_epoch
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                participant,
                str(int(position.amount)),
                int(position.join_epoch),
                None if position.last_claim_epoch is None else int(position.last_claim_epoch),
                int(position.next_claim_epoch),
                int(position.churn_count),
                None
                if position.last_withdraw_epoch is None
                else int(position.last_withdraw_epoch),
            ),
        )
        self._commit()

    def get_all_positions(self) -> dict[ParticipantId, Position]:
        """Retrieve every live position, in insertion order."""
        cursor = self._conn.cursor()
        cursor.execute(f"SELECT * FROM {POSITIONS.TABLE_NAME} ORDER BY rowid")
        return {row["participant"]: self._row_to_position(row) for row in cursor.fetchall()}

    def put_checkpoint(self, participant: ParticipantId, checkpoint: PositionCheckpoint) -> None:
        """Store a position checkpoint, replacing any from the same epoch."""
        cursor = self._conn.cursor()

        # The (participant, epoch) key enforces one checkpoint per epoch:
        # the last action within an epoch wins.
        cursor.execute(
            f"""
            INSERT OR REPLACE INTO {CHECKPOINTS.TABLE_NAME}
                (participant, epoch, amount, join_epoch, churn_count)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                participant,
                int(checkpoint.epoch),
                str(int(checkpoint.amount)),
                int(checkpoint.join_epoch),
                int(checkpoint.churn_count),
            ),
        )
        self._commit()

    def get_all_checkpoints(self) -> dict[ParticipantId, list[PositionCheckpoint]]:
        """Retrieve every participant's checkpoint history, oldest first."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"SELECT * FROM {CHECKPOINTS.TABLE_NAME} ORDER BY participant, epoch"
        )
        history: dict[ParticipantId, list[PositionCheckpoint]] = {}
        for row in cursor.fetchall():
            history.setdefault(row["participant"], []).append(
                PositionCheckpoint(
                    epoch=Epoch(row["epoch"]),
                    amount=Uint256(int(row["amount"])),
                    join_epoch=Epoch(row["join_epoch"]),
                    churn_count=Uint64(row["churn_count"]),
                )
            )
        return history

    # -------------------------------------------------------------------------
    # Epoch Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> EpochRecord:
        return EpochRecord(
            total_effective_stake=Uint256(int(row["total_effective_stake"])),
            reward_allocated=Uint256(int(row["reward_allocated"])),
            finalized=bool(row["finalized"]),
        )

    def get_epoch_record(self, epoch: int) -> EpochRecord | None:
        """Retrieve a finalized epoch record."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"SELECT * FROM {EPOCHS.TABLE_NAME} WHERE epoch = ?",
            (int(epoch),),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def put_epoch_record(self, epoch: int, record: EpochRecord) -> None:
        """Store a finalized epoch record."""
        cursor = self._conn.cursor()

        # Plain INSERT: overwriting a frozen epoch is a bug, let it fail loudly.
        cursor.execute(
            f"""
            INSERT INTO {EPOCHS.TABLE_NAME}
                (epoch, total_effective_stake, reward_allocated, finalized)
            VALUES (?, ?, ?, ?)
            """,
            (
                int(epoch),
                str(int(record.total_effective_stake)),
                str(int(record.reward_allocated)),
                int(record.finalized),
            ),
        )
        self._commit()

    def get_all_epoch_records(self) -> dict[int, EpochRecord]:
        """Retrieve every finalized epoch record."""
        cursor = self._conn.cursor()
        cursor.execute(f"SELECT * FROM {EPOCHS.TABLE_NAME} ORDER BY epoch")
        return {row["epoch"]: self._row_to_record(row) for row in cursor.fetchall()}

    # -------------------------------------------------------------------------
    # Aggregate Operations
    # -------------------------------------------------------------------------

    def get_aggregate(self) -> AggregateState | None:
        """Retrieve the running aggregate."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"SELECT * FROM {AGGREGATE.TABLE_NAME} WHERE id = ?",
            (AGGREGATE.KEY,),
        )
        row = cursor.fetchone()
        if row is None:
            return None

        cursor.execute(f"SELECT epoch, slope FROM {SLOPE_CHANGES.TABLE_NAME} ORDER BY epoch")
        changes = [
            SlopeChange(epoch=change["epoch"], slope=int(change["slope"]))
            for change in cursor.fetchall()
        ]
        cursor.execute(f"SELECT epoch, total FROM {AGGREGATE.TOTALS_TABLE_NAME} ORDER BY epoch")
        totals = [
            EpochTotal(epoch=total["epoch"], total=int(total["total"]))
            for total in cursor.fetchall()
        ]

        return AggregateState(
            open_epoch=row["open_epoch"],
            base_total=int(row["base_total"]),
            tenure_bonus=int(row["tenure_bonus"]),
            slope=int(row["slope"]),
            slope_changes=changes,
            closed_totals=totals,
        )

    def put_aggregate(self, state: AggregateState) -> None:
        """Store the running aggregate, replacing the previous one."""
        cursor = self._conn.cursor()
        cursor.execute(
            f"""
            INSERT OR REPLACE INTO {AGGREGATE.TABLE_NAME}
                (id, open_epoch, base_total, tenure_bonus, slope)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                AGGREGATE.KEY,
                state.open_epoch,
                str(state.base_total),
                str(state.tenure_bonus),
                str(state.slope),
            ),
        )

        # The schedule is small (at most tMax entries per join epoch): rewrite it.
        cursor.execute(f"DELETE FROM {SLOPE_CHANGES.TABLE_NAME}")
        cursor.executemany(
            f"INSERT INTO {SLOPE_CHANGES.TABLE_NAME} (epoch, slope) VALUES (?, ?)",
            [(change.epoch, str(change.slope)) for change in state.slope_changes],
        )
        cursor.execute(f"DELETE FROM {AGGREGATE.TOTALS_TABLE_NAME}")
        cursor.executemany(
            f"INSERT INTO {AGGREGATE.TOTALS_TABLE_NAME} (epoch, total) VALUES (?, ?)",
            [(total.epoch, str(total.total)) for total in state.closed_totals],
        )
        self._commit()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()
