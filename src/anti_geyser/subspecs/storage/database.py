"""
Abstract database interface for staking state storage.

Defines the Protocol that all database implementations must follow.
Uses structural subtyping for flexibility.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from anti_geyser.subspecs.containers import (
        EpochRecord,
        ParticipantId,
        Position,
        PositionCheckpoint,
    )
    from anti_geyser.subspecs.epochs import AggregateState
    from anti_geyser.subspecs.program import ProgramConfig


class Database(Protocol):
    """
    Protocol for staking state storage.

    All database implementations must provide these methods.
    Uses structural subtyping - any class with matching methods satisfies the protocol.

    Storage Organization
    --------------------
    - Program: The configuration, written once at activation
    - Positions: Indexed by participant
    - Checkpoints: Position history, indexed by participant and epoch
    - Epochs: Finalized records, indexed by epoch
    - Aggregate: The running effective-stake sum and its slope schedule
    """

    def atomic(self) -> AbstractContextManager[None]:
        """
        Group writes into one transaction.

        Everything written inside the block is committed together when it
        exits normally, and rolled back if it raises.
        """
        ...

    # -------------------------------------------------------------------------
    # Program Operations
    # -------------------------------------------------------------------------

    def get_program(self) -> ProgramConfig | None:
        """
        Retrieve the program configuration.

        Returns:
            The stored configuration, or None for an empty database.
        """
        ...

    def put_program(self, config: ProgramConfig) -> None:
        """
        Store the program configuration.

        Args:
            config: Configuration to store (replaces any previous one).
        """
        ...

    # -------------------------------------------------------------------------
    # Position Operations
    # -------------------------------------------------------------------------

    def get_position(self, participant: ParticipantId) -> Position | None:
        """
        Retrieve one participant's live position.

        Args:
            participant: Participant identity.

        Returns:
            Position if found, None otherwise.
        """
        ...

    def put_position(self, participant: ParticipantId, position: Position) -> None:
        """
        Store a participant's live position.

        Args:
            participant: Participant identity.
            position: Position to store.
        """
        ...

    def get_all_positions(self) -> dict[ParticipantId, Position]:
        """
        Retrieve every live position.

        Returns:
            Mapping from participant to position.
        """
        ...

    def put_checkpoint(self, participant: ParticipantId, checkpoint: PositionCheckpoint) -> None:
        """
        Store a position checkpoint, replacing any from the same epoch.

        Args:
            participant: Participant identity.
            checkpoint: Checkpoint to store.
        """
        ...

    def get_all_checkpoints(self) -> dict[ParticipantId, list[PositionCheckpoint]]:
        """
        Retrieve every participant's checkpoint history.

        Returns:
            Mapping from participant to checkpoints, oldest first.
        """
        ...

    # -------------------------------------------------------------------------
    # Epoch Operations
    # -------------------------------------------------------------------------

    def get_epoch_record(self, epoch: int) -> EpochRecord | None:
        """
        Retrieve a finalized epoch record.

        Args:
            epoch: Epoch index.

        Returns:
            Record if the epoch is finalized, None otherwise.
        """
        ...

    def put_epoch_record(self, epoch: int, record: EpochRecord) -> None:
        """
        Store a finalized epoch record.

        Args:
            epoch: Epoch index.
            record: The frozen record.
        """
        ...

    def get_all_epoch_records(self) -> dict[int, EpochRecord]:
        """
        Retrieve every finalized epoch record.

        Returns:
            Mapping from epoch index to record.
        """
        ...

    # -------------------------------------------------------------------------
    # Aggregate Operations
    # -------------------------------------------------------------------------

    def get_aggregate(self) -> AggregateState | None:
        """
        Retrieve the running aggregate.

        Returns:
            The stored aggregate, or None for an empty database.
        """
        ...

    def put_aggregate(self, state: AggregateState) -> None:
        """
        Store the running aggregate, replacing the previous one.

        Args:
            state: Aggregate exported from the epoch registry.
        """
        ...

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection and release resources."""
        ...
