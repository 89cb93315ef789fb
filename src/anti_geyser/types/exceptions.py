"""Exception hierarchy for the staking engine."""

from __future__ import annotations


class StakingError(Exception):
    """
    Base exception for every rejected engine operation.

    All errors are local and synchronous. None of them is retried
    automatically: each signals either a caller-side logic error or a timing
    precondition that is not met yet.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ProgramInactive(StakingError):
    """
    Raised when an operation is attempted outside the active window.

    Attributes:
        operation: The rejected operation.
        reason: Why the program does not accept it.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cannot {operation}: {reason}")


class InvalidAmount(StakingError):
    """
    Raised when an amount is not a positive uint256.

    Attributes:
        operation: The rejected operation.
        amount: The offending amount, in base units.
    """

    def __init__(self, operation: str, amount: int) -> None:
        self.operation = operation
        self.amount = amount
        super().__init__(f"Cannot {operation} an amount of {amount}: must be positive")


class InsufficientBalance(StakingError):
    """
    Raised when an account cannot fund a token transfer.

    Attributes:
        account: The account that was debited.
        required: The amount the transfer needed.
        available: The account's balance.
    """

    def __init__(self, account: str, required: int, available: int) -> None:
        self.account = account
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance for {account}: required {required}, available {available}"
        )


class InsufficientStake(StakingError):
    """
    Raised when a withdrawal exceeds the staked amount.

    Attributes:
        participant: The withdrawing participant.
        requested: The amount asked for.
        staked: The amount currently staked.
    """

    def __init__(self, participant: str, requested: int, staked: int) -> None:
        self.participant = participant
        self.requested = requested
        self.staked = staked
        super().__init__(
            f"Insufficient stake for {participant}: requested {requested}, staked {staked}"
        )


class SnapshotError(StakingError):
    """Base class for epoch finalization errors."""


class AlreadyFinalized(SnapshotError):
    """
    Raised when an epoch is finalized a second time.

    Attributes:
        epoch: The epoch that is already frozen.
    """

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        super().__init__(f"Epoch {epoch} is already finalized")


class EpochNotEnded(SnapshotError):
    """
    Raised when finalizing an epoch whose wall-clock end has not passed.

    Attributes:
        epoch: The epoch that was requested.
        current: The live epoch.
    """

    def __init__(self, epoch: int, current: int) -> None:
        self.epoch = epoch
        self.current = current
        super().__init__(f"Epoch {epoch} has not ended (current epoch is {current})")


class OutOfOrderFinalization(SnapshotError):
    """
    Raised when an epoch is finalized before its predecessor.

    Attributes:
        epoch: The epoch that was requested.
        expected: The next epoch eligible for finalization.
    """

    def __init__(self, epoch: int, expected: int) -> None:
        self.epoch = epoch
        self.expected = expected
        super().__init__(f"Cannot finalize epoch {epoch} before epoch {expected}")


class EpochNotFinalized(StakingError):
    """
    Raised when a claim covers an epoch that has not been snapshotted.

    Attributes:
        epoch: The first unfinalized epoch in the claim range.
    """

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        super().__init__(f"Epoch {epoch} must be finalized before rewards can be claimed")


class NothingToClaim(StakingError):
    """
    Raised when a claim would pay out zero.

    Attributes:
        participant: The claiming participant.
    """

    def __init__(self, participant: str) -> None:
        self.participant = participant
        super().__init__(f"Nothing to claim for {participant}")
