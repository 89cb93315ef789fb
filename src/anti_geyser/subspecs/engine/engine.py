"""
Staking Engine
==============

The single mutation gateway of a staking program.

The engine owns the position ledger and the epoch registry and is the only
writer of either. Every public operation runs under one lock, so each
mutation is all-or-nothing and readers always observe a consistent state.

Order of Effects
----------------

Every mutation follows the same order:

1. Bring the epoch aggregate up to the wall clock.
2. Validate. A rejected operation leaves no trace.
3. Move tokens. A failed transfer leaves no trace.
4. Mutate the in-memory state.
5. Persist everything the mutation touched in one transaction.

If step 4 or 5 fails, the in-memory state is put back and the transfer is
reversed before the error propagates, so a caller can safely retry.

Epoch Boundaries
----------------

Time is read from the clock; nothing is swept at epoch boundaries. Snapshot
and claim ranges use the number of *ended* epochs, so that the program's last
epoch can be finalized once it is over even though `get_current_epoch()`
stays clamped at that index.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import partial
from typing import SupportsInt

from anti_geyser.subspecs import metrics
from anti_geyser.subspecs.containers import (
    Epoch,
    EpochRecord,
    ParticipantId,
    Position,
    PositionView,
)
from anti_geyser.subspecs.epochs import EpochRegistry
from anti_geyser.subspecs.ledger import PositionLedger, Transition
from anti_geyser.subspecs.program import EpochClock, ProgramConfig
from anti_geyser.subspecs.rewards import Accrual, accrue
from anti_geyser.subspecs.storage import Database
from anti_geyser.subspecs.weighting import ZERO_WEIGHT, effective_stake, stake_weight
from anti_geyser.types import Uint256, format_wad
from anti_geyser.types.exceptions import (
    InsufficientStake,
    InvalidAmount,
    NothingToClaim,
    ProgramInactive,
    StakingError,
)

from .token import TokenBank

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "anti-geyser"
"""Account holding staked tokens and the reward pool."""


class StakingEngine:
    """
    Epoch-based staking rewards for one staking pool and one reward pool.

    Rewards favour early, long-tenured and low-churn participants; see
    `anti_geyser.subspecs.weighting` for the weighting.
    """

    def __init__(
        self,
        config: ProgramConfig,
        clock: EpochClock,
        stake_token: TokenBank,
        reward_token: TokenBank,
        database: Database | None = None,
        account: str = DEFAULT_ACCOUNT,
    ) -> None:
        """
        Activate a new program.

        Args:
            config: Program parameters.
            clock: Epoch clock matching the program's timing parameters.
            stake_token: Token that participants stake.
            reward_token: Token that rewards are paid in.
            database: Optional storage. A new program is written to it.
            account: Engine account holding stakes and the reward pool.

        Raises:
            ValueError: If the database already holds a program.
        """
        assert clock.epoch_length == int(config.epoch_length), "Clock does not match program"
        assert clock.total_epochs == int(config.total_epochs), "Clock does not match program"

        self._config = config
        self._clock = clock
        self._stake_token = stake_token
        self._reward_token = reward_token
        self._account = account

        self._ledger = PositionLedger()
        self._registry = EpochRegistry(config)

        # Reentrant: admin helpers call other public operations.
        self._lock = threading.RLock()

        self._database: Database | None = None
        if database is not None:
            if database.get_program() is not None:
                raise ValueError("Database already holds a program, use StakingEngine.load()")
            with database.atomic():
                database.put_program(config)
                database.put_aggregate(self._registry.export_state())
            self._database = database

        logger.info(
            "Activated program: %d epochs of %ds, %s %s per epoch",
            int(config.total_epochs),
            int(config.epoch_length),
            format_wad(config.reward_per_epoch),
            reward_token.symbol,
        )

    @classmethod
    def load(
        cls,
        database: Database,
        clock: EpochClock,
        stake_token: TokenBank,
        reward_token: TokenBank,
        account: str = DEFAULT_ACCOUNT,
    ) -> StakingEngine:
        """
        Restore an engine from storage.

        Raises:
            ValueError: If the database holds no program.
        """
        config = database.get_program()
        if config is None:
            raise ValueError("Database holds no program")

        engine = cls(config, clock, stake_token, reward_token, account=account)
        engine._ledger.restore(database.get_all_positions(), database.get_all_checkpoints())

        aggregate = database.get_aggregate()
        assert aggregate is not None, "Program stored without its aggregate"
        engine._registry.restore(aggregate, database.get_all_epoch_records())
        engine._database = database

        logger.info(
            "Restored program with %d participants, %d finalized epochs",
            len(engine._ledger),
            len(engine._registry.records()),
        )
        return engine

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ProgramConfig:
        """The program parameters."""
        return self._config

    @property
    def clock(self) -> EpochClock:
        """The epoch clock."""
        return self._clock

    @property
    def account(self) -> str:
        """The engine account holding stakes and the reward pool."""
        return self._account

    @property
    def stake_token(self) -> TokenBank:
        return self._stake_token

    @property
    def reward_token(self) -> TokenBank:
        return self._reward_token

    def participants(self) -> list[ParticipantId]:
        """Every participant that ever staked."""
        with self._lock:
            return self._ledger.participants()

    def total_staked(self) -> Uint256:
        """Sum of every live stake."""
        with self._lock:
            return Uint256(self._ledger.total_staked())

    def elapsed_epochs(self) -> int:
        """Number of epochs whose wall-clock end has passed."""
        return self._clock.elapsed_epochs()

    def last_finalized_epoch(self) -> Epoch | None:
        """The most recently finalized epoch, `None` before the first snapshot."""
        with self._lock:
            return self._registry.last_finalized()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_current_epoch(self) -> Epoch:
        """The current epoch, clamped to the program's last epoch."""
        return self._clock.current_epoch()

    def get_position(self, participant: ParticipantId) -> PositionView | None:
        """A participant's position as seen from the current epoch, `None` if unknown."""
        with self._operation("get_position"):
            position = self._ledger.get(participant)
            if position is None:
                return None
            return self._view(position)

    def epochs(self, epoch: SupportsInt) -> EpochRecord:
        """
        The record of an epoch.

        Finalized epochs return their frozen record. Open or ended epochs
        return the total accumulated so far with `finalized = False`.
        """
        with self._operation("epochs"):
            return self._registry.record(Epoch(epoch))

    def effective_stake(self, participant: ParticipantId, epoch: SupportsInt) -> Uint256:
        """A participant's effective stake during an epoch, from the state in force then."""
        with self._operation("effective_stake"):
            target = Epoch(epoch)
            return effective_stake(self._ledger.state_at(participant, target), target, self._config)

    def pending_rewards(self, participant: ParticipantId) -> Uint256:
        """
        Rewards a claim would pay from the finalized epochs so far.

        Epochs that have ended but are not finalized yet are skipped.
        """
        return self.pending_breakdown(participant).amount

    def pending_breakdown(self, participant: ParticipantId) -> Accrual:
        """Pending rewards with their per-epoch shares."""
        with self._operation("pending_rewards"):
            position = self._ledger.get(participant)
            if position is None:
                return Accrual(amount=Uint256(0), through=None)
            return accrue(
                self._ledger,
                self._registry,
                self._config,
                participant,
                start=int(position.next_claim_epoch),
                end=self._clock.elapsed_epochs(),
            )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def stake(self, participant: ParticipantId, amount: SupportsInt) -> PositionView:
        """
        Stake tokens.

        Raises:
            InvalidAmount: If the amount is not a positive uint256.
            ProgramInactive: If the program is paused or over.
            InsufficientBalance: If the participant cannot fund the transfer.
        """
        with self._operation("stake"):
            value = self._amount("stake", amount)
            if not self._config.active:
                raise ProgramInactive("stake", "the program is paused")
            if self._clock.has_ended():
                raise ProgramInactive("stake", "the program has ended")

            epoch = Epoch(self._registry.open_epoch)
            self._stake_token.transfer(participant, self._account, value)

            refund = partial(self._stake_token.transfer, self._account, participant, value)
            with self._all_or_nothing(participant, refund):
                transition = self._ledger.apply_stake(
                    participant, value, epoch, self._config.top_up_resets_standing
                )
                self._reweight(transition)
                self._persist_position(participant)

            metrics.stakes.inc()
            logger.info(
                "Staked %s %s for %s in epoch %d",
                format_wad(value),
                self._stake_token.symbol,
                participant,
                int(epoch),
            )
            return self._view(self._ledger.get(participant))

    def withdraw(self, participant: ParticipantId, amount: SupportsInt) -> PositionView:
        """
        Withdraw staked tokens.

        Allowed while paused and after the program ended: stakes are never
        locked. Every withdrawal counts as churn and resets tenure.

        Raises:
            InvalidAmount: If the amount is not a positive uint256.
            InsufficientStake: If the amount exceeds the participant's stake.
        """
        with self._operation("withdraw"):
            value = self._amount("withdraw", amount)

            position = self._ledger.get(participant)
            staked = 0 if position is None else int(position.amount)
            if int(value) > staked:
                raise InsufficientStake(participant, int(value), staked)

            epoch = Epoch(self._registry.open_epoch)
            self._stake_token.transfer(self._account, participant, value)

            refund = partial(self._stake_token.transfer, participant, self._account, value)
            with self._all_or_nothing(participant, refund):
                transition = self._ledger.apply_withdraw(participant, value, epoch)

                # After the last epoch closed there is no aggregate left to update.
                if int(epoch) < int(self._config.total_epochs):
                    self._reweight(transition)
                self._persist_position(participant)

            metrics.withdrawals.inc()
            logger.info(
                "Withdrew %s %s for %s in epoch %d (churn %d)",
                format_wad(value),
                self._stake_token.symbol,
                participant,
                int(epoch),
                int(transition.current.churn_count),
            )
            return self._view(self._ledger.get(participant))

    def snapshot_epoch(self, epoch: SupportsInt) -> EpochRecord:
        """
        Finalize an ended epoch, freezing its total and reward allocation.

        The allocation is the per-epoch reward while the program is active and
        zero while it is paused.

        Raises:
            AlreadyFinalized: If the epoch is already frozen.
            EpochNotEnded: If the epoch is still live.
            OutOfOrderFinalization: If an earlier epoch is not finalized.
        """
        with self._operation("snapshot_epoch"):
            target = Epoch(epoch)
            reward = self._config.reward_per_epoch if self._config.active else Uint256(0)
            with self._all_or_nothing():
                record = self._registry.finalize(target, self._clock.elapsed_epochs(), reward)

                if self._database is not None:
                    with self._database.atomic():
                        self._database.put_epoch_record(int(target), record)
                        self._database.put_aggregate(self._registry.export_state())

            metrics.epochs_finalized.inc()
            metrics.finalized_epoch.set(int(target))
            logger.info(
                "Finalized epoch %d: total effective stake %s, reward %s %s",
                int(target),
                format_wad(record.total_effective_stake),
                format_wad(record.reward_allocated),
                self._reward_token.symbol,
            )
            return record

    def finalize_ended_epochs(self) -> list[Epoch]:
        """Finalize every ended epoch that is still open, in order."""
        with self._lock:
            finalized = []
            while self._registry.next_to_finalize < self._clock.elapsed_epochs():
                epoch = Epoch(self._registry.next_to_finalize)
                self.snapshot_epoch(epoch)
                finalized.append(epoch)
            return finalized

    def claim_rewards(self, participant: ParticipantId) -> Uint256:
        """
        Pay out every reward accrued since the last claim.

        Raises:
            ProgramInactive: If the program is paused.
            EpochNotFinalized: If an ended epoch since the last claim is not
                finalized yet.
            NothingToClaim: If the payout would be zero.
            InsufficientBalance: If the reward pool cannot fund the payout.
        """
        with self._operation("claim_rewards"):
            if not self._config.active:
                raise ProgramInactive("claim rewards", "the program is paused")

            position = self._ledger.get(participant)
            if position is None:
                raise NothingToClaim(participant)

            elapsed = self._clock.elapsed_epochs()
            accrual = accrue(
                self._ledger,
                self._registry,
                self._config,
                participant,
                start=int(position.next_claim_epoch),
                end=elapsed,
                require_finalized=True,
            )
            if int(accrual.amount) == 0:
                raise NothingToClaim(participant)

            self._reward_token.transfer(self._account, participant, accrual.amount)

            refund = partial(
                self._reward_token.transfer, participant, self._account, accrual.amount
            )
            with self._all_or_nothing(participant, refund):
                updated = self._ledger.advance_claim(participant, Epoch(elapsed - 1))
                if self._database is not None:
                    self._database.put_position(participant, updated)

            metrics.claims.inc()
            metrics.rewards_paid.inc(float(format_wad(accrual.amount)))
            logger.info(
                "Paid %s %s to %s for epochs %d..%d",
                format_wad(accrual.amount),
                self._reward_token.symbol,
                participant,
                int(position.next_claim_epoch),
                elapsed - 1,
            )
            return accrual.amount

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def activate(self) -> None:
        """Resume staking and claims."""
        self._set_active(True)

    def deactivate(self) -> None:
        """Pause staking and claims. Withdrawals stay open."""
        self._set_active(False)

    def _set_active(self, active: bool) -> None:
        with self._lock:
            self._config = self._config.model_copy(update={"active": active})
            if self._database is not None:
                self._database.put_program(self._config)
            logger.warning("Program %s", "resumed" if active else "paused")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """
        Run one operation under the engine lock.

        The epoch aggregate is first brought up to the wall clock. Rejections
        are counted and logged, then propagate to the caller.
        """
        with self._lock, metrics.operation_time.labels(operation=name).time():
            self._registry.advance_to(self._clock.raw_epoch())
            try:
                yield
            except StakingError as e:
                metrics.rejected_operations.labels(error=type(e).__name__).inc()
                logger.debug("Rejected %s: %s", name, e.message)
                raise
            finally:
                self._refresh_gauges()

    @staticmethod
    def _amount(operation: str, amount: SupportsInt) -> Uint256:
        """
        Validate a caller-supplied amount.

        Raises:
            InvalidAmount: If the amount is zero, negative or wider than uint256.
        """
        try:
            value = Uint256(amount)
        except OverflowError as e:
            raise InvalidAmount(operation, int(amount)) from e
        if int(value) == 0:
            raise InvalidAmount(operation, 0)
        return value

    @contextmanager
    def _all_or_nothing(
        self,
        participant: ParticipantId | None = None,
        refund: Callable[[], object] | None = None,
    ) -> Iterator[None]:
        """
        Undo the block's in-memory effects if it raises.

        The participant's ledger entry and the epoch registry are put back as
        they were, then `refund` reverses the token transfer made before the
        block. Storage rolls back its own transaction.
        """
        position = None if participant is None else self._ledger.get(participant)
        history = [] if participant is None else self._ledger.checkpoints(participant)
        aggregate = self._registry.export_state()
        records = self._registry.records()
        try:
            yield
        except BaseException as e:
            if participant is not None:
                self._ledger.reset(participant, position, history)
            self._registry.restore(aggregate, records)
            if refund is not None:
                refund()
            if not isinstance(e, StakingError):
                logger.error("Reverted a failed operation for %s", participant or "the program")
            raise

    def _view(self, position: Position | None) -> PositionView:
        assert position is not None
        return PositionView(
            amount=position.amount,
            join_epoch=position.join_epoch,
            last_claim_epoch=position.last_claim_epoch,
            tenure_epochs=position.tenure_at(self._clock.current_epoch()),
            churn_count=position.churn_count,
        )

    def _reweight(self, transition: Transition) -> None:
        """Swap a participant's contribution in the open epoch's aggregate."""
        previous = transition.previous
        current = transition.current
        self._registry.apply(
            ZERO_WEIGHT if previous is None else stake_weight(previous, self._config),
            0 if previous is None else int(previous.join_epoch),
            stake_weight(current, self._config),
            int(current.join_epoch),
        )

    def _persist_position(self, participant: ParticipantId) -> None:
        """Write a participant's position, its latest checkpoint and the aggregate."""
        if self._database is None:
            return
        position: Position | None = self._ledger.get(participant)
        assert position is not None
        with self._database.atomic():
            self._database.put_position(participant, position)
            self._database.put_checkpoint(participant, self._ledger.checkpoints(participant)[-1])
            self._database.put_aggregate(self._registry.export_state())

    def _refresh_gauges(self) -> None:
        last = self._registry.last_finalized()
        metrics.current_epoch.set(int(self._clock.current_epoch()))
        metrics.finalized_epoch.set(-1 if last is None else int(last))
        metrics.total_staked.set(float(format_wad(self._ledger.total_staked())))
        metrics.open_epoch_effective_stake.set(float(format_wad(self._registry.running_total)))
        metrics.participants.set(len(self._ledger))
