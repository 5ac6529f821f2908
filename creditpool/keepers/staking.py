"""
staking.py - Staking ledger backing gauge votes

Users deposit a staking token; the deposit becomes voting power that the
gauge locks while votes are cast. Withdrawals are scheduled and become
claimable WITHDRAWAL_DELAY_EPOCHS epochs later, so votes cannot be moved
in and out of the system within a single epoch.

Epochs are counted from first_epoch_timestamp: epoch 0 before it, then
1, 2, ... every epoch_length seconds.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional
import logging

from ..core import (
    Move, TransactionOrigin, OriginType, ExecuteResult,
    DEFAULT_EPOCH_LENGTH_SECONDS,
    InsufficientFunds, InsufficientVotes, WalletNotRegistered,
    build_transaction, to_decimal,
)
from ..events import EventLog
from ..ledger import Ledger

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

WITHDRAWAL_DELAY_EPOCHS = 4


@dataclass(frozen=True, slots=True)
class UserStake:
    """
    Attributes:
        total_balance: Staked tokens, excluding scheduled withdrawals
        available_balance: Part of total_balance not locked in votes
    """
    total_balance: Decimal = ZERO
    available_balance: Decimal = ZERO

    @property
    def locked(self) -> Decimal:
        return self.total_balance - self.available_balance


class StakingLedger:
    """Stake deposits, vote locking and delayed withdrawals."""

    def __init__(
        self,
        ledger: Ledger,
        stake_symbol: str,
        wallet: str = "staking",
        epoch_length_seconds: int = DEFAULT_EPOCH_LENGTH_SECONDS,
        first_epoch_timestamp: Optional[datetime] = None,
        events: Optional[EventLog] = None,
    ):
        if epoch_length_seconds <= 0:
            raise ValueError("epoch_length_seconds must be positive")
        ledger.get_unit(stake_symbol)
        self.ledger = ledger
        self.stake_symbol = stake_symbol
        self.wallet = ledger.ensure_wallet(wallet)
        self.epoch_length_seconds = epoch_length_seconds
        self.first_epoch_timestamp = first_epoch_timestamp or ledger.current_time
        self.events = events if events is not None else EventLog()
        self.stakes: Dict[str, UserStake] = {}
        # user -> {unlock epoch -> amount}
        self.withdrawals: Dict[str, Dict[int, Decimal]] = {}

    @property
    def current_time(self) -> datetime:
        return self.ledger.current_time

    def get_current_epoch(self) -> int:
        now = self.current_time
        if now < self.first_epoch_timestamp:
            return 0
        elapsed = (now - self.first_epoch_timestamp).total_seconds()
        return int(elapsed // self.epoch_length_seconds) + 1

    def balance_of(self, user: str) -> Decimal:
        return self.stakes.get(user, UserStake()).total_balance

    def available_balance(self, user: str) -> Decimal:
        return self.stakes.get(user, UserStake()).available_balance

    def pending_withdrawals(self, user: str) -> Dict[int, Decimal]:
        return dict(self.withdrawals.get(user, {}))

    def claimable(self, user: str) -> Decimal:
        epoch = self.get_current_epoch()
        return sum(
            (amount for unlock, amount in self.withdrawals.get(user, {}).items() if unlock <= epoch),
            ZERO,
        )

    def _transfer(self, quantity: Decimal, source: str, dest: str, event_type: str) -> None:
        for wallet in (source, dest):
            if not self.ledger.is_registered(wallet):
                raise WalletNotRegistered(f"Wallet {wallet} not registered")
        tx = build_transaction(
            self.ledger,
            [Move(quantity, self.stake_symbol, source, dest, event_type.lower())],
            TransactionOrigin(OriginType.STAKING, self.wallet, event_type),
        )
        if self.ledger.execute(tx) == ExecuteResult.REJECTED:
            raise InsufficientFunds(f"{source} cannot transfer {quantity} {self.stake_symbol}")

    # ========================================================================
    # STAKE
    # ========================================================================

    def deposit(self, user: str, amount: Decimal) -> None:
        """Pull stake tokens from `user` and credit them as voting power."""
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError(f"Deposit amount must be positive, got {amount}")
        self._transfer(amount, user, self.wallet, "DEPOSIT_STAKE")
        stake = self.stakes.get(user, UserStake())
        self.stakes[user] = UserStake(stake.total_balance + amount, stake.available_balance + amount)
        self.events.emit("DepositStake", self.current_time, self.wallet, user=user, amount=amount)
        logger.debug("%s staked %s %s", user, amount, self.stake_symbol)

    def schedule_withdrawal(self, user: str, amount: Decimal) -> int:
        """
        Move unlocked stake into the withdrawal queue.

        Returns:
            Epoch from which the amount can be claimed
        """
        amount = to_decimal(amount)
        stake = self.stakes.get(user, UserStake())
        if amount <= ZERO or amount > stake.available_balance:
            raise InsufficientFunds(
                f"{user} has {stake.available_balance} unlocked stake, cannot withdraw {amount}"
            )
        unlock = self.get_current_epoch() + WITHDRAWAL_DELAY_EPOCHS
        self.stakes[user] = UserStake(stake.total_balance - amount, stake.available_balance - amount)
        queue = self.withdrawals.setdefault(user, {})
        queue[unlock] = queue.get(unlock, ZERO) + amount
        self.events.emit("ScheduleWithdrawal", self.current_time, self.wallet,
                         user=user, amount=amount, unlock_epoch=unlock)
        logger.debug("%s scheduled withdrawal of %s, claimable at epoch %d", user, amount, unlock)
        return unlock

    def claim_withdrawals(self, user: str, to: Optional[str] = None) -> Decimal:
        """Send every matured withdrawal to `to` (defaults to the user). Returns the amount sent."""
        to = to or user
        epoch = self.get_current_epoch()
        queue = self.withdrawals.get(user, {})
        matured = [unlock for unlock in queue if unlock <= epoch]
        amount = sum((queue[unlock] for unlock in matured), ZERO)
        if amount == ZERO:
            return ZERO
        self._transfer(amount, self.wallet, to, "CLAIM_WITHDRAWAL")
        for unlock in matured:
            del queue[unlock]
        self.events.emit("ClaimWithdrawal", self.current_time, self.wallet, user=user, to=to, amount=amount)
        logger.debug("%s claimed %s stake to %s", user, amount, to)
        return amount

    # ========================================================================
    # VOTING POWER (gauge)
    # ========================================================================

    def lock_votes(self, user: str, amount: Decimal) -> None:
        stake = self.stakes.get(user, UserStake())
        if amount > stake.available_balance:
            raise InsufficientVotes(
                f"{user} has {stake.available_balance} voting power available, requested {amount}"
            )
        self.stakes[user] = replace(stake, available_balance=stake.available_balance - amount)

    def release_votes(self, user: str, amount: Decimal) -> None:
        stake = self.stakes.get(user, UserStake())
        if amount > stake.locked:
            raise InsufficientVotes(f"{user} has {stake.locked} votes locked, cannot release {amount}")
        self.stakes[user] = replace(stake, available_balance=stake.available_balance + amount)

    def __repr__(self) -> str:
        return f"StakingLedger({self.stake_symbol}, users={len(self.stakes)}, epoch={self.get_current_epoch()})"
