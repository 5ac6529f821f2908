"""
pool.py - Liquidity Pool (central pool accounting)

The LiquidityPool owns the authoritative "how much is owed to depositors"
number. Its state is a set of checkpoints; everything in between is derived
with closed-form linear growth:

    base_index(now)        = base_index_lu * (1 + base_rate * dt / YEAR)
    accrued_base_interest  = total_borrowed * (base_index(now) / base_index_lu - 1)
    accrued_quota_revenue  = quota_revenue * dt / YEAR
    expected_liquidity     = expected_liquidity_lu + accrued_base_interest
                                                   + accrued_quota_revenue

Every mutating operation follows the same discipline:
    1. accrue: fold accrued interest into expected_liquidity_lu and move the
       index checkpoint to now, using the OLD rate
    2. mutate: apply the requested liquidity/debt change
    3. reprice: compute the new base rate from post-mutation utilization

All checks (limits, utilization cap, balance-book validation) run before any
field is assigned, so a failed operation leaves the pool untouched.

Token balances live in the shared balance book (creditpool.ledger.Ledger):
available liquidity is the pool wallet's underlying balance, and ownership
units are minted from / burned to SYSTEM_WALLET.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, TYPE_CHECKING
import logging

from .core import (
    Move, TransactionOrigin, OriginType, ExecuteResult,
    SYSTEM_WALLET, RAY, MAX_WITHDRAW_FEE, UNLIMITED,
    InsufficientFunds, WalletNotRegistered,
    DebtLimitExceeded, Paused, ZeroAddress, ZeroReceiver, Unauthorized,
    RepaymentExceedsDebt,
    build_transaction, to_decimal, round_down, round_up, grow_index, year_fraction,
    calc_accrued_interest,
    share,
)
from .events import EventLog
from .ledger import Ledger
from .rate_curve import LinearRateCurve

if TYPE_CHECKING:
    from .quotas import QuotaKeeper

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class DebtLine:
    """Outstanding principal and its cap, for the whole pool or one borrower."""
    principal: Decimal = ZERO
    limit: Decimal = ZERO

    @property
    def borrowable(self) -> Decimal:
        return max(self.limit - self.principal, ZERO)


@dataclass(frozen=True, slots=True)
class PoolConfig:
    """
    Static pool configuration.

    Attributes:
        name: Pool identifier, also used as the pool's wallet in the balance book
        underlying: Symbol of the lent token (must be registered in the ledger)
        share_symbol: Symbol of the ownership unit (registered by the pool if absent)
        treasury: Wallet receiving withdrawal fees and profit/loss ownership units
        withdraw_fee: Fraction of withdrawn assets kept as a fee (<= MAX_WITHDRAW_FEE)
        total_debt_limit: Aggregate principal cap (UNLIMITED by default)
    """
    name: str
    underlying: str
    share_symbol: str
    treasury: str
    withdraw_fee: Decimal = ZERO
    total_debt_limit: Decimal = UNLIMITED

    def __post_init__(self):
        if not self.name or not self.underlying or not self.share_symbol:
            raise ValueError("Pool name, underlying and share_symbol are required")
        if not self.treasury:
            raise ZeroAddress("Treasury wallet is required")
        if not isinstance(self.withdraw_fee, Decimal):
            object.__setattr__(self, 'withdraw_fee', to_decimal(self.withdraw_fee))
        if not isinstance(self.total_debt_limit, Decimal):
            object.__setattr__(self, 'total_debt_limit', to_decimal(self.total_debt_limit))
        if not (ZERO <= self.withdraw_fee <= MAX_WITHDRAW_FEE):
            raise ValueError(f"withdraw_fee must be in [0, {MAX_WITHDRAW_FEE}], got {self.withdraw_fee}")
        if self.total_debt_limit < ZERO:
            raise ValueError("total_debt_limit must be non-negative")


@dataclass(frozen=True, slots=True)
class RepaymentResult:
    """Effect of a repayment on the treasury's ownership units."""
    shares_minted: Decimal
    shares_burned: Decimal
    uncovered_loss: Decimal


@dataclass(frozen=True, slots=True)
class _Checkpoint:
    expected_liquidity_lu: Decimal
    base_interest_index_lu: Decimal
    base_interest_rate: Decimal
    timestamp: datetime


# ============================================================================
# LIQUIDITY POOL
# ============================================================================

class LiquidityPool:
    """
    Pool accounting: expected/available liquidity, debt and base interest.

    Example:
        pool = LiquidityPool(ledger, PoolConfig("pool", "USDC", "dUSDC", "treasury"), curve)
        pool.deposit(Decimal("1000"), "alice")
        pool.set_borrower_debt_limit("cm1", Decimal("500"))
        pool.borrow("cm1", Decimal("400"), "account1")
    """

    def __init__(
        self,
        ledger: Ledger,
        config: PoolConfig,
        rate_curve: LinearRateCurve,
        events: Optional[EventLog] = None,
    ):
        self.ledger = ledger
        self.config = config
        self.name = config.name
        self.underlying = config.underlying
        self.share_symbol = config.share_symbol
        self.rate_curve = rate_curve
        self.events = events if events is not None else EventLog()

        underlying_unit = ledger.get_unit(config.underlying)
        self.decimals = underlying_unit.decimal_places if underlying_unit.decimal_places is not None else 18
        if config.share_symbol not in ledger.units:
            ledger.register_unit(share(config.share_symbol, f"{config.name} ownership unit", self.decimals))
        ledger.ensure_wallet(config.name)
        ledger.ensure_wallet(config.treasury)

        now = ledger.current_time
        self.treasury = config.treasury
        self.withdraw_fee = config.withdraw_fee
        self.paused = False
        self.quota_keeper: Optional['QuotaKeeper'] = None

        self.expected_liquidity_lu = ZERO
        self.base_interest_index_lu = RAY
        self.last_base_interest_update = now
        self.base_interest_rate = rate_curve.rate(ZERO, ZERO)
        self.quota_revenue = ZERO
        self.last_quota_revenue_update = now

        self.total_debt = DebtLine(ZERO, config.total_debt_limit)
        self.borrower_debts: Dict[str, DebtLine] = {}

    # ========================================================================
    # LIQUIDITY READS
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self.ledger.current_time

    def available_liquidity(self) -> Decimal:
        """Underlying tokens held by the pool wallet."""
        return self.ledger.get_balance(self.name, self.underlying)

    def base_interest_index(self) -> Decimal:
        """Current base interest index, grown from the last checkpoint at the stored rate."""
        return grow_index(
            self.base_interest_index_lu,
            self.base_interest_rate,
            self.last_base_interest_update,
            self.current_time,
        )

    def _calc_base_interest_accrued(self) -> Decimal:
        principal = self.total_debt.principal
        if principal == ZERO:
            return ZERO
        index_now = self.base_interest_index()
        accrued = principal * (index_now - self.base_interest_index_lu) / self.base_interest_index_lu
        return round_down(accrued, self.decimals)

    def _calc_quota_revenue_accrued(self) -> Decimal:
        elapsed = year_fraction(self.last_quota_revenue_update, self.current_time)
        return round_down(self.quota_revenue * elapsed, self.decimals)

    def expected_liquidity(self) -> Decimal:
        """Value owed to depositors now, including accrued but unrecorded interest."""
        return (
            self.expected_liquidity_lu
            + self._calc_base_interest_accrued()
            + self._calc_quota_revenue_accrued()
        )

    def total_assets(self) -> Decimal:
        """Assets backing the ownership units (equals expected liquidity)."""
        return self.expected_liquidity()

    def utilization(self) -> Decimal:
        return self.rate_curve.utilization(self.expected_liquidity(), self.available_liquidity())

    def supply_rate(self) -> Decimal:
        """
        Annual rate earned by depositors: base interest on borrowed principal
        plus quota revenue, net of the withdrawal fee, over expected liquidity.
        """
        assets = self.expected_liquidity()
        if assets == ZERO:
            return ZERO
        income = self.base_interest_rate * self.total_debt.principal + self.quota_revenue
        return income * (1 - self.withdraw_fee) / assets

    # ========================================================================
    # DEBT READS
    # ========================================================================

    def total_borrowed(self) -> Decimal:
        return self.total_debt.principal

    def total_debt_limit(self) -> Decimal:
        return self.total_debt.limit

    def borrower_borrowed(self, borrower: str) -> Decimal:
        return self.borrower_debts.get(borrower, DebtLine()).principal

    def borrower_debt_limit(self, borrower: str) -> Decimal:
        return self.borrower_debts.get(borrower, DebtLine()).limit

    def borrowers(self) -> List[str]:
        return sorted(self.borrower_debts)

    def borrower_borrowable(self, borrower: str) -> Decimal:
        """
        How much a borrower can draw right now: the smallest of the
        utilization-cap room, the aggregate headroom and its own headroom.
        """
        if self.paused:
            return ZERO
        borrowable = self.rate_curve.available_to_borrow(
            self.expected_liquidity(), self.available_liquidity()
        )
        if borrowable <= ZERO:
            return ZERO
        borrowable = min(borrowable, self.total_debt.borrowable)
        borrowable = min(borrowable, self.borrower_debts.get(borrower, DebtLine()).borrowable)
        return round_down(borrowable, self.decimals) if borrowable.is_finite() else borrowable

    def calc_accrued_base_interest(self, principal: Decimal, index_lu: Decimal) -> Decimal:
        """Interest a borrower owes on principal drawn when the index was index_lu."""
        return calc_accrued_interest(to_decimal(principal), self.base_interest_index(), index_lu, self.decimals)

    # ========================================================================
    # OWNERSHIP UNITS
    # ========================================================================

    def total_supply(self) -> Decimal:
        """Ownership units outstanding."""
        return self.ledger.issued_supply(self.share_symbol)

    def balance_of(self, wallet: str) -> Decimal:
        if not self.ledger.is_registered(wallet):
            return ZERO
        return self.ledger.get_balance(wallet, self.share_symbol)

    def convert_to_shares(self, assets: Decimal) -> Decimal:
        """Ownership units worth `assets`, rounded down."""
        assets = to_decimal(assets)
        supply = self.total_supply()
        total = self.total_assets()
        if supply == ZERO or total == ZERO:
            return round_down(assets, self.decimals)
        return round_down(assets * supply / total, self.decimals)

    def convert_to_assets(self, shares: Decimal) -> Decimal:
        """Assets represented by `shares`, rounded down."""
        shares = to_decimal(shares)
        supply = self.total_supply()
        if supply == ZERO:
            return round_down(shares, self.decimals)
        return round_down(shares * self.total_assets() / supply, self.decimals)

    def _shares_for_assets_up(self, assets: Decimal) -> Decimal:
        supply = self.total_supply()
        total = self.total_assets()
        if supply == ZERO or total == ZERO:
            return round_up(assets, self.decimals)
        return round_up(assets * supply / total, self.decimals)

    def _gross_withdrawal(self, assets: Decimal) -> Decimal:
        if self.withdraw_fee == ZERO:
            return assets
        return round_up(assets / (1 - self.withdraw_fee), self.decimals)

    def preview_withdraw(self, assets: Decimal) -> Decimal:
        """Ownership units burned to deliver `assets` net of the withdrawal fee."""
        assets = round_up(to_decimal(assets), self.decimals)
        return self._shares_for_assets_up(self._gross_withdrawal(assets))

    # ========================================================================
    # CHECKPOINTING
    # ========================================================================

    def _checkpoint(
        self,
        expected_liquidity_delta: Decimal = ZERO,
        available_liquidity_delta: Decimal = ZERO,
        enforce_cap: bool = False,
    ) -> _Checkpoint:
        """
        Accrue to now and reprice at the post-mutation liquidity.

        Pure: raises CapacityExceeded before anything is assigned.
        """
        expected = self.expected_liquidity() + expected_liquidity_delta
        available = self.available_liquidity() + available_liquidity_delta
        rate = self.rate_curve.rate(expected, available, enforce_cap)
        return _Checkpoint(
            expected_liquidity_lu=expected,
            base_interest_index_lu=self.base_interest_index(),
            base_interest_rate=rate,
            timestamp=self.current_time,
        )

    def _commit(self, checkpoint: _Checkpoint) -> None:
        self.expected_liquidity_lu = checkpoint.expected_liquidity_lu
        self.base_interest_index_lu = checkpoint.base_interest_index_lu
        self.base_interest_rate = checkpoint.base_interest_rate
        self.last_base_interest_update = checkpoint.timestamp
        self.last_quota_revenue_update = checkpoint.timestamp

    def _execute(self, moves: List[Move], event_type: str) -> None:
        if not moves:
            return
        for move in moves:
            for wallet in (move.source, move.dest):
                if not self.ledger.is_registered(wallet):
                    raise WalletNotRegistered(f"Wallet {wallet} not registered")
        tx = build_transaction(
            self.ledger, moves,
            TransactionOrigin(OriginType.POOL, self.name, event_type),
        )
        if self.ledger.execute(tx) == ExecuteResult.REJECTED:
            raise InsufficientFunds(f"{self.name} {event_type}: balance book rejected {moves}")

    def _amount(self, value: Decimal) -> Decimal:
        amount = round_down(to_decimal(value), self.decimals)
        if amount <= ZERO:
            raise ValueError(f"Amount must be positive at {self.decimals} decimals, got {value}")
        return amount

    def _require_not_paused(self) -> None:
        if self.paused:
            raise Paused(f"Pool {self.name} is paused")

    # ========================================================================
    # LIQUIDITY PROVIDER OPERATIONS
    # ========================================================================

    def deposit(self, assets: Decimal, receiver: str, depositor: Optional[str] = None) -> Decimal:
        """
        Supply underlying and mint ownership units to `receiver`.

        Args:
            assets: Underlying amount pulled from `depositor`
            receiver: Wallet receiving the ownership units
            depositor: Wallet paying the underlying (defaults to receiver)

        Returns:
            Ownership units minted (rounded down)
        """
        self._require_not_paused()
        if not receiver:
            raise ZeroReceiver("Deposit receiver is empty")
        depositor = depositor or receiver
        assets = self._amount(assets)

        shares = self.convert_to_shares(assets)
        checkpoint = self._checkpoint(assets, assets)

        moves = [Move(assets, self.underlying, depositor, self.name, "deposit")]
        if shares > ZERO:
            moves.append(Move(shares, self.share_symbol, SYSTEM_WALLET, receiver, "deposit"))
        self._execute(moves, "DEPOSIT")
        self._commit(checkpoint)

        self.events.emit("Deposit", self.current_time, self.name,
                         sender=depositor, owner=receiver, assets=assets, shares=shares)
        logger.debug("%s deposit %s by %s -> %s shares to %s", self.name, assets, depositor, shares, receiver)
        return shares

    def withdraw(self, assets: Decimal, receiver: str, owner: str) -> Decimal:
        """
        Deliver `assets` underlying to `receiver`, burning `owner`'s units.

        The withdrawal fee is charged on top: the owner gives up units worth
        assets / (1 - fee), rounded up, and the difference goes to the treasury.

        Returns:
            Ownership units burned
        """
        self._require_not_paused()
        if not receiver:
            raise ZeroReceiver("Withdrawal receiver is empty")
        assets = self._amount(assets)

        gross = self._gross_withdrawal(assets)
        fee = gross - assets
        shares = self._shares_for_assets_up(gross)
        held = self.balance_of(owner)
        if shares > held:
            raise InsufficientFunds(f"{owner} holds {held} {self.share_symbol}, needs {shares}")

        checkpoint = self._checkpoint(-gross, -gross)

        moves = [
            Move(assets, self.underlying, self.name, receiver, "withdraw"),
            Move(shares, self.share_symbol, owner, SYSTEM_WALLET, "withdraw"),
        ]
        if fee > ZERO:
            moves.append(Move(fee, self.underlying, self.name, self.treasury, "withdraw_fee"))
        self._execute(moves, "WITHDRAW")
        self._commit(checkpoint)

        self.events.emit("Withdraw", self.current_time, self.name,
                         receiver=receiver, owner=owner, assets=assets, fee=fee, shares=shares)
        logger.debug("%s withdraw %s (+%s fee) to %s, burned %s from %s",
                     self.name, assets, fee, receiver, shares, owner)
        return shares

    # ========================================================================
    # BORROWER OPERATIONS
    # ========================================================================

    def borrow(self, borrower: str, amount: Decimal, recipient: str) -> None:
        """
        Lend `amount` to `recipient` against `borrower`'s debt line.

        Raises:
            DebtLimitExceeded: aggregate or borrower limit would be exceeded
            CapacityExceeded: post-borrow utilization is above a forbidden U2
            InsufficientFunds: the pool does not hold enough underlying
        """
        self._require_not_paused()
        if not recipient:
            raise ZeroAddress("Borrow recipient is empty")
        amount = self._amount(amount)

        line = self.borrower_debts.get(borrower, DebtLine())
        if self.total_debt.principal + amount > self.total_debt.limit:
            raise DebtLimitExceeded(
                f"Total debt {self.total_debt.principal} + {amount} exceeds limit {self.total_debt.limit}"
            )
        if line.principal + amount > line.limit:
            raise DebtLimitExceeded(
                f"Borrower {borrower} debt {line.principal} + {amount} exceeds limit {line.limit}"
            )

        checkpoint = self._checkpoint(ZERO, -amount, enforce_cap=True)
        self._execute([Move(amount, self.underlying, self.name, recipient, "borrow")], "BORROW")
        self._commit(checkpoint)

        self.total_debt = replace(self.total_debt, principal=self.total_debt.principal + amount)
        self.borrower_debts[borrower] = replace(line, principal=line.principal + amount)

        self.events.emit("Borrow", self.current_time, self.name,
                         borrower=borrower, recipient=recipient, amount=amount)
        logger.debug("%s borrow %s by %s to %s, rate now %s",
                     self.name, amount, borrower, recipient, self.base_interest_rate)

    def repay(
        self,
        borrower: str,
        repaid_amount: Decimal,
        profit: Decimal = ZERO,
        loss: Decimal = ZERO,
        payer: Optional[str] = None,
        payment: Optional[Decimal] = None,
    ) -> RepaymentResult:
        """
        Settle principal returned by the borrowing subsystem.

        The caller has already split the repayment into principal, profit and
        loss. `payment` is the underlying pulled from `payer`: principal,
        interest already counted in expected liquidity, and profit (defaults
        to `repaid_amount + profit`). Profit mints treasury ownership units
        worth `profit`; a loss burns treasury units worth `loss`, clamped to
        what the treasury holds. The shortfall is reported through an
        IncurUncoveredLoss event and the result; a loss never makes the
        repayment fail.

        Raises:
            RepaymentExceedsDebt: repaid_amount exceeds the borrower's principal
        """
        repaid_amount = round_down(to_decimal(repaid_amount), self.decimals)
        profit = round_down(to_decimal(profit), self.decimals)
        loss = round_down(to_decimal(loss), self.decimals)
        payment = repaid_amount + profit if payment is None else round_down(to_decimal(payment), self.decimals)
        if repaid_amount < ZERO or profit < ZERO or loss < ZERO or payment < ZERO:
            raise ValueError("Repayment components must be non-negative")
        if profit > ZERO and loss > ZERO:
            raise ValueError("A repayment cannot carry both profit and loss")
        payer = payer or borrower

        line = self.borrower_debts.get(borrower, DebtLine())
        if repaid_amount > line.principal:
            raise RepaymentExceedsDebt(
                f"Borrower {borrower} owes {line.principal}, repaid {repaid_amount}"
            )

        moves: List[Move] = []
        minted = burned = uncovered = ZERO
        if profit > ZERO:
            minted = self.convert_to_shares(profit)
            if minted > ZERO:
                moves.append(Move(minted, self.share_symbol, SYSTEM_WALLET, self.treasury, "profit"))
        elif loss > ZERO:
            treasury_units = self.balance_of(self.treasury)
            burned = self._shares_for_assets_up(loss)
            if burned > treasury_units:
                uncovered = loss - self.convert_to_assets(treasury_units)
                burned = treasury_units
            if burned > ZERO:
                moves.append(Move(burned, self.share_symbol, self.treasury, SYSTEM_WALLET, "loss"))

        if payment > ZERO:
            moves.append(Move(payment, self.underlying, payer, self.name, "repay"))

        checkpoint = self._checkpoint(profit - loss, payment)
        self._execute(moves, "REPAY")
        self._commit(checkpoint)

        self.total_debt = replace(self.total_debt, principal=self.total_debt.principal - repaid_amount)
        self.borrower_debts[borrower] = replace(line, principal=line.principal - repaid_amount)

        now = self.current_time
        if profit > ZERO:
            self.events.emit("Profit", now, self.name, borrower=borrower, profit=profit, shares=minted)
        if uncovered > ZERO:
            self.events.emit("IncurUncoveredLoss", now, self.name, borrower=borrower, loss=uncovered)
            logger.warning("%s uncovered loss %s from %s (treasury exhausted)", self.name, uncovered, borrower)
        self.events.emit("Repay", now, self.name,
                         borrower=borrower, borrowed_amount=repaid_amount, profit=profit, loss=loss)
        logger.debug("%s repay %s by %s, profit %s, loss %s", self.name, repaid_amount, borrower, profit, loss)
        return RepaymentResult(shares_minted=minted, shares_burned=burned, uncovered_loss=uncovered)

    # ========================================================================
    # QUOTA REVENUE (quota keeper only)
    # ========================================================================

    def _require_quota_keeper(self, caller) -> None:
        if self.quota_keeper is None or caller is not self.quota_keeper:
            raise Unauthorized(f"Only the quota keeper of {self.name} may update quota revenue")

    def _set_quota_revenue(self, new_revenue: Decimal) -> None:
        if new_revenue < ZERO:
            raise ValueError(f"Quota revenue cannot be negative, got {new_revenue}")
        now = self.current_time
        if self.last_quota_revenue_update != now:
            self.expected_liquidity_lu += self._calc_quota_revenue_accrued()
            self.last_quota_revenue_update = now
        self.quota_revenue = new_revenue

    def update_quota_revenue(self, delta: Decimal, caller) -> None:
        """Shift the annual quota revenue by `delta`, folding in revenue accrued so far."""
        self._require_quota_keeper(caller)
        delta = to_decimal(delta)
        if delta == ZERO:
            return
        self._set_quota_revenue(self.quota_revenue + delta)
        logger.debug("%s quota revenue %+f -> %s", self.name, delta, self.quota_revenue)

    def set_quota_revenue(self, value: Decimal, caller) -> None:
        """Replace the annual quota revenue, folding in revenue accrued so far."""
        self._require_quota_keeper(caller)
        self._set_quota_revenue(to_decimal(value))
        logger.debug("%s quota revenue set to %s", self.name, self.quota_revenue)

    # ========================================================================
    # CONFIGURATION
    # ========================================================================
    #
    # Callers are assumed to have passed the authorization layer.

    def set_total_debt_limit(self, limit: Decimal) -> None:
        limit = to_decimal(limit)
        if limit < self.total_debt.principal:
            raise ValueError(f"Limit {limit} is below outstanding principal {self.total_debt.principal}")
        self.total_debt = replace(self.total_debt, limit=limit)
        self.events.emit("SetTotalDebtLimit", self.current_time, self.name, limit=limit)
        logger.info("%s total debt limit set to %s", self.name, limit)

    def set_borrower_debt_limit(self, borrower: str, limit: Decimal) -> None:
        """Open or resize a borrower's debt line."""
        if not borrower:
            raise ZeroAddress("Borrower id is empty")
        limit = to_decimal(limit)
        line = self.borrower_debts.get(borrower, DebtLine())
        if limit < line.principal:
            raise ValueError(f"Limit {limit} is below {borrower}'s outstanding principal {line.principal}")
        self.borrower_debts[borrower] = replace(line, limit=limit)
        self.events.emit("SetCreditManagerDebtLimit", self.current_time, self.name,
                         borrower=borrower, limit=limit)
        logger.info("%s debt limit for %s set to %s", self.name, borrower, limit)

    def set_withdraw_fee(self, fee: Decimal) -> None:
        fee = to_decimal(fee)
        if not (ZERO <= fee <= MAX_WITHDRAW_FEE):
            raise ValueError(f"withdraw fee must be in [0, {MAX_WITHDRAW_FEE}], got {fee}")
        self.withdraw_fee = fee
        self.events.emit("SetWithdrawFee", self.current_time, self.name, fee=fee)
        logger.info("%s withdraw fee set to %s", self.name, fee)

    def set_rate_curve(self, rate_curve: LinearRateCurve) -> None:
        """Swap the rate curve; accrued interest is checkpointed at the old rate first."""
        old_curve = self.rate_curve
        self.rate_curve = rate_curve
        try:
            checkpoint = self._checkpoint()
        except Exception:
            self.rate_curve = old_curve
            raise
        self._commit(checkpoint)
        self.events.emit("SetInterestRateModel", self.current_time, self.name, curve=repr(rate_curve))
        logger.info("%s rate curve set to %r", self.name, rate_curve)

    def set_quota_keeper(self, quota_keeper: 'QuotaKeeper') -> None:
        """Attach the quota keeper and adopt its current aggregate revenue."""
        if quota_keeper is None:
            raise ZeroAddress("Quota keeper is empty")
        if quota_keeper.pool is not self:
            raise ValueError("Quota keeper is attached to a different pool")
        revenue = quota_keeper.pool_quota_revenue()
        self.quota_keeper = quota_keeper
        self._set_quota_revenue(revenue)
        self.events.emit("SetPoolQuotaKeeper", self.current_time, self.name)
        logger.info("%s quota keeper attached, revenue %s", self.name, revenue)

    def set_treasury(self, treasury: str) -> None:
        if not treasury:
            raise ZeroAddress("Treasury wallet is empty")
        self.ledger.ensure_wallet(treasury)
        self.treasury = treasury
        logger.info("%s treasury set to %s", self.name, treasury)

    def pause(self) -> None:
        self.paused = True
        self.events.emit("Paused", self.current_time, self.name)
        logger.info("%s paused", self.name)

    def unpause(self) -> None:
        self.paused = False
        self.events.emit("Unpaused", self.current_time, self.name)
        logger.info("%s unpaused", self.name)

    def __repr__(self) -> str:
        return (
            f"LiquidityPool({self.name}, expected={self.expected_liquidity()}, "
            f"available={self.available_liquidity()}, borrowed={self.total_debt.principal}, "
            f"rate={self.base_interest_rate})"
        )
