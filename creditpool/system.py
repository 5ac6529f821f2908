"""
system.py - Composition root

Builds one lending system: a balance book, a liquidity pool, its quota keeper
and a rate keeper, wired to each other and to a shared EventLog. Every
component is an explicit instance; nothing is module-global, so tests and
simulations can run any number of independent systems side by side.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
import logging

from .core import DEFAULT_EPOCH_LENGTH_SECONDS, UNLIMITED, ExecuteResult, token, to_decimal
from .events import EventLog
from .ledger import Ledger
from .pool import LiquidityPool, PoolConfig
from .quotas import QuotaKeeper
from .rate_curve import LinearRateCurve, RateCurveParams
from .keepers import GaugeRateKeeper, StakingLedger, TumblerRateKeeper

logger = logging.getLogger(__name__)

KEEPER_GAUGE = "gauge"
KEEPER_TUMBLER = "tumbler"

DEFAULT_RATE_CURVE = RateCurveParams(
    u1=Decimal("0.8"),
    u2=Decimal("0.9"),
    base_rate=Decimal("0"),
    slope1=Decimal("0.04"),
    slope2=Decimal("0.40"),
    slope3=Decimal("0.75"),
)


@dataclass(frozen=True, slots=True)
class LendingSystem:
    """
    Handles to every component of one lending system.

    staking is None when the rate keeper is a tumbler.
    """
    ledger: Ledger
    pool: LiquidityPool
    quota_keeper: QuotaKeeper
    rate_keeper: Union[GaugeRateKeeper, TumblerRateKeeper]
    events: EventLog
    staking: Optional[StakingLedger] = None

    @property
    def current_time(self) -> datetime:
        return self.ledger.current_time

    def advance_time(self, new_time: datetime) -> None:
        """Move the shared clock forward; accrual is lazy, so nothing else runs."""
        self.ledger.advance_time(new_time)

    def fund(self, wallet: str, amount: Decimal, unit_symbol: Optional[str] = None) -> None:
        """Issue tokens (underlying by default) to a wallet, registering it if needed."""
        self.ledger.ensure_wallet(wallet)
        symbol = unit_symbol or self.pool.underlying
        if self.ledger.issue(wallet, symbol, to_decimal(amount)) == ExecuteResult.REJECTED:
            raise ValueError(f"Could not issue {amount} {symbol} to {wallet}")


def create_lending_system(
    name: str = "pool",
    underlying: str = "USDC",
    underlying_decimals: int = 6,
    share_symbol: Optional[str] = None,
    treasury: str = "treasury",
    rate_curve: Optional[RateCurveParams] = None,
    withdraw_fee: Decimal = Decimal("0"),
    total_debt_limit: Decimal = UNLIMITED,
    keeper: str = KEEPER_GAUGE,
    stake_symbol: str = "GEAR",
    epoch_length_seconds: int = DEFAULT_EPOCH_LENGTH_SECONDS,
    initial_time: Optional[datetime] = None,
) -> LendingSystem:
    """
    Build and wire a lending system.

    Args:
        name: Pool name, also its wallet in the balance book
        underlying: Symbol of the lent token (registered here)
        underlying_decimals: Token precision; ownership units use the same
        share_symbol: Ownership unit symbol (default "d" + underlying)
        treasury: Wallet receiving fees and profit units
        rate_curve: Borrow rate curve parameters (default DEFAULT_RATE_CURVE)
        withdraw_fee: Withdrawal fee fraction
        total_debt_limit: Aggregate principal cap
        keeper: KEEPER_GAUGE or KEEPER_TUMBLER
        stake_symbol: Staking token for the gauge (registered here)
        epoch_length_seconds: Rate refresh epoch
        initial_time: Starting time of the shared clock

    Returns:
        LendingSystem with the quota keeper attached to the pool and the
        rate keeper attached to the quota keeper
    """
    if keeper not in (KEEPER_GAUGE, KEEPER_TUMBLER):
        raise ValueError(f"Unknown keeper type {keeper!r}; expected {KEEPER_GAUGE!r} or {KEEPER_TUMBLER!r}")

    events = EventLog()
    ledger = Ledger(name, initial_time)
    ledger.register_unit(token(underlying, underlying, underlying_decimals))

    config = PoolConfig(
        name=name,
        underlying=underlying,
        share_symbol=share_symbol or f"d{underlying}",
        treasury=treasury,
        withdraw_fee=to_decimal(withdraw_fee),
        total_debt_limit=to_decimal(total_debt_limit),
    )
    pool = LiquidityPool(ledger, config, LinearRateCurve(rate_curve or DEFAULT_RATE_CURVE), events)
    quota_keeper = QuotaKeeper(pool, events)
    pool.set_quota_keeper(quota_keeper)

    staking = None
    if keeper == KEEPER_GAUGE:
        ledger.register_unit(token(stake_symbol, stake_symbol, 18))
        staking = StakingLedger(ledger, stake_symbol, epoch_length_seconds=epoch_length_seconds, events=events)
        rate_keeper = GaugeRateKeeper(quota_keeper, staking)
    else:
        rate_keeper = TumblerRateKeeper(quota_keeper, epoch_length_seconds)
    quota_keeper.set_rate_keeper(rate_keeper)

    logger.info("Created lending system %s (%s, %s keeper)", name, underlying, keeper)
    return LendingSystem(
        ledger=ledger,
        pool=pool,
        quota_keeper=quota_keeper,
        rate_keeper=rate_keeper,
        events=events,
        staking=staking,
    )
