"""
creditpool - Interest and Quota Accrual Engine

Accounting core of a collateralized lending pool: depositors' expected
liquidity, borrower debt with a utilization-priced base rate, and per-asset
quotas priced by a rate keeper. All accrual is lazy, linear and checkpointed.

Usage:
    from datetime import datetime, timedelta
    from decimal import Decimal
    from creditpool import create_lending_system

    system = create_lending_system(keeper="tumbler", initial_time=datetime(2025, 1, 1))
    system.fund("alice", Decimal("10000"))
    system.pool.deposit(Decimal("10000"), "alice")

    system.pool.set_borrower_debt_limit("cm1", Decimal("5000"))
    system.pool.borrow("cm1", Decimal("4000"), "account1")

    system.rate_keeper.register_asset("WETH", Decimal("0.02"))
    system.quota_keeper.set_token_limit("WETH", Decimal("100000"))
    system.rate_keeper.refresh_if_due()
    system.quota_keeper.update_quota("account1", "WETH", Decimal("3000"))

    system.advance_time(datetime(2026, 1, 1))
    system.pool.expected_liquidity()
"""

__version__ = "0.1.0"

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    ExecuteResult,
    Unit,
    build_transaction,
    token,
    share,
    to_decimal,
    round_down,
    round_up,
    year_fraction,
    grow_index,
    calc_accrued_interest,
    SYSTEM_WALLET,
    SECONDS_PER_YEAR,
    RAY,
    INDEX_DECIMAL_PLACES,
    RATE_DECIMAL_PLACES,
    MAX_WITHDRAW_FEE,
    DEFAULT_EPOCH_LENGTH_SECONDS,
    UNLIMITED,
    # Exceptions
    LedgerError,
    InsufficientFunds,
    UnitNotRegistered,
    WalletNotRegistered,
    PoolError,
    CapacityExceeded,
    DebtLimitExceeded,
    OutOfBounds,
    InsufficientVotes,
    InvalidRate,
    AssetNotQuoted,
    AssetAlreadyQuoted,
    Paused,
    ZeroAddress,
    ZeroReceiver,
    Unauthorized,
    RepaymentExceedsDebt,
)

# Balance book
from .ledger import Ledger

# Events
from .events import PoolEvent, EventLog

# Rate curve
from .rate_curve import RateCurveParams, LinearRateCurve

# Liquidity pool
from .pool import LiquidityPool, PoolConfig, DebtLine, RepaymentResult

# Quotas
from .quotas import QuotaKeeper, TokenQuotaParams, AccountQuota, QuotaUpdate

# Rate keepers
from .keepers import (
    RateKeeper,
    StakingLedger,
    UserStake,
    WITHDRAWAL_DELAY_EPOCHS,
    GaugeRateKeeper,
    QuotaRateParams,
    UserVotes,
    TumblerRateKeeper,
)

# Composition root
from .system import (
    LendingSystem,
    create_lending_system,
    DEFAULT_RATE_CURVE,
    KEEPER_GAUGE,
    KEEPER_TUMBLER,
)
