"""
conftest.py - Shared pytest fixtures for creditpool tests

Provides common fixtures used across unit, conformance and functional tests:
- A balance book with a 6-decimal underlying token
- A rate curve and a bare liquidity pool
- A funded pool with an open borrower debt line
- Fully wired lending systems with a tumbler or a gauge rate keeper
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from creditpool import (
    Ledger, LiquidityPool, PoolConfig, LinearRateCurve,
    create_lending_system,
    token,
)

from tests.support import fund, standard_curve_params


T0 = datetime(2025, 1, 1)
ONE_DAY = timedelta(days=1)


@pytest.fixture
def ledger():
    """Balance book at T0 with USDC (6 decimals) registered."""
    ledger = Ledger("test", T0)
    ledger.register_unit(token("USDC", "USD Coin", 6))
    return ledger


@pytest.fixture
def curve():
    return LinearRateCurve(standard_curve_params())


@pytest.fixture
def pool(ledger, curve):
    """Pool with no deposits; treasury wallet registered."""
    return LiquidityPool(ledger, PoolConfig("pool", "USDC", "dUSDC", "treasury"), curve)


@pytest.fixture
def funded_pool(ledger, pool):
    """Pool holding 1000 USDC deposited by alice; borrower cm1 may draw up to 2000."""
    fund(ledger, "alice", 10000)
    ledger.ensure_wallet("account1")
    pool.deposit(Decimal("1000"), "alice")
    pool.set_borrower_debt_limit("cm1", Decimal("2000"))
    return pool


@pytest.fixture
def tumbler_system():
    """Lending system with a one-day tumbler epoch and 10000 USDC deposited by alice."""
    system = create_lending_system(
        keeper="tumbler",
        initial_time=T0,
        epoch_length_seconds=int(ONE_DAY.total_seconds()),
    )
    system.fund("alice", Decimal("10000"))
    system.pool.deposit(Decimal("10000"), "alice")
    return system


@pytest.fixture
def gauge_system():
    """Lending system with a one-week gauge epoch; bob holds 1000 GEAR."""
    system = create_lending_system(keeper="gauge", initial_time=T0)
    system.fund("bob", Decimal("1000"), "GEAR")
    return system
