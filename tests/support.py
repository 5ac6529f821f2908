"""
support.py - Test helpers shared across creditpool test suites

Provides:
- fund(): issue tokens through the balance book
- standard_curve_params(): the 80% / 90% kink curve used by most tests
- pool_snapshot(): every stored pool field, for atomicity checks
- FakeView: minimal LedgerView for exercising pure functions without a Ledger
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Set

from creditpool import Ledger, LiquidityPool, RateCurveParams, Unit


def fund(ledger: Ledger, wallet: str, amount, symbol: str = "USDC") -> None:
    """Register a wallet if needed and issue tokens to it."""
    ledger.ensure_wallet(wallet)
    ledger.issue(wallet, symbol, Decimal(str(amount)))


def standard_curve_params(**overrides) -> RateCurveParams:
    """U1=80%, U2=90%, slopes 4% / 40% / 75%, no base rate."""
    params = dict(
        u1=Decimal("0.8"),
        u2=Decimal("0.9"),
        base_rate=Decimal("0"),
        slope1=Decimal("0.04"),
        slope2=Decimal("0.40"),
        slope3=Decimal("0.75"),
    )
    params.update(overrides)
    return RateCurveParams(**params)


def pool_snapshot(pool: LiquidityPool) -> dict:
    """Every stored field of a pool, plus its balances, for before/after comparisons."""
    return {
        'expected_liquidity_lu': pool.expected_liquidity_lu,
        'base_interest_index_lu': pool.base_interest_index_lu,
        'base_interest_rate': pool.base_interest_rate,
        'last_base_interest_update': pool.last_base_interest_update,
        'quota_revenue': pool.quota_revenue,
        'last_quota_revenue_update': pool.last_quota_revenue_update,
        'total_debt': pool.total_debt,
        'borrower_debts': dict(pool.borrower_debts),
        'available': pool.available_liquidity(),
        'supply': pool.total_supply(),
        'log_length': len(pool.ledger.transaction_log),
    }


class FakeView:
    """
    Minimal LedgerView implementation for testing pure functions.

    Example:
        view = FakeView(balances={'alice': {'USDC': Decimal("100")}}, time=datetime(2025, 1, 1))
        build_transaction(view, [...])
    """

    def __init__(
        self,
        balances: Optional[Dict[str, Dict[str, Decimal]]] = None,
        time: Optional[datetime] = None,
        units: Optional[Dict[str, Unit]] = None,
    ):
        self._balances = balances or {}
        self._time = time or datetime(2025, 1, 1)
        self._units = units or {}

    @property
    def current_time(self) -> datetime:
        return self._time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        return self._balances.get(wallet_id, {}).get(unit_symbol, Decimal("0"))

    def get_positions(self, unit_symbol: str) -> Dict[str, Decimal]:
        return {
            wallet: balances[unit_symbol]
            for wallet, balances in self._balances.items()
            if balances.get(unit_symbol, Decimal("0")) != 0
        }

    def list_wallets(self) -> Set[str]:
        return set(self._balances)

    def get_unit(self, symbol: str) -> Unit:
        return self._units[symbol]
