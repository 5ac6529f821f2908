"""
Determinism Conformance Tests

INVARIANT: Given identical inputs, a lending system produces identical outputs.

    ∀ inputs I:
        system1.process(I) = system2.process(I)

This guarantees:
- Replaying an operation sequence reproduces every checkpoint
- Simulations are reproducible
- Independent systems never share state
"""

from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import datetime, timedelta
from decimal import Decimal

from creditpool import create_lending_system, PoolError, LedgerError

from tests.support import pool_snapshot


T0 = datetime(2025, 1, 1)


def build_system():
    system = create_lending_system(keeper="tumbler", initial_time=T0)
    system.fund("alice", Decimal("50000"))
    system.fund("cm1", Decimal("5000"))
    system.pool.set_borrower_debt_limit("cm1", Decimal("40000"))
    system.rate_keeper.register_asset("WETH", Decimal("0.07"))
    system.quota_keeper.set_token_limit("WETH", Decimal("20000"))
    system.rate_keeper.refresh_if_due()
    return system


step = st.tuples(
    st.sampled_from(["deposit", "borrow", "repay", "quota", "wait"]),
    st.integers(min_value=1, max_value=9000),
)


def run(system, steps):
    outcomes = []
    pool = system.pool
    for kind, amount in steps:
        amount = Decimal(amount)
        try:
            if kind == "deposit":
                pool.deposit(amount, "alice")
            elif kind == "borrow":
                pool.borrow("cm1", amount, "cm1")
            elif kind == "repay":
                pool.repay("cm1", min(amount, pool.borrower_borrowed("cm1")))
            elif kind == "quota":
                system.quota_keeper.update_quota("account1", "WETH", amount - 4500)
            else:
                system.advance_time(system.current_time + timedelta(minutes=int(amount)))
            outcomes.append("ok")
        except (PoolError, LedgerError, ValueError) as exc:
            outcomes.append(type(exc).__name__)
    return outcomes


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(st.lists(step, min_size=1, max_size=25))
    @settings(max_examples=40, deadline=None)
    def test_identical_sequences_produce_identical_state(self, steps):
        """
        PROPERTY: Two systems processing the same operations reach the same state.
        """
        first, second = build_system(), build_system()
        assert run(first, steps) == run(second, steps)

        assert pool_snapshot(first.pool) == pool_snapshot(second.pool)
        assert first.quota_keeper.token_params == second.quota_keeper.token_params
        assert first.quota_keeper.account_quotas == second.quota_keeper.account_quotas
        assert [e for e in first.events] == [e for e in second.events]
        assert [tx.exec_id for tx in first.ledger.transaction_log] == \
               [tx.exec_id for tx in second.ledger.transaction_log]
