"""
test_core_types.py - Unit tests for core data structures and numeric helpers

Tests:
- Move: creation, validation, immutability
- PendingTransaction / Transaction: construction, contract ids
- Unit: rounding, factories
- Rounding, year fraction and index growth helpers
- Exception hierarchy
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta
from decimal import Decimal

from creditpool import (
    Move, Transaction, Unit, PendingTransaction,
    TransactionOrigin, OriginType, LedgerView, Ledger,
    build_transaction, token, share,
    to_decimal, round_down, round_up, year_fraction, grow_index, calc_accrued_interest,
    RAY, INDEX_DECIMAL_PLACES,
    LedgerError, InsufficientFunds, PoolError, CapacityExceeded, DebtLimitExceeded,
    ZeroAddress, ZeroReceiver, OutOfBounds, Unauthorized,
)

from tests.support import FakeView


T0 = datetime(2025, 1, 1)


def _test_origin() -> TransactionOrigin:
    return TransactionOrigin(origin_type=OriginType.USER_ACTION, source_id="test")


class TestMoveCreation:
    """Tests for Move creation and validation."""

    def test_create_valid_move(self):
        move = Move(Decimal("100"), "USDC", "alice", "bob", "tx_001")
        assert move.source == "alice"
        assert move.dest == "bob"
        assert move.unit_symbol == "USDC"
        assert move.quantity == Decimal("100")
        assert move.contract_id == "tx_001"

    def test_move_is_immutable(self):
        move = Move(Decimal("1"), "USDC", "alice", "bob", "tx_001")
        with pytest.raises(FrozenInstanceError):
            move.quantity = Decimal("2")

    def test_zero_quantity_raises(self):
        with pytest.raises(ValueError, match="positive"):
            Move(Decimal("0"), "USDC", "alice", "bob", "tx_001")

    def test_negative_quantity_raises(self):
        with pytest.raises(ValueError, match="positive"):
            Move(Decimal("-5"), "USDC", "alice", "bob", "tx_001")

    def test_float_quantity_raises(self):
        """Quantities must already be Decimal; floats are not silently converted."""
        with pytest.raises(ValueError, match="Decimal"):
            Move(100.0, "USDC", "alice", "bob", "tx_001")

    def test_infinite_quantity_raises(self):
        with pytest.raises(ValueError, match="finite"):
            Move(Decimal("Infinity"), "USDC", "alice", "bob", "tx_001")

    def test_same_source_and_dest_raises(self):
        with pytest.raises(ValueError, match="different"):
            Move(Decimal("1"), "USDC", "alice", "alice", "tx_001")

    @pytest.mark.parametrize("field", ["source", "dest", "unit_symbol", "contract_id"])
    def test_empty_identifier_raises(self, field):
        kwargs = dict(quantity=Decimal("1"), unit_symbol="USDC", source="alice", dest="bob", contract_id="tx")
        kwargs[field] = "  "
        with pytest.raises(ValueError, match="cannot be empty"):
            Move(**kwargs)


class TestTransactions:
    """Tests for PendingTransaction and Transaction records."""

    def test_build_transaction_uses_view_time(self):
        view = FakeView(time=T0 + timedelta(hours=3))
        pending = build_transaction(view, [Move(Decimal("1"), "USDC", "alice", "bob", "tx")])
        assert pending.timestamp == T0 + timedelta(hours=3)
        assert pending.origin.origin_type == OriginType.USER_ACTION
        assert not pending.is_empty()

    def test_empty_pending_transaction(self):
        pending = PendingTransaction(moves=(), origin=_test_origin(), timestamp=T0)
        assert pending.is_empty()

    def test_transaction_collects_contract_ids(self):
        moves = (
            Move(Decimal("1"), "USDC", "alice", "bob", "deposit"),
            Move(Decimal("1"), "dUSDC", "system", "alice", "deposit"),
            Move(Decimal("1"), "USDC", "bob", "carol", "fee"),
        )
        tx = Transaction(moves, _test_origin(), T0, "exec:1", "test", T0, 0)
        assert tx.contract_ids == frozenset({"deposit", "fee"})

    def test_transaction_requires_moves(self):
        with pytest.raises(ValueError, match="must have moves"):
            Transaction((), _test_origin(), T0, "exec:1", "test", T0, 0)

    def test_origin_repr_includes_event(self):
        origin = TransactionOrigin(OriginType.POOL, "pool", "BORROW")
        assert repr(origin) == "Origin(pool:pool, event=BORROW)"

    def test_ledger_and_fake_view_satisfy_protocol(self):
        assert isinstance(Ledger("x"), LedgerView)
        assert isinstance(FakeView(), LedgerView)


class TestUnits:
    """Tests for Unit rounding and factories."""

    def test_token_factory(self):
        unit = token("USDC", "USD Coin", 6)
        assert unit.unit_type == "TOKEN"
        assert unit.decimal_places == 6
        assert unit.min_balance == Decimal("0")

    def test_share_rounds_down(self):
        unit = share("dUSDC", "Pool share", 2)
        assert unit.round(Decimal("1.239")) == Decimal("1.23")

    def test_no_decimal_places_keeps_value(self):
        unit = Unit("X", "X", "TOKEN")
        assert unit.round(Decimal("1.23456789")) == Decimal("1.23456789")


class TestNumericHelpers:
    """Rounding, time and index helpers."""

    def test_to_decimal_keeps_printed_float_value(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(5) == Decimal("5")

    def test_round_down_and_up(self):
        value = Decimal("1.0000001")
        assert round_down(value, 6) == Decimal("1.000000")
        assert round_up(value, 6) == Decimal("1.000001")

    def test_year_fraction_full_year(self):
        assert year_fraction(T0, T0 + timedelta(days=365)) == Decimal("1")

    def test_year_fraction_none_or_backwards_is_zero(self):
        assert year_fraction(None, T0) == Decimal("0")
        assert year_fraction(T0 + timedelta(days=1), T0) == Decimal("0")

    def test_grow_index_linear(self):
        assert grow_index(RAY, Decimal("0.1"), T0, T0 + timedelta(days=365)) == Decimal("1.1")
        assert grow_index(RAY, Decimal("0.1"), T0, T0 + timedelta(days=182.5)) == Decimal("1.05")

    def test_grow_index_no_time_returns_checkpoint(self):
        index = Decimal("1.234")
        assert grow_index(index, Decimal("0.5"), T0, T0) is index

    def test_grow_index_is_quantized(self):
        grown = grow_index(RAY, Decimal("0.03"), T0, T0 + timedelta(seconds=7))
        assert grown == round_down(grown, INDEX_DECIMAL_PLACES)
        assert grown > RAY

    def test_accrued_interest_from_index_ratio(self):
        assert calc_accrued_interest(Decimal("1000"), Decimal("1.2"), Decimal("1"), 6) == Decimal("200")

    def test_accrued_interest_rounds_up(self):
        interest = calc_accrued_interest(Decimal("1"), Decimal("1.0000000001"), Decimal("1"), 6)
        assert interest == Decimal("0.000001")

    def test_accrued_interest_never_negative(self):
        assert calc_accrued_interest(Decimal("1000"), Decimal("1"), Decimal("1.1"), 6) == Decimal("0")
        assert calc_accrued_interest(Decimal("0"), Decimal("2"), Decimal("1"), 6) == Decimal("0")


class TestExceptionHierarchy:

    def test_families(self):
        assert issubclass(InsufficientFunds, LedgerError)
        assert issubclass(DebtLimitExceeded, CapacityExceeded)
        assert issubclass(CapacityExceeded, PoolError)
        assert issubclass(ZeroReceiver, ZeroAddress)
        assert issubclass(OutOfBounds, PoolError)
        assert issubclass(Unauthorized, PoolError)
        assert not issubclass(PoolError, LedgerError)
