"""
test_rate_curve.py - Unit tests for the three-segment borrow rate curve

Tests:
- Parameter validation
- Utilization and segment arithmetic
- Continuity at the breakpoints
- Utilization cap and available_to_borrow
- numpy sampling
"""

import pytest
import numpy as np
from decimal import Decimal

from creditpool import LinearRateCurve, RateCurveParams, CapacityExceeded

from tests.support import standard_curve_params


D = Decimal


class TestRateCurveParams:

    def test_valid_params(self):
        params = standard_curve_params()
        assert params.u1 == D("0.8")
        assert params.is_borrowing_more_u2_forbidden

    def test_non_decimal_inputs_converted(self):
        params = standard_curve_params(u1=0.5, slope1="0.01")
        assert params.u1 == D("0.5")
        assert params.slope1 == D("0.01")

    @pytest.mark.parametrize("u1,u2", [
        (D("0"), D("0.9")),
        (D("0.9"), D("0.8")),
        (D("0.5"), D("1")),
    ])
    def test_invalid_breakpoints(self, u1, u2):
        with pytest.raises(ValueError, match="Breakpoints"):
            standard_curve_params(u1=u1, u2=u2)

    def test_decreasing_slopes_rejected(self):
        with pytest.raises(ValueError, match="non-decreasing"):
            standard_curve_params(slope2=D("0.01"))

    def test_negative_base_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            standard_curve_params(base_rate=D("-0.01"))


class TestRate:

    @pytest.fixture
    def curve(self):
        return LinearRateCurve(standard_curve_params())

    def test_utilization(self, curve):
        assert curve.utilization(D("100"), D("25")) == D("0.75")

    def test_surplus_is_zero_utilization(self, curve):
        assert curve.utilization(D("100"), D("150")) == D("0")
        assert curve.utilization(D("0"), D("0")) == D("0")

    def test_empty_pool_returns_base_rate(self):
        curve = LinearRateCurve(standard_curve_params(base_rate=D("0.01")))
        assert curve.rate(D("0"), D("0")) == D("0.01")

    def test_kink_scenario(self, curve):
        """80% utilization prices at 4%, 90% at 44%."""
        assert curve.rate(D("100"), D("20")) == D("0.04")
        assert curve.rate(D("100"), D("10")) == D("0.44")

    def test_segments(self, curve):
        assert curve.rate(D("100"), D("60")) == D("0.02")
        assert curve.rate(D("100"), D("15")) == D("0.24")
        assert curve.rate_at(D("1")) == D("1.19")

    def test_continuity_at_breakpoints(self, curve):
        eps = D("1e-30")
        for u in (D("0.8"), D("0.9")):
            below = curve.rate_at(u - eps)
            at = curve.rate_at(u)
            assert abs(at - below) < D("1e-25")

    def test_rate_at_clamps_input(self, curve):
        assert curve.rate_at(D("-1")) == D("0")
        assert curve.rate_at(D("2")) == curve.rate_at(D("1"))

    def test_cap_enforced_only_when_asked(self, curve):
        assert curve.rate(D("100"), D("5")) == D("0.815")
        with pytest.raises(CapacityExceeded, match="U2"):
            curve.rate(D("100"), D("5"), enforce_cap=True)

    def test_cap_allows_exactly_u2(self, curve):
        assert curve.rate(D("100"), D("10"), enforce_cap=True) == D("0.44")

    def test_cap_disabled_by_flag(self):
        curve = LinearRateCurve(standard_curve_params(is_borrowing_more_u2_forbidden=False))
        assert curve.rate(D("100"), D("5"), enforce_cap=True) == D("0.815")


class TestAvailableToBorrow:

    def test_room_before_u2(self, curve):
        assert curve.available_to_borrow(D("100"), D("50")) == D("40")

    def test_nothing_at_or_above_u2(self, curve):
        assert curve.available_to_borrow(D("100"), D("10")) == D("0")
        assert curve.available_to_borrow(D("100"), D("5")) == D("0")

    def test_surplus_returns_available(self, curve):
        assert curve.available_to_borrow(D("100"), D("200")) == D("200")

    def test_uncapped_returns_available(self):
        curve = LinearRateCurve(standard_curve_params(is_borrowing_more_u2_forbidden=False))
        assert curve.available_to_borrow(D("100"), D("5")) == D("5")


class TestSample:

    def test_sample_grid(self, curve):
        u, rates = curve.sample(5)
        assert isinstance(u, np.ndarray)
        np.testing.assert_allclose(u, [0.0, 0.25, 0.5, 0.75, 1.0])
        np.testing.assert_allclose(rates, [0.0, 0.0125, 0.025, 0.0375, 1.19])

    def test_sample_is_non_decreasing(self, curve):
        _, rates = curve.sample()
        assert np.all(np.diff(rates) >= 0)

    def test_sample_needs_two_points(self, curve):
        with pytest.raises(ValueError):
            curve.sample(1)
