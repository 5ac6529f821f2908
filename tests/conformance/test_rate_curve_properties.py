"""
Rate Curve Conformance Tests

INVARIANT: The borrow rate is a continuous, non-decreasing function of
utilization, equal to base_rate at U = 0 and to the sum of base rate and
all slopes at U = 1.
"""

from hypothesis import given, settings, assume
from hypothesis import strategies as st
from decimal import Decimal

from creditpool import LinearRateCurve, RateCurveParams


fraction = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("0.98"), places=4)
slope = st.decimals(min_value=Decimal("0"), max_value=Decimal("2"), places=4)
utilization = st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=6)


@st.composite
def curves(draw):
    u1, u2 = sorted((draw(fraction), draw(fraction)))
    s1, s2, s3 = sorted((draw(slope), draw(slope), draw(slope)))
    base = draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("0.1"), places=4))
    return LinearRateCurve(RateCurveParams(u1, u2, base, s1, s2, s3))


class TestRateCurveProperties:

    @given(curves(), utilization, utilization)
    @settings(max_examples=200)
    def test_monotone(self, curve, a, b):
        """PROPERTY: U_a ≤ U_b ⟹ rate(U_a) ≤ rate(U_b)."""
        low, high = sorted((a, b))
        assert curve.rate_at(low) <= curve.rate_at(high)

    @given(curves())
    @settings(max_examples=100)
    def test_continuous_at_breakpoints(self, curve):
        """PROPERTY: The segments meet at U1 and U2."""
        p = curve.params
        eps = Decimal("1e-30")
        for kink in (p.u1, p.u2):
            assume(kink - eps > 0)
            assert abs(curve.rate_at(kink) - curve.rate_at(kink - eps)) < Decimal("1e-20")

    @given(curves())
    @settings(max_examples=100)
    def test_endpoints(self, curve):
        p = curve.params
        assert curve.rate_at(Decimal("0")) == p.base_rate
        assert curve.rate_at(Decimal("1")) == p.base_rate + p.slope1 + p.slope2 + p.slope3
