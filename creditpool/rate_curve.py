"""
rate_curve.py - Three-segment linear borrow rate curve

Maps pool utilization to an annual borrow rate:

    U = (expected - available) / expected        (0 when expected <= available)

    [0,  U1]  base + slope1 * U / U1
    [U1, U2]  base + slope1 + slope2 * (U - U1) / (U2 - U1)
    [U2, 1 ]  base + slope1 + slope2 + slope3 * (U - U2) / (1 - U2)

The curve is continuous at both breakpoints. Optionally, borrowing that would
push utilization above U2 can be forbidden; the check is only applied when the
caller asks for it (new borrows), so plain rate reads never fail.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

import numpy as np

from .core import CapacityExceeded, to_decimal


ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True, slots=True)
class RateCurveParams:
    """
    Immutable curve parameters. All values are fractions of 1.

    Invariants (checked at construction):
        0 < U1 <= U2 < 1
        0 <= slope1 <= slope2 <= slope3
        base_rate >= 0
    """
    u1: Decimal
    u2: Decimal
    base_rate: Decimal
    slope1: Decimal
    slope2: Decimal
    slope3: Decimal
    is_borrowing_more_u2_forbidden: bool = True

    def __post_init__(self):
        for name in ('u1', 'u2', 'base_rate', 'slope1', 'slope2', 'slope3'):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))
        if not (ZERO < self.u1 <= self.u2 < ONE):
            raise ValueError(f"Breakpoints must satisfy 0 < U1 <= U2 < 1, got U1={self.u1}, U2={self.u2}")
        if self.base_rate < ZERO or self.slope1 < ZERO:
            raise ValueError("Base rate and slopes must be non-negative")
        if not (self.slope1 <= self.slope2 <= self.slope3):
            raise ValueError(
                f"Slopes must be non-decreasing, got {self.slope1}, {self.slope2}, {self.slope3}"
            )


class LinearRateCurve:
    """
    Stateless rate curve built from RateCurveParams.

    Example:
        curve = LinearRateCurve(RateCurveParams(
            u1=Decimal("0.8"), u2=Decimal("0.9"), base_rate=Decimal("0"),
            slope1=Decimal("0.04"), slope2=Decimal("0.40"), slope3=Decimal("0.75"),
        ))
        curve.rate(Decimal("100"), Decimal("20"))   # Decimal("0.04")
    """

    def __init__(self, params: RateCurveParams):
        self.params = params

    @staticmethod
    def utilization(expected_liquidity: Decimal, available_liquidity: Decimal) -> Decimal:
        """Fraction of expected liquidity lent out; 0 on a liquidity surplus."""
        if expected_liquidity <= available_liquidity or expected_liquidity <= ZERO:
            return ZERO
        return (expected_liquidity - available_liquidity) / expected_liquidity

    def rate_at(self, utilization: Decimal) -> Decimal:
        """Borrow rate for a utilization in [0, 1]. Never raises."""
        p = self.params
        u = min(max(to_decimal(utilization), ZERO), ONE)
        if u < p.u1:
            return p.base_rate + p.slope1 * u / p.u1
        if u < p.u2:
            return p.base_rate + p.slope1 + p.slope2 * (u - p.u1) / (p.u2 - p.u1)
        return p.base_rate + p.slope1 + p.slope2 + p.slope3 * (u - p.u2) / (ONE - p.u2)

    def rate(
        self,
        expected_liquidity: Decimal,
        available_liquidity: Decimal,
        enforce_cap: bool = False,
    ) -> Decimal:
        """
        Annual borrow rate for the given pool liquidity.

        Raises:
            CapacityExceeded: enforce_cap is set, the curve forbids borrowing
                above U2 and utilization is above U2.
        """
        u = self.utilization(expected_liquidity, available_liquidity)
        if enforce_cap and self.params.is_borrowing_more_u2_forbidden and u > self.params.u2:
            raise CapacityExceeded(
                f"Utilization {u:.6f} above U2={self.params.u2} is forbidden"
            )
        return self.rate_at(u)

    def available_to_borrow(self, expected_liquidity: Decimal, available_liquidity: Decimal) -> Decimal:
        """
        Remaining room before utilization reaches U2 when the cap is
        configured, otherwise the whole available liquidity.
        """
        if (
            not self.params.is_borrowing_more_u2_forbidden
            or expected_liquidity < available_liquidity
            or expected_liquidity <= ZERO
        ):
            return available_liquidity
        u = self.utilization(expected_liquidity, available_liquidity)
        if u >= self.params.u2:
            return ZERO
        return (self.params.u2 - u) * expected_liquidity

    def sample(self, n_points: int = 200) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluate the curve on an even utilization grid for analysis/plotting.

        Returns:
            (utilization, borrow_rate) float arrays of length n_points
        """
        if n_points < 2:
            raise ValueError("n_points must be at least 2")
        grid = np.linspace(0.0, 1.0, n_points)
        rates = np.array([float(self.rate_at(Decimal(str(float(u))))) for u in grid])
        return grid, rates

    def __repr__(self) -> str:
        p = self.params
        return (
            f"LinearRateCurve(U1={p.u1}, U2={p.u2}, base={p.base_rate}, "
            f"slopes=({p.slope1}, {p.slope2}, {p.slope3}))"
        )
