"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the accrual engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. index_monotonicity.py - Indices never decrease, interest is never negative
2. quota_conservation.py - Position quotas sum to the asset total, within its limit
3. refresh_idempotence.py - Rate refreshes run at most once per epoch
4. atomicity.py - Failed pool operations change nothing
5. conservation.py - Tokens and ownership units are neither created nor lost
6. rate_curve_properties.py - The borrow rate curve is monotone and continuous
7. determinism.py - Identical operation sequences give identical state

These tests use hypothesis for property-based testing.
"""
