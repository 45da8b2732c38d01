"""
Bond Scenario Engine

Modules:
- curves: zero curve container + monotone cubic interpolation + curve shifts
- cashflows: remaining coupon/principal schedule + straight-line accrual
- bonds: bond parameters + curve pricing (price, accrued, duration, convexity)
- yields: yield-to-maturity solvers
- attribution: horizon total return + rolldown/duration/shape decomposition
- scenarios: credit spread overlay + scenario curve sets and return grids
- config, errors: defaults and error kinds

Public operations: curves.interpolate_rate, bonds.price_bond,
attribution.compute_total_return.
"""
