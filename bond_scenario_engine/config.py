from __future__ import annotations

# Coupon frequencies (payments per year) accepted by the pricer.
SUPPORTED_FREQUENCIES = (1, 2, 4)

# Newton-Raphson yield solver
YIELD_INITIAL_GUESS = 0.05
YIELD_MAX_ITER = 20
YIELD_TOL = 1e-8

# Decimal bracket for the brentq fallback solver
YIELD_BRACKET = (-0.99, 1.0)

# Fritsch-Carlson monotonicity region radius
MONOTONE_RADIUS = 3.0

# Steepener / flattener pivot tenor and span (years)
STEEPENER_PIVOT = 5.0
STEEPENER_SPAN = 10.0

# Benchmark zero curve (tenor in years, rate in percent)
DEFAULT_CURVE_POINTS = (
    (0.0, 4.35),
    (2.0, 4.10),
    (5.0, 4.25),
    (10.0, 4.50),
    (20.0, 4.80),
    (30.0, 4.95),
)

# Credit spread curves in basis points, same tenor grid as the benchmark
SPREAD_PRESETS_BP = {
    "BMARK": ((0.0, 0.0), (2.0, 0.0), (5.0, 0.0), (10.0, 0.0), (20.0, 0.0), (30.0, 0.0)),
    "AA": ((0.0, 30.0), (2.0, 45.0), (5.0, 60.0), (10.0, 75.0), (20.0, 85.0), (30.0, 90.0)),
    "A": ((0.0, 50.0), (2.0, 70.0), (5.0, 90.0), (10.0, 110.0), (20.0, 125.0), (30.0, 130.0)),
    "BBB": ((0.0, 85.0), (2.0, 110.0), (5.0, 135.0), (10.0, 150.0), (20.0, 165.0), (30.0, 175.0)),
}
