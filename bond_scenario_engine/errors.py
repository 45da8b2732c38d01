from __future__ import annotations

from typing import Optional


class InvalidCurveError(ValueError):
    """Curve points cannot support interpolation (too few, non-finite, duplicated)."""


class InvalidBondParametersError(ValueError):
    """Bond terms outside the supported domain."""


class YieldConvergenceError(RuntimeError):
    """
    Raised when the yield solver fails to meet its tolerance.

    The best-effort estimate is kept on the exception so callers can still
    display a (flagged) number.
    """

    def __init__(self, message: str, estimate: Optional[float] = None, iterations: int = 0, reason: str = ""):
        super().__init__(message)
        self.estimate = estimate
        self.iterations = iterations
        self.reason = reason


class DegenerateDivisionError(ZeroDivisionError):
    """A price used as a denominator is zero."""
