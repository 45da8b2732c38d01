"""Yield-to-maturity solvers (Newton-Raphson, with a bracketed brentq alternative)."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

import numpy as np
from scipy.optimize import brentq

from .cashflows import CashFlow, CashFlowSchedule
from .config import YIELD_BRACKET, YIELD_INITIAL_GUESS, YIELD_MAX_ITER, YIELD_TOL
from .errors import YieldConvergenceError

logger = logging.getLogger(__name__)

CashFlows = Union[CashFlowSchedule, Iterable[CashFlow], Iterable[Tuple[float, float]]]


@dataclass(frozen=True)
class YieldSolution:
    yield_: float      # decimal, 0.05 = 5%
    iterations: int
    converged: bool
    method: str
    reason: str = ""


def _as_arrays(cash_flows: CashFlows) -> Tuple[np.ndarray, np.ndarray]:
    if isinstance(cash_flows, CashFlowSchedule):
        return cash_flows.times, cash_flows.amounts

    times, amounts = [], []
    for cf in cash_flows:
        if isinstance(cf, CashFlow):
            t, amount = cf.t, cf.amount
        else:
            t, amount = cf
        times.append(float(t))
        amounts.append(float(amount))
    return np.array(times, dtype=float), np.array(amounts, dtype=float)


def periodic_pv(y: float, times: np.ndarray, amounts: np.ndarray, frequency: int) -> float:
    """PV at flat yield y compounded `frequency` times a year: sum CF * (1 + y/f)^(-t*f)."""
    return float(np.sum(amounts * np.power(1.0 + y / frequency, -times * frequency)))


def solve_yield(
    cash_flows: CashFlows,
    target_price: float,
    frequency: int,
    *,
    initial_guess: float = YIELD_INITIAL_GUESS,
    max_iter: int = YIELD_MAX_ITER,
    tol: float = YIELD_TOL,
) -> YieldSolution:
    """
    Newton-Raphson on f(y) = sum CF_i (1 + y/f)^(-t_i f) - target.

    No step clamping. Stops early, unconverged, when the derivative is exactly
    zero or the discount base 1 + y/f leaves the positive reals; the last
    finite iterate is returned as the estimate.
    """
    times, amounts = _as_arrays(cash_flows)
    y = float(initial_guess)

    for iteration in range(max_iter):
        base = 1.0 + y / frequency
        if not (math.isfinite(y) and base > 0.0):
            return YieldSolution(y, iteration, False, "newton", "discount base non-positive")

        periods = times * frequency
        f = float(np.sum(amounts * np.power(base, -periods))) - target_price
        df = float(-np.sum(amounts * times * np.power(base, -periods - 1)))
        logger.debug("Newton iter %s: y=%s f=%s f'=%s", iteration, y, f, df)

        if abs(f) < tol:
            return YieldSolution(y, iteration, True, "newton")
        if df == 0.0:
            logger.debug("Zero derivative; aborting Newton at iter %s", iteration)
            return YieldSolution(y, iteration, False, "newton", "zero derivative")

        y_new = y - f / df
        if not math.isfinite(y_new):
            return YieldSolution(y, iteration, False, "newton", "non-finite step")
        y = y_new

    return YieldSolution(y, max_iter, False, "newton", "max iterations reached")


def solve_yield_bracketed(
    cash_flows: CashFlows,
    target_price: float,
    frequency: int,
    bracket: Tuple[float, float] = YIELD_BRACKET,
    xtol: float = 1e-14,
) -> YieldSolution:
    """
    brentq over a decimal yield bracket.

    Raises YieldConvergenceError when the bracket does not contain a sign change.
    """
    times, amounts = _as_arrays(cash_flows)

    lo, hi = bracket
    lo = max(lo, -frequency + 1e-9)

    def residual(y: float) -> float:
        return periodic_pv(y, times, amounts, frequency) - target_price

    fa, fb = residual(lo), residual(hi)
    if fa * fb > 0:
        raise YieldConvergenceError(
            f"Yield not bracketed in [{lo}, {hi}] for target price {target_price}.",
            reason="not bracketed",
        )

    root, info = brentq(residual, lo, hi, xtol=xtol, maxiter=300, full_output=True)
    return YieldSolution(float(root), int(info.iterations), bool(info.converged), "brentq")


def solve_yield_robust(cash_flows: CashFlows, target_price: float, frequency: int) -> YieldSolution:
    """Newton first; brentq over YIELD_BRACKET when Newton does not converge."""
    newton = solve_yield(cash_flows, target_price, frequency)
    if newton.converged:
        return newton

    logger.debug("Newton failed (%s); falling back to brentq", newton.reason)
    return solve_yield_bracketed(cash_flows, target_price, frequency)
