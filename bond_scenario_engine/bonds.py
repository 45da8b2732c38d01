from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .cashflows import CashFlowSchedule, build_cash_flow_schedule
from .config import SUPPORTED_FREQUENCIES
from .curves import CurveLike, MonotoneCubicInterpolant, discount_factors, resolve_interpolant
from .errors import DegenerateDivisionError, InvalidBondParametersError, YieldConvergenceError
from .yields import solve_yield, solve_yield_robust

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BondParameters:
    coupon_rate: float      # percent
    maturity_years: float
    frequency: int = 2      # payments per year
    face_value: float = 100.0


@dataclass(frozen=True)
class BondResult:
    clean_price: float
    dirty_price: float
    accrued_interest: float
    yield_to_maturity: float  # percent
    duration: float           # Macaulay, years
    convexity: float
    yield_converged: bool = True
    flags: Tuple[str, ...] = ()


def validate_bond(bond: BondParameters) -> None:
    if isinstance(bond.frequency, bool) or bond.frequency not in SUPPORTED_FREQUENCIES:
        raise InvalidBondParametersError(f"Supported frequencies: {SUPPORTED_FREQUENCIES}, got {bond.frequency}.")
    for name in ("coupon_rate", "maturity_years", "face_value"):
        value = getattr(bond, name)
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)) or not math.isfinite(value):
            raise InvalidBondParametersError(f"{name} must be a finite number, got {value!r}.")
    if bond.maturity_years <= 0:
        raise InvalidBondParametersError(f"maturity_years must be positive, got {bond.maturity_years}.")
    if bond.face_value <= 0:
        raise InvalidBondParametersError(f"face_value must be positive, got {bond.face_value}.")


def check_years(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite non-negative number of years, got {value}.")
    return value


def matured_result(bond: BondParameters) -> BondResult:
    return BondResult(
        clean_price=bond.face_value,
        dirty_price=bond.face_value,
        accrued_interest=0.0,
        yield_to_maturity=0.0,
        duration=0.0,
        convexity=0.0,
        flags=("MATURED",),
    )


def _price_schedule(
    bond: BondParameters,
    sched: CashFlowSchedule,
    interp: MonotoneCubicInterpolant,
    strict: bool,
) -> BondResult:
    t = sched.times
    cfs = sched.amounts

    # Curve discounting is discrete annual regardless of coupon frequency.
    dfs = discount_factors(interp.at(t), t)
    pv = cfs * dfs

    dirty = float(np.sum(pv))
    if dirty == 0.0:
        raise DegenerateDivisionError("Dirty price is zero; duration/convexity undefined.")

    clean = dirty - sched.accrued_interest
    duration = float(np.sum(t * pv)) / dirty

    sol = solve_yield(sched, dirty, bond.frequency)
    flags: List[str] = []
    if not sol.converged:
        if strict:
            raise YieldConvergenceError(
                f"Yield did not converge after {sol.iterations} iterations ({sol.reason}).",
                estimate=sol.yield_ * 100.0,
                iterations=sol.iterations,
                reason=sol.reason,
            )
        logger.warning("Yield did not converge (%s); returning estimate %.6f", sol.reason, sol.yield_)
        flags.append("YIELD_NOT_CONVERGED")

    # Flat-yield adjustment on a curve-discounted price.
    convexity = float(np.sum(t * (t + 1) * pv)) / (dirty * (1 + sol.yield_ / bond.frequency) ** 2)

    return BondResult(
        clean_price=clean,
        dirty_price=dirty,
        accrued_interest=sched.accrued_interest,
        yield_to_maturity=sol.yield_ * 100.0,
        duration=duration,
        convexity=convexity,
        yield_converged=sol.converged,
        flags=tuple(flags),
    )


def price_bond(
    bond: BondParameters,
    curve: CurveLike,
    elapsed_years: float = 0.0,
    *,
    strict: bool = False,
) -> BondResult:
    """
    Price a bond `elapsed_years` after issue against a zero curve.

    `curve` may be a prebuilt interpolant; pass one when pricing repeatedly
    against the same curve.

    With strict=True a non-converging yield raises YieldConvergenceError;
    otherwise the Newton estimate is returned and flagged.
    """
    validate_bond(bond)
    elapsed_years = check_years("elapsed_years", elapsed_years)
    interp = resolve_interpolant(curve)

    sched = build_cash_flow_schedule(bond, elapsed_years)
    if sched.matured:
        return matured_result(bond)

    return _price_schedule(bond, sched, interp, strict)


def yield_from_price(
    bond: BondParameters,
    price: float,
    elapsed_years: float = 0.0,
    clean: bool = True,
) -> float:
    """YTM (percent) implied by a quoted price on the bond's own remaining schedule."""
    validate_bond(bond)
    elapsed_years = check_years("elapsed_years", elapsed_years)

    sched = build_cash_flow_schedule(bond, elapsed_years)
    if sched.matured:
        raise ValueError("Bond has matured; no yield to solve.")

    target = float(price) + (sched.accrued_interest if clean else 0.0)
    return solve_yield_robust(sched, target, bond.frequency).yield_ * 100.0


class BondPricer:
    """Prices bonds against one curve, building its interpolant once."""

    def __init__(self, curve: CurveLike, strict: bool = False):
        self.interpolant = resolve_interpolant(curve)
        self.strict = strict

    @property
    def curve(self):
        return self.interpolant.curve

    def price(self, bond: BondParameters, elapsed_years: float = 0.0) -> BondResult:
        return price_bond(bond, self.interpolant, elapsed_years, strict=self.strict)
