from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from .bonds import BondParameters, check_years, price_bond, validate_bond
from .cashflows import coupon_amount, coupon_times_from_issue
from .curves import CurveLike, resolve_interpolant, shocked_curve_parallel

logger = logging.getLogger(__name__)

COMPONENTS = (
    "price_return_component",
    "coupon_return_component",
    "reinvestment_return_component",
    "rolldown_return_component",
    "duration_return_component",
    "convexity_shape_return_component",
)


@dataclass(frozen=True)
class TotalReturnResult:
    """
    Horizon total return and its decomposition.

    Prices and income are in currency; returns and components are percent of
    the start dirty price. rolldown + duration + convexity_shape components
    telescope to the price component.
    """
    start_price_dirty: float
    end_price_dirty: float
    coupon_income: float
    reinvestment_income: float
    total_return_abs: float
    total_return_annualized: float

    price_return_component: float
    coupon_return_component: float
    reinvestment_return_component: float

    rolldown_return_component: float
    duration_return_component: float
    convexity_shape_return_component: float

    rolldown_price_dirty: float = float("nan")
    parallel_price_dirty: float = float("nan")
    parallel_shift: float = 0.0  # percent points applied to the start curve
    flags: Tuple[str, ...] = ()

    def components(self) -> pd.Series:
        return pd.Series({name: getattr(self, name) for name in COMPONENTS}, name="pct_of_start_dirty")


def coupon_income(bond: BondParameters, reinvest_curve: CurveLike, horizon_years: float) -> Tuple[float, float]:
    """
    (coupons received, reinvestment income) over (0, horizon].

    Each coupon is compounded to the horizon at the reinvestment curve's zero
    rate for the remaining time (discrete annual compounding).
    """
    interp = resolve_interpolant(reinvest_curve)
    cpn = coupon_amount(bond)

    times = coupon_times_from_issue(bond)
    paid = times[(times > 0) & (times <= horizon_years)]

    total_coupons = cpn * len(paid)

    to_reinvest = horizon_years - paid
    to_reinvest = to_reinvest[to_reinvest > 0]
    if len(to_reinvest) == 0:
        return total_coupons, 0.0

    r = np.atleast_1d(interp.at(to_reinvest)) / 100.0
    future_values = cpn * np.power(1.0 + r, to_reinvest)
    return total_coupons, float(np.sum(future_values - cpn))


def compute_total_return(
    bond: BondParameters,
    curve_t0: CurveLike,
    curve_t1: CurveLike,
    horizon_years: float,
) -> TotalReturnResult:
    """
    Total return over the horizon, with the price move split into

    - rolldown: horizon price on the unchanged start curve minus start price
    - duration: parallel move of the start curve by the change in the zero rate
      at the bond's remaining maturity
    - convexity/shape: what remains after the parallel move
    """
    validate_bond(bond)
    horizon_years = check_years("horizon_years", horizon_years)

    i0 = resolve_interpolant(curve_t0)
    i1 = resolve_interpolant(curve_t1)
    c0 = i0.curve

    start = price_bond(bond, i0, 0.0)
    end = price_bond(bond, i1, horizon_years)
    start_px = start.dirty_price
    end_px = end.dirty_price

    total_coupons, reinvestment = coupon_income(bond, i1, horizon_years)

    rolldown = price_bond(bond, i0, horizon_years)
    rolldown_px = rolldown.dirty_price

    remaining = bond.maturity_years - horizon_years
    parallel_px = rolldown_px
    shift = 0.0
    parallel_flags: Tuple[str, ...] = ()
    if remaining > 0:
        shift = i1.at(remaining) - i0.at(remaining)
        parallel = price_bond(bond, shocked_curve_parallel(c0, shift), horizon_years)
        parallel_px = parallel.dirty_price
        parallel_flags = parallel.flags

    rolldown_diff = rolldown_px - start_px
    duration_diff = parallel_px - rolldown_px
    shape_diff = end_px - parallel_px
    logger.debug(
        "Decomposition: start=%s rolldown=%s parallel=%s end=%s shift=%s",
        start_px, rolldown_px, parallel_px, end_px, shift,
    )

    total_abs = (end_px + total_coupons + reinvestment - start_px) / start_px
    annualized = total_abs
    if horizon_years > 1:
        annualized = (1 + total_abs) ** (1 / horizon_years) - 1

    flags = []
    for f in start.flags + end.flags + rolldown.flags + parallel_flags:
        if f != "MATURED" and f not in flags:
            flags.append(f)
    if "MATURED" in end.flags:
        flags.append("MATURED_BEFORE_HORIZON")

    return TotalReturnResult(
        start_price_dirty=start_px,
        end_price_dirty=end_px,
        coupon_income=total_coupons,
        reinvestment_income=reinvestment,
        total_return_abs=total_abs * 100,
        total_return_annualized=annualized * 100,
        price_return_component=(end_px - start_px) / start_px * 100,
        coupon_return_component=total_coupons / start_px * 100,
        reinvestment_return_component=reinvestment / start_px * 100,
        rolldown_return_component=rolldown_diff / start_px * 100,
        duration_return_component=duration_diff / start_px * 100,
        convexity_shape_return_component=shape_diff / start_px * 100,
        rolldown_price_dirty=rolldown_px,
        parallel_price_dirty=parallel_px,
        parallel_shift=shift,
        flags=tuple(flags),
    )
