from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Dict, Iterable, Mapping, Optional, Union

import pandas as pd

from .attribution import compute_total_return
from .bonds import BondParameters
from .config import SPREAD_PRESETS_BP
from .curves import (
    Curve,
    CurveLike,
    CurvePoint,
    as_curve,
    build_interpolant,
    curve_from_shifted_rates,
    flattener_shift_bp,
    parallel_shift_bp,
    steepener_shift_bp,
)

logger = logging.getLogger(__name__)

SpreadLike = Union[str, Mapping[float, float], Iterable]


def spread_table_bp(spread: SpreadLike) -> Dict[float, float]:
    """Spread per tenor in bp, from a preset name, a {tenor: bp} mapping, or (tenor, bp) pairs."""
    if isinstance(spread, str):
        try:
            spread = SPREAD_PRESETS_BP[spread.upper()]
        except KeyError:
            raise ValueError(f"Unknown spread preset {spread!r}; choose from {sorted(SPREAD_PRESETS_BP)}.") from None

    if isinstance(spread, Mapping):
        return {float(t): float(s) for t, s in spread.items()}

    out: Dict[float, float] = {}
    for p in spread:
        if isinstance(p, CurvePoint):
            out[p.tenor] = p.rate
        elif isinstance(p, Mapping):
            out[float(p["tenor"])] = float(p["rate"])
        else:
            t, s = p
            out[float(t)] = float(s)
    return out


def add_credit_spread(benchmark: CurveLike, spread: SpreadLike) -> Curve:
    """
    Benchmark curve plus an additive credit spread.

    Spreads are quoted in bp at the benchmark's tenors; a tenor without a
    spread quote contributes nothing.
    """
    table = spread_table_bp(spread)
    return curve_from_shifted_rates(benchmark, lambda tenor: table.get(tenor, 0.0) / 100.0)


SHIFT_KINDS = ("parallel", "steepener", "flattener", "custom")


def apply_shift(curve: CurveLike, kind: str, amount_bp: float = 0.0) -> Curve:
    """
    Named curve move in bp: parallel, steepener or flattener (rotation about
    the 5y pivot), or custom, which returns the curve unchanged for hand edits.
    """
    kind = kind.lower()
    base = as_curve(curve)
    if kind == "parallel":
        return curve_from_shifted_rates(base, parallel_shift_bp(amount_bp))
    if kind == "steepener":
        return curve_from_shifted_rates(base, steepener_shift_bp(amount_bp))
    if kind == "flattener":
        return curve_from_shifted_rates(base, flattener_shift_bp(amount_bp))
    if kind == "custom":
        return base
    raise ValueError(f"Unknown shift kind {kind!r}; choose from {SHIFT_KINDS}.")


def standard_scenario_curves(curve_t0: CurveLike) -> Dict[str, Curve]:
    base = as_curve(curve_t0)
    return {
        "UNCHANGED": base,
        "PAR_-50bp": apply_shift(base, "parallel", -50),
        "PAR_-25bp": apply_shift(base, "parallel", -25),
        "PAR_+25bp": apply_shift(base, "parallel", +25),
        "PAR_+50bp": apply_shift(base, "parallel", +50),
        "STEEPENER_25bp": apply_shift(base, "steepener", 25),
        "FLATTENER_25bp": apply_shift(base, "flattener", 25),
    }


def run_horizon_scenarios(
    bond: BondParameters,
    curve_t0: CurveLike,
    horizon_years: float,
    scenarios: Optional[Mapping[str, CurveLike]] = None,
) -> pd.DataFrame:
    """
    Total-return decomposition of one bond under several horizon curves.

    One row per scenario; return columns are percent of start dirty price.
    """
    base = as_curve(curve_t0)
    if scenarios is None:
        scenarios = standard_scenario_curves(base)

    i0 = build_interpolant(base)

    rows = []
    for name, curve_t1 in scenarios.items():
        res = compute_total_return(bond, i0, curve_t1, horizon_years)
        row = {"scenario": name, "horizon_years": horizon_years}
        row.update(asdict(res))
        row["flags"] = "|".join(res.flags)
        rows.append(row)

    logger.debug("Ran %d horizon scenarios at %sy", len(rows), horizon_years)
    return pd.DataFrame(rows)


def run_rate_horizon_grid(
    bond: BondParameters,
    curve_t0: CurveLike,
    horizons: Iterable[float] = (0.5, 1.0, 2.0, 3.0),
    rate_shocks_bp: Iterable[float] = (-50, -25, 0, 25, 50),
) -> pd.DataFrame:
    """Annualized total return for every (parallel shock, horizon) pair."""
    base = as_curve(curve_t0)
    i0 = build_interpolant(base)

    rows = []
    for r_bp in rate_shocks_bp:
        i1 = build_interpolant(curve_from_shifted_rates(base, parallel_shift_bp(r_bp)))

        for h in horizons:
            res = compute_total_return(bond, i0, i1, h)
            rows.append(
                {
                    "rate_shock_bp": r_bp,
                    "horizon_years": h,
                    "total_return_abs": res.total_return_abs,
                    "total_return_annualized": res.total_return_annualized,
                    "price_return_component": res.price_return_component,
                    "income_return_component": res.coupon_return_component + res.reinvestment_return_component,
                }
            )

    out = pd.DataFrame(rows)
    return out.sort_values(["rate_shock_bp", "horizon_years"]).reset_index(drop=True)
