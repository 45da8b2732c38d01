from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.interpolate import CubicHermiteSpline

from .config import MONOTONE_RADIUS, STEEPENER_PIVOT, STEEPENER_SPAN
from .errors import InvalidCurveError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurvePoint:
    tenor: float  # years
    rate: float   # percent, e.g. 4.5 = 4.5%


def _coerce_point(p: Any) -> CurvePoint:
    try:
        if isinstance(p, CurvePoint):
            tenor, rate = p.tenor, p.rate
        elif isinstance(p, Mapping):
            tenor, rate = p["tenor"], p["rate"]
        else:
            tenor, rate = p
        tenor, rate = float(tenor), float(rate)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidCurveError(f"Curve point is not a numeric (tenor, rate) pair: {p!r}") from exc

    if not (math.isfinite(tenor) and math.isfinite(rate)):
        raise InvalidCurveError(f"Non-finite curve point: tenor={tenor}, rate={rate}")
    if tenor < 0.0:
        raise InvalidCurveError(f"Negative tenor: {tenor}")
    if rate <= -100.0:
        raise InvalidCurveError(f"Rate {rate}% gives a non-positive discount base.")
    return CurvePoint(tenor, rate)


@dataclass(frozen=True)
class Curve:
    """
    Zero curve held as (tenor, rate) nodes.

    - Rates are annually compounded zero rates in percent.
    - Nodes are sorted by tenor on construction; duplicate tenors are rejected.
    - Value type: two curves with the same nodes compare (and hash) equal.
    """
    points: Tuple[CurvePoint, ...]

    def __post_init__(self):
        pts = sorted((_coerce_point(p) for p in self.points), key=lambda p: p.tenor)
        if len(pts) < 2:
            raise InvalidCurveError(f"Need at least 2 curve points, got {len(pts)}.")

        tenors = np.array([p.tenor for p in pts], dtype=float)
        if np.any(np.diff(tenors) <= 0.0):
            raise InvalidCurveError("Duplicate tenors in curve.")

        object.__setattr__(self, "points", tuple(pts))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def tenors(self) -> np.ndarray:
        return np.array([p.tenor for p in self.points], dtype=float)

    @property
    def rates(self) -> np.ndarray:
        return np.array([p.rate for p in self.points], dtype=float)

    def shifted(self, shift_func: Callable[[float], float]) -> "Curve":
        """New curve with rate(tenor) + shift_func(tenor) at every node (percent points)."""
        return Curve(tuple(CurvePoint(p.tenor, p.rate + float(shift_func(p.tenor))) for p in self.points))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"tenor": self.tenors, "rate": self.rates})


@dataclass(frozen=True, eq=False)
class MonotoneCubicInterpolant:
    """
    Monotone cubic Hermite interpolant (Fritsch-Carlson) over a Curve.

    - Within node range: scipy CubicHermiteSpline on shape-preserving tangents.
    - Outside node range: flat at the boundary rate (no extrapolation of yields).

    Build once per curve with build_interpolant() and pass it to every pricing
    call that uses that curve.
    """
    curve: Curve
    xs: np.ndarray
    ys: np.ndarray
    ks: np.ndarray
    spline: CubicHermiteSpline = field(repr=False)

    def at(self, t):
        """Zero rate (percent) at tenor t. Accepts a scalar or an array of tenors."""
        x = np.asarray(t, dtype=float)
        xs, ys = self.xs, self.ys

        y = self.spline(np.clip(x, xs[0], xs[-1]))
        y = np.where(x <= xs[0], ys[0], np.where(x >= xs[-1], ys[-1], y))

        if y.ndim == 0:
            return float(y)
        return y


CurveLike = Union[Curve, MonotoneCubicInterpolant, pd.DataFrame, Iterable[Any]]


def monotone_tangents(xs: np.ndarray, ys: np.ndarray, radius: float = MONOTONE_RADIUS) -> np.ndarray:
    """
    Fritsch-Carlson tangents.

    Raw tangents average adjacent secants (one-sided at the ends), then every
    interval is corrected in order. A node's tangent is shared by two intervals,
    so all corrections must run before the tangents are used.
    """
    ms = np.diff(ys) / np.diff(xs)

    ks = np.empty(len(xs), dtype=float)
    ks[1:-1] = 0.5 * (ms[:-1] + ms[1:])
    ks[0] = ms[0]
    ks[-1] = ms[-1]

    for i, m in enumerate(ms):
        if m == 0.0:
            ks[i] = 0.0
            ks[i + 1] = 0.0
            continue

        alpha = ks[i] / m
        beta = ks[i + 1] / m
        if alpha < 0.0:
            ks[i] = 0.0
        if beta < 0.0:
            ks[i + 1] = 0.0

        # Rescale uses the unclamped ratios; a clamped tangent stays zero.
        norm = math.hypot(alpha, beta)
        if norm > radius:
            tau = radius / norm
            ks[i] *= tau
            ks[i + 1] *= tau

    return ks


def as_curve(data: CurveLike) -> Curve:
    """Normalise caller input (Curve, interpolant, DataFrame, point sequence) into a Curve."""
    if isinstance(data, Curve):
        return data
    if isinstance(data, MonotoneCubicInterpolant):
        return data.curve
    if isinstance(data, pd.DataFrame):
        if not {"tenor", "rate"}.issubset(data.columns):
            raise InvalidCurveError("Curve DataFrame needs 'tenor' and 'rate' columns.")
        return Curve(tuple(zip(data["tenor"].tolist(), data["rate"].tolist())))
    try:
        points = tuple(data)
    except TypeError as exc:
        raise InvalidCurveError(f"Cannot build a curve from {type(data).__name__}.") from exc
    return Curve(points)


def build_interpolant(curve: CurveLike) -> MonotoneCubicInterpolant:
    curve = as_curve(curve)
    xs = curve.tenors
    ys = curve.rates
    ks = monotone_tangents(xs, ys)

    for arr in (xs, ys, ks):
        arr.setflags(write=False)

    logger.debug("Built monotone interpolant over %d nodes (%.4g..%.4gy)", len(xs), xs[0], xs[-1])
    spline = CubicHermiteSpline(xs, ys, ks, extrapolate=False)
    return MonotoneCubicInterpolant(curve, xs, ys, ks, spline)


def resolve_interpolant(curve: CurveLike) -> MonotoneCubicInterpolant:
    if isinstance(curve, MonotoneCubicInterpolant):
        return curve
    return build_interpolant(curve)


def interpolate_rate(curve: CurveLike, tenor: float) -> float:
    """Zero rate (percent) at `tenor`, flat outside the curve's node range."""
    return resolve_interpolant(curve).at(tenor)


def discount_factors(rates_pct, times):
    """Discrete annual compounding: (1 + r)^-t with r given in percent."""
    return np.power(1.0 + np.asarray(rates_pct, dtype=float) / 100.0, -np.asarray(times, dtype=float))


def curve_report(curve: CurveLike, tenors: Optional[Iterable[float]] = None) -> pd.DataFrame:
    """
    Interpolated rates and discount factors on a tenor grid.

    Default grid: every half-year from 0 to the last node, plus the nodes.
    """
    interp = resolve_interpolant(curve)
    nodes = interp.xs

    if tenors is None:
        grid = np.arange(0.0, nodes[-1] + 0.25, 0.5)
        grid = np.union1d(grid[grid <= nodes[-1]], nodes)
    else:
        grid = np.asarray(sorted(float(t) for t in tenors), dtype=float)

    rates = np.atleast_1d(interp.at(grid))
    dfs = discount_factors(rates, grid)

    return pd.DataFrame(
        {
            "tenor": grid,
            "rate": rates,
            "df": dfs,
            "node": np.isin(grid, nodes),
            "df_positive": dfs > 0,
        }
    )


def curve_from_shifted_rates(curve: CurveLike, shift_func: Callable[[float], float]) -> Curve:
    """Build a new curve by shifting node rates r(t) by shift_func(t) (percent points)."""
    return as_curve(curve).shifted(shift_func)


def shocked_curve_parallel(curve: CurveLike, shift: float) -> Curve:
    """Parallel shift of every node by `shift` percent points."""
    return curve_from_shifted_rates(curve, parallel_shift(shift))


def parallel_shift(shift: float):
    s = float(shift)
    return lambda tenor: s


def parallel_shift_bp(bp: float):
    return parallel_shift(bp / 100.0)


def steepener_shift_bp(bp: float, pivot: float = STEEPENER_PIVOT, span: float = STEEPENER_SPAN):
    """Rotation about `pivot`: moves by bp * (tenor - pivot) / span, long end up."""
    a = bp / 100.0

    def f(tenor: float) -> float:
        return (tenor - pivot) / span * a

    return f


def flattener_shift_bp(bp: float, pivot: float = STEEPENER_PIVOT, span: float = STEEPENER_SPAN):
    return steepener_shift_bp(-bp, pivot, span)
