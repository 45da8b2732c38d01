from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .bonds import BondParameters
    from .curves import CurveLike


@dataclass(frozen=True)
class CashFlow:
    t: float       # years from valuation date
    amount: float  # currency


@dataclass(frozen=True)
class CashFlowSchedule:
    """
    Remaining cash flows of a bond seen from `elapsed_years` after issue.

    An empty `flows` tuple means the bond has matured.
    """
    flows: Tuple[CashFlow, ...]
    accrued_interest: float
    coupon_amount: float
    period_length: float
    time_to_next_coupon: float

    @property
    def matured(self) -> bool:
        return len(self.flows) == 0

    @property
    def times(self) -> np.ndarray:
        return np.array([cf.t for cf in self.flows], dtype=float)

    @property
    def amounts(self) -> np.ndarray:
        return np.array([cf.amount for cf in self.flows], dtype=float)


def coupon_amount(bond: "BondParameters") -> float:
    """Coupon per period in currency units (coupon rate is in percent)."""
    return bond.coupon_rate / 100.0 * bond.face_value / bond.frequency


def build_cash_flow_schedule(bond: "BondParameters", elapsed_years: float = 0.0) -> CashFlowSchedule:
    """
    Remaining coupon/principal flows and accrued interest.

    Coupons sit on a grid anchored at maturity, one period apart. Accrual is
    straight-line over the current period (no day count calendar).
    """
    period_length = 1.0 / bond.frequency
    cpn = coupon_amount(bond)
    remaining = bond.maturity_years - elapsed_years

    if remaining <= 0:
        return CashFlowSchedule((), 0.0, cpn, period_length, 0.0)

    periods_remaining = math.ceil(remaining * bond.frequency)
    time_to_next = remaining - (periods_remaining - 1) * period_length
    time_since_last = period_length - time_to_next

    accrued = (time_since_last / period_length) * cpn

    flows = []
    for i in range(periods_remaining):
        amount = cpn
        if i == periods_remaining - 1:
            amount += bond.face_value
        flows.append(CashFlow(time_to_next + i * period_length, amount))

    return CashFlowSchedule(tuple(flows), accrued, cpn, period_length, time_to_next)


def coupon_times_from_issue(bond: "BondParameters") -> np.ndarray:
    """Payment times (years from issue) of every coupon over the bond's life."""
    sched = build_cash_flow_schedule(bond, 0.0)
    return sched.times


def cashflow_table(
    bond: "BondParameters",
    elapsed_years: float = 0.0,
    curve: Optional["CurveLike"] = None,
) -> pd.DataFrame:
    """
    Tabular view of the remaining schedule.

    With a curve, adds the zero rate, discount factor and present value of
    each flow under the pricer's discrete annual compounding.
    """
    sched = build_cash_flow_schedule(bond, elapsed_years)
    n = len(sched.flows)

    principal = np.zeros(n, dtype=float)
    if n:
        principal[-1] = bond.face_value

    out = pd.DataFrame(
        {
            "period": np.arange(1, n + 1),
            "t": sched.times,
            "coupon": np.full(n, sched.coupon_amount, dtype=float),
            "principal": principal,
            "amount": sched.amounts,
        }
    )

    if curve is not None:
        from .curves import discount_factors, resolve_interpolant

        interp = resolve_interpolant(curve)
        out["zero_rate"] = np.atleast_1d(interp.at(out["t"].to_numpy()))
        out["df"] = discount_factors(out["zero_rate"].to_numpy(), out["t"].to_numpy())
        out["pv"] = out["amount"] * out["df"]

    return out
