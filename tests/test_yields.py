import numpy as np
import pytest

from bond_scenario_engine.cashflows import CashFlow
from bond_scenario_engine.errors import YieldConvergenceError
from bond_scenario_engine.yields import (
    periodic_pv,
    solve_yield,
    solve_yield_bracketed,
    solve_yield_robust,
)


@pytest.fixture(scope="module")
def par_flows():
    # 3y annual 5% par bond
    return [(1.0, 5.0), (2.0, 5.0), (3.0, 105.0)]


def test_newton_par_bond(par_flows):
    sol = solve_yield(par_flows, 100.0, 1)
    assert sol.converged and sol.method == "newton"
    assert sol.yield_ == pytest.approx(0.05, abs=1e-12)


def test_newton_accepts_cash_flow_objects(par_flows):
    flows = [CashFlow(t, a) for t, a in par_flows]
    sol = solve_yield(flows, 95.0, 1)
    assert sol.converged
    assert periodic_pv(sol.yield_, np.array([1.0, 2.0, 3.0]), np.array([5.0, 5.0, 105.0]), 1) == pytest.approx(95.0, abs=1e-8)
    assert sol.yield_ > 0.05, "Discount price implies yield above coupon"


def test_zero_derivative_stops_unconverged():
    sol = solve_yield([(0.0, 100.0)], 50.0, 2)
    assert not sol.converged
    assert sol.reason == "zero derivative"
    assert sol.yield_ == pytest.approx(0.05), "Estimate is the last iterate"


def test_iteration_cap_reported(par_flows):
    sol = solve_yield(par_flows, 80.0, 1, max_iter=1)
    assert not sol.converged
    assert sol.iterations == 1
    assert sol.reason == "max iterations reached"


def test_divergent_step_reported():
    sol = solve_yield([(10.0, 100.0)], 1e6, 1)
    assert not sol.converged
    assert sol.reason == "discount base non-positive"


def test_bracketed_matches_newton(par_flows):
    sol = solve_yield_bracketed(par_flows, 97.0, 1)
    newton = solve_yield(par_flows, 97.0, 1)
    assert sol.converged and sol.method == "brentq"
    assert sol.yield_ == pytest.approx(newton.yield_, abs=1e-10)


def test_bracketed_raises_when_not_bracketed(par_flows):
    with pytest.raises(YieldConvergenceError):
        solve_yield_bracketed(par_flows, -10.0, 1)


def test_robust_falls_back_to_brentq():
    sol = solve_yield_robust([(10.0, 100.0)], 1e6, 1)
    assert sol.method == "brentq" and sol.converged
    assert periodic_pv(sol.yield_, np.array([10.0]), np.array([100.0]), 1) == pytest.approx(1e6, rel=1e-8)
    assert sol.yield_ == pytest.approx(10 ** -0.4 - 1.0, abs=1e-10)
