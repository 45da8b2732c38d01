import math

import numpy as np
import pytest

import bond_scenario_engine.bonds as bonds_mod
from bond_scenario_engine.bonds import (
    BondParameters,
    BondPricer,
    price_bond,
    yield_from_price,
)
from bond_scenario_engine.cashflows import build_cash_flow_schedule
from bond_scenario_engine.config import DEFAULT_CURVE_POINTS
from bond_scenario_engine.curves import build_interpolant
from bond_scenario_engine.errors import InvalidBondParametersError, YieldConvergenceError
from bond_scenario_engine.yields import YieldSolution


def flat_curve(rate):
    return [(0.0, rate), (5.0, rate), (10.0, rate), (30.0, rate)]


@pytest.fixture(scope="module")
def bond():
    return BondParameters(coupon_rate=5.0, maturity_years=10.0, frequency=2, face_value=100.0)


@pytest.fixture(scope="module")
def curve():
    return build_interpolant(DEFAULT_CURVE_POINTS)


def test_golden_flat_five_percent(bond):
    """
    5% semiannual 10y bond on a flat 5% annual curve: just above par, since
    5% annual compounding is ~4.939% semiannual.
    """
    res = price_bond(bond, flat_curve(5.0))
    assert abs(res.clean_price - 100.0) < 1.0
    assert res.clean_price == pytest.approx(100.4767, abs=5e-3)
    assert abs(res.yield_to_maturity - 5.0) < 0.1
    assert res.yield_to_maturity == pytest.approx(200.0 * (math.sqrt(1.05) - 1.0), abs=1e-6)
    assert 7.7 < res.duration < 8.1
    assert res.accrued_interest == 0.0
    assert res.yield_converged and res.flags == ()


def test_flat_curve_round_trip_annual():
    b = BondParameters(coupon_rate=3.0, maturity_years=7.3, frequency=1, face_value=100.0)
    res = price_bond(b, flat_curve(4.0), elapsed_years=0.4)
    assert res.yield_to_maturity == pytest.approx(4.0, abs=1e-6), "Annual-pay YTM on a flat curve is the curve rate"


@pytest.mark.parametrize("freq", [2, 4])
def test_flat_curve_round_trip_periodic(freq):
    b = BondParameters(coupon_rate=6.0, maturity_years=12.0, frequency=freq, face_value=1000.0)
    res = price_bond(b, flat_curve(4.5))
    expected = freq * ((1.045 ** (1.0 / freq)) - 1.0) * 100.0
    assert res.yield_to_maturity == pytest.approx(expected, abs=1e-6)


@pytest.mark.parametrize("elapsed", [10.0, 10.01, 50.0])
def test_matured_bond(bond, curve, elapsed):
    res = price_bond(bond, curve, elapsed)
    assert (res.clean_price, res.dirty_price, res.accrued_interest) == (100.0, 100.0, 0.0)
    assert (res.yield_to_maturity, res.duration, res.convexity) == (0.0, 0.0, 0.0)
    assert "MATURED" in res.flags


def test_dirty_clean_identity(bond, curve):
    res = price_bond(bond, curve, 0.3)
    assert np.isfinite(res.dirty_price) and np.isfinite(res.clean_price)
    assert abs((res.dirty_price - res.accrued_interest) - res.clean_price) < 1e-12
    assert res.accrued_interest == pytest.approx(0.3 / 0.5 * 2.5)


def test_accrued_zero_on_coupon_date(bond, curve):
    res = price_bond(bond, curve, 2.0)
    assert abs(res.accrued_interest) < 1e-12
    assert abs(res.dirty_price - res.clean_price) < 1e-12


def test_risk_measures_sane(bond, curve):
    res = price_bond(bond, curve)
    assert 0.0 < res.duration < bond.maturity_years
    assert res.convexity > 0.0


def test_higher_curve_lower_price(bond):
    p4 = price_bond(bond, flat_curve(4.0)).dirty_price
    p5 = price_bond(bond, flat_curve(5.0)).dirty_price
    p6 = price_bond(bond, flat_curve(6.0)).dirty_price
    assert p4 > p5 > p6, "Price should fall as rates rise"


def test_zero_coupon_duration_equals_maturity():
    z = BondParameters(coupon_rate=0.0, maturity_years=8.0, frequency=1, face_value=100.0)
    res = price_bond(z, flat_curve(3.0))
    assert res.duration == pytest.approx(8.0, abs=1e-12)
    assert res.dirty_price == pytest.approx(100.0 * 1.03 ** -8.0, abs=1e-10)


def test_value_equal_curves_price_identically(bond):
    a = [list(p) for p in DEFAULT_CURVE_POINTS]
    b = [list(p) for p in DEFAULT_CURVE_POINTS]
    assert price_bond(bond, a, 1.7) == price_bond(bond, b, 1.7)


def test_pricer_matches_function(bond, curve):
    pricer = BondPricer(DEFAULT_CURVE_POINTS)
    for elapsed in (0.0, 0.8, 4.25):
        assert pricer.price(bond, elapsed) == price_bond(bond, curve, elapsed)


def test_pricer_rejects_invalid_bond(curve):
    pricer = BondPricer(curve)
    with pytest.raises(InvalidBondParametersError):
        pricer.price(BondParameters(5.0, 10.0, True, 100.0))
    with pytest.raises(ValueError):
        pricer.price(BondParameters(5.0, 10.0, 2, 100.0), -1.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"frequency": 3},
        {"frequency": 12},
        {"frequency": True},
        {"maturity_years": 0.0},
        {"maturity_years": -1.0},
        {"face_value": 0.0},
        {"face_value": -100.0},
        {"coupon_rate": float("nan")},
    ],
)
def test_invalid_bond_parameters(curve, kwargs):
    params = {"coupon_rate": 5.0, "maturity_years": 10.0, "frequency": 2, "face_value": 100.0}
    params.update(kwargs)
    with pytest.raises(InvalidBondParametersError):
        price_bond(BondParameters(**params), curve)


@pytest.mark.parametrize("elapsed", [-0.5, float("nan"), float("inf")])
def test_invalid_elapsed(bond, curve, elapsed):
    with pytest.raises(ValueError):
        price_bond(bond, curve, elapsed)


def test_non_convergence_flagged_or_raised(bond, curve, monkeypatch):
    def stuck(cash_flows, target_price, frequency):
        return YieldSolution(0.07, 20, False, "newton", "max iterations reached")

    monkeypatch.setattr(bonds_mod, "solve_yield", stuck)

    res = price_bond(bond, curve)
    assert not res.yield_converged
    assert "YIELD_NOT_CONVERGED" in res.flags
    assert res.yield_to_maturity == pytest.approx(7.0)

    with pytest.raises(YieldConvergenceError) as excinfo:
        price_bond(bond, curve, strict=True)
    assert excinfo.value.estimate == pytest.approx(7.0)
    assert excinfo.value.iterations == 20


def test_yield_from_price_par_bond():
    b = BondParameters(coupon_rate=6.0, maturity_years=5.0, frequency=2, face_value=100.0)
    assert yield_from_price(b, 100.0) == pytest.approx(6.0, abs=1e-8)


def test_yield_from_clean_price_round_trip(bond, curve):
    res = price_bond(bond, curve, 1.35)
    ytm = yield_from_price(bond, res.clean_price, 1.35, clean=True)
    assert ytm == pytest.approx(res.yield_to_maturity, abs=1e-8)
    assert yield_from_price(bond, res.dirty_price, 1.35, clean=False) == pytest.approx(ytm, abs=1e-8)


def test_yield_from_price_matured(bond):
    with pytest.raises(ValueError):
        yield_from_price(bond, 100.0, 10.0)


def test_schedule_drives_price(bond, curve):
    sched = build_cash_flow_schedule(bond, 3.1)
    res = price_bond(bond, curve, 3.1)
    dfs = (1 + np.asarray(curve.at(sched.times)) / 100.0) ** -sched.times
    assert res.dirty_price == pytest.approx(float(np.sum(sched.amounts * dfs)), abs=1e-10)
