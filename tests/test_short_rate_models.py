import math

import numpy as np
import pytest
import QuantLib as ql
from scipy import integrate

from stochastic_pricer.models import BlackKarasinski, CoxIngersollRoss, G2, HullWhite, Vasicek
from stochastic_pricer.utils import integrated_b_product, reversion_factor
from stochastic_pricer.processes import OrnsteinUhlenbeckProcess, SquareRootProcess


def _vasicek_closed_form(a, b, sigma, r, tau):
    B = (1.0 - math.exp(-a * tau)) / a
    lnA = (b - sigma ** 2 / (2 * a * a)) * (B - tau) - sigma ** 2 * B * B / (4 * a)
    return math.exp(lnA - B * r)


def _models(curve):
    return [
        Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.05),
        CoxIngersollRoss(a=0.3, b=0.05, sigma=0.1, r0=0.04),
        HullWhite(curve, a=0.1, sigma=0.01),
        BlackKarasinski(curve, a=0.1, sigma=0.1),
        G2(curve),
    ]


def test_bond_at_maturity_is_one(sloped_curve):
    for model in _models(sloped_curve):
        assert model.discount_bond(3.0, 3.0, 0.04) == 1.0


def test_bond_prices_decrease_with_maturity(sloped_curve):
    for model in _models(sloped_curve):
        prices = [model.discount_bond(1.0, 1.0 + tau, 0.04) for tau in (0.25, 1.0, 5.0, 10.0, 30.0)]
        assert all(0.0 < p <= 1.0 for p in prices)
        assert all(np.diff(prices) < 0.0), type(model).__name__


def test_vasicek_closed_form():
    model = Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.05)
    expected = _vasicek_closed_form(0.1, 0.05, 0.01, 0.05, 5.0)
    assert model.discount_bond(0.0, 5.0, 0.05) == pytest.approx(expected, abs=1e-10)
    assert model.discount_bond(2.0, 7.0, 0.05) == pytest.approx(expected, abs=1e-10)
    ten = model.discount_bond(0.0, 10.0, 0.05)
    assert 0.0 < ten < 1.0
    assert ten == pytest.approx(_vasicek_closed_form(0.1, 0.05, 0.01, 0.05, 10.0), abs=1e-10)


def test_vasicek_matches_quantlib():
    model = Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.05)
    reference = ql.Vasicek(0.05, 0.1, 0.05, 0.01)
    assert model.discount_bond(0.0, 5.0, 0.05) == pytest.approx(reference.discountBond(0.0, 5.0, 0.05), rel=1e-10)


def test_vasicek_zero_reversion_limit():
    model = Vasicek(a=1e-13, b=0.05, sigma=0.01, r0=0.05)
    tau = 4.0
    expected = math.exp(0.01 ** 2 * tau ** 3 / 6.0 - tau * 0.05)
    assert model.discount_bond(0.0, tau, 0.05) == pytest.approx(expected, rel=1e-12)
    nearby = Vasicek(a=1e-5, b=0.05, sigma=0.01, r0=0.05)
    assert nearby.discount_bond(0.0, tau, 0.05) == pytest.approx(expected, rel=1e-5)


@pytest.mark.parametrize("a", [1e-11, 1e-10, 1e-9])
def test_vasicek_tiny_reversion_stays_a_discount_factor(a):
    tau = 10.0
    limit = math.exp(0.01 ** 2 * tau ** 3 / 6.0 - tau * 0.05)
    price = Vasicek(a=a, b=0.05, sigma=0.01, r0=0.05).discount_bond(0.0, tau, 0.05)
    assert 0.0 < price < 1.0
    assert price == pytest.approx(limit, rel=1e-7)


def test_vasicek_dynamics_process():
    model = Vasicek(a=0.2, b=0.06, sigma=0.015, r0=0.03)
    process = model.dynamics_process()
    assert isinstance(process, OrnsteinUhlenbeckProcess)
    assert (process.speed, process.level, process.volatility, process.x0) == (0.2, 0.06, 0.015, 0.03)
    model.set_params([0.4, 0.06, 0.015])
    assert model.dynamics_process().speed == 0.4
    assert model.short_rate_drift(0.0, 0.03) == pytest.approx(0.4 * 0.03)
    assert model.short_rate_diffusion(0.0, 0.03) == pytest.approx(0.015)


def test_vasicek_tree_bond_matches_closed_form():
    model = Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.04)
    closed = model.discount_bond(0.0, 5.0, 0.04)
    assert model.tree_discount_bond(5.0, 200) == pytest.approx(closed, rel=1e-3)


def test_cir_feller_condition():
    assert CoxIngersollRoss(0.3, 0.05, 0.1).feller_satisfied()
    assert not CoxIngersollRoss(0.3, 0.05, 0.5).feller_satisfied()


def test_cir_prices_even_when_feller_fails():
    model = CoxIngersollRoss(0.3, 0.05, 0.5, r0=0.04)
    price = model.discount_bond(0.0, 10.0, 0.04)
    assert 0.0 < price < 1.0
    assert isinstance(model.dynamics_process(), SquareRootProcess)


def test_cir_closed_form():
    a, b, sigma, r = 0.3, 0.05, 0.1, 0.04
    model = CoxIngersollRoss(a, b, sigma, r0=r)
    h = math.sqrt(a * a + 2 * sigma * sigma)
    for tau in (1.0, 5.0, 20.0):
        denominator = 2 * h + (a + h) * (math.exp(h * tau) - 1)
        A = (2 * h * math.exp(0.5 * (a + h) * tau) / denominator) ** (2 * a * b / sigma ** 2)
        B = 2 * (math.exp(h * tau) - 1) / denominator
        assert model.discount_bond(0.0, tau, r) == pytest.approx(A * math.exp(-B * r), rel=1e-10)


def test_cir_long_maturity_is_finite():
    a, b, sigma, r = 5.0, 0.05, 0.1, 0.04
    model = CoxIngersollRoss(a, b, sigma, r0=r)
    h = math.sqrt(a * a + 2 * sigma * sigma)
    # e^{-h tau} vanishes: only the asymptotic terms remain
    for tau in (150.0, 1000.0):
        log_price = 2 * a * b / sigma ** 2 * (math.log(2 * h / (a + h)) + 0.5 * (a - h) * tau) - 2 * r / (a + h)
        price = model.discount_bond(0.0, tau, r)
        assert math.isfinite(price) and 0.0 < price < 1.0
        assert price == pytest.approx(math.exp(log_price), rel=1e-10)


def test_cir_deterministic_limit():
    model = CoxIngersollRoss(0.3, 0.05, 1e-9, r0=0.04)
    B = (1 - math.exp(-0.3 * 5.0)) / 0.3
    expected = math.exp(0.05 * (B - 5.0) - B * 0.04)
    assert model.discount_bond(0.0, 5.0, 0.04) == pytest.approx(expected, rel=1e-9)


def test_hull_white_reprices_initial_curve(sloped_curve):
    model = HullWhite(sloped_curve, a=0.1, sigma=0.01)
    for T in (0.5, 2.0, 10.0, 30.0):
        assert model.discount_bond(0.0, T, model.r0) == pytest.approx(sloped_curve.discount(T), rel=1e-10)


def test_hull_white_matches_quantlib(ql_flat_curve):
    model = HullWhite(ql_flat_curve, a=0.1, sigma=0.01)
    reference = ql.HullWhite(ql_flat_curve.handle(), 0.1, 0.01)
    for t, T, r in ((1.0, 5.0, 0.04), (2.0, 10.0, 0.06)):
        assert model.discount_bond(t, T, r) == pytest.approx(reference.discountBond(t, T, r), rel=1e-9)


def test_hull_white_forward_process(flat_curve):
    model = HullWhite(flat_curve, a=0.1, sigma=0.01)
    fwd = model.forward_process(5.0)
    assert fwd.forward_measure_time == 5.0
    assert fwd.a == 0.1 and fwd.sigma == 0.01


def test_g2_factor_price_reprices_curve(sloped_curve):
    model = G2(sloped_curve, a=0.2, sigma=0.01, b=0.05, eta=0.008, rho=-0.6)
    for T in (1.0, 5.0, 25.0):
        assert model.discount_bond_factors(0.0, T, 0.0, 0.0) == pytest.approx(sloped_curve.discount(T), rel=1e-12)
        assert model.discount_bond(0.0, T, model.phi(0.0)) == pytest.approx(sloped_curve.discount(T), rel=1e-12)


def test_g2_without_second_factor_is_hull_white(ql_flat_curve):
    g2 = G2(ql_flat_curve, a=0.2, sigma=0.01, b=0.05, eta=0.0, rho=0.0)
    hw = HullWhite(ql_flat_curve, a=0.2, sigma=0.01)
    shift = hw.dynamics_process().alpha(1.0)
    assert g2.phi(1.0) == pytest.approx(shift, rel=1e-12)
    assert g2.discount_bond_factors(1.0, 6.0, 0.003, 0.0) == pytest.approx(
        hw.discount_bond(1.0, 6.0, 0.003 + shift), rel=1e-10
    )


def test_g2_integrated_b_product_limits():
    tau = 3.0
    assert integrated_b_product(0.0, 0.0, tau) == pytest.approx(tau ** 3 / 3.0)
    assert integrated_b_product(0.0, 0.4, tau) == pytest.approx(integrated_b_product(1e-7, 0.4, tau), rel=1e-6)
    assert integrated_b_product(0.3, 0.4, tau) == pytest.approx(integrated_b_product(0.4, 0.3, tau))


@pytest.mark.parametrize("k1, k2", [
    (1e-11, 1e-11), (1e-9, 1e-9), (1e-9, 0.4), (0.0, 0.4), (2e-4, 0.4), (5e-3, 2.0),
    (0.09, 0.11), (0.3, 0.4), (0.05, 2.0), (1.5, 2.5),
])
def test_integrated_b_product_matches_quadrature(k1, k2):
    tau = 10.0
    expected, _ = integrate.quad(
        lambda u: reversion_factor(k1, u) * reversion_factor(k2, u), 0.0, tau, epsabs=0.0, epsrel=1e-12
    )
    assert integrated_b_product(k1, k2, tau) == pytest.approx(expected, rel=1e-9)


def test_g2_variance_is_positive_for_slow_reversion(sloped_curve):
    model = G2(sloped_curve, a=1e-9, sigma=0.01, b=1e-9, eta=0.008, rho=-0.6)
    tau = 10.0
    expected = (0.01 ** 2 + 0.008 ** 2 - 2 * 0.6 * 0.01 * 0.008) * tau ** 3 / 3.0
    assert model.V(tau) == pytest.approx(expected, rel=1e-7)
    assert 0.0 < model.discount_bond_factors(0.0, tau, 0.0, 0.0) < 1.0


def test_black_karasinski_curve_approximation(sloped_curve):
    model = BlackKarasinski(sloped_curve, a=0.1, sigma=0.1)
    assert model.discount_bond(0.0, 10.0, 0.9) == pytest.approx(sloped_curve.discount(10.0), rel=1e-12)
    assert model.discount_bond(2.0, 10.0, 0.01) == pytest.approx(
        sloped_curve.discount(10.0) / sloped_curve.discount(2.0), rel=1e-12
    )


def test_black_karasinski_tree_bond_is_close_to_curve(sloped_curve):
    model = BlackKarasinski(sloped_curve, a=0.1, sigma=0.1)
    assert model.tree_discount_bond(10.0, 200) == pytest.approx(sloped_curve.discount(10.0), rel=2e-2)


def test_black_karasinski_short_rate_dynamics(flat_curve):
    model = BlackKarasinski(flat_curve, a=0.1, sigma=0.2)
    assert model.short_rate(0.0, math.log(0.05)) == pytest.approx(0.05)
    assert model.short_rate_diffusion(1.0, 0.05) == pytest.approx(0.01)
    dynamics = model.dynamics_process()
    assert dynamics.x0 == pytest.approx(math.log(0.05))
    assert dynamics.expectation(0.0, dynamics.x0, 2.0) == pytest.approx(dynamics.alpha(2.0))
