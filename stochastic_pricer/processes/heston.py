"""Heston and Bates stochastic-volatility processes.

State is ``(S, v)``. Both use the default Euler step; the variance is floored
at zero (full truncation) before it is read by the drift or enters a square
root.
"""

import logging
import math

import numpy as np

from ..market import as_curve
from ..utils import as_state, correlation_factor, require
from .base import StochasticProcess

LOGGER = logging.getLogger(__name__)


class HestonProcess(StochasticProcess):
    """Heston model under the risk-neutral measure.

    ``dS = (r - q) S dt + sqrt(v) S dW1``,
    ``dv = kappa (theta - v) dt + sigma sqrt(v) dW2``, ``d<W1, W2> = rho dt``.

    Parameters
    ----------
    s0, v0 : float
        Initial spot (positive) and variance (non-negative).
    risk_free, dividend_yield : YieldCurve or float
        Curves whose instantaneous forwards give ``r(t)`` and ``q(t)``.
    kappa, theta, sigma : float
        Variance mean-reversion speed, long-run variance, vol-of-vol.
    rho : float
        Spot/variance correlation in [-1, 1].
    """

    def __init__(self, s0, v0, risk_free, dividend_yield, kappa, theta, sigma, rho):
        require(s0 > 0.0, "spot must be positive, got %r" % s0)
        require(v0 >= 0.0, "negative initial variance %r" % v0)
        require(kappa >= 0.0, "negative mean-reversion speed %r" % kappa)
        require(theta >= 0.0, "negative long-run variance %r" % theta)
        require(sigma >= 0.0, "negative vol-of-vol %r" % sigma)
        self._factor = correlation_factor(rho)
        self.s0 = float(s0)
        self.v0 = float(v0)
        self.risk_free = as_curve(risk_free)
        self.dividend_yield = as_curve(dividend_yield)
        self.kappa = float(kappa)
        self.theta = float(theta)
        self.sigma = float(sigma)
        self.rho = float(rho)
        if not self.feller_satisfied():
            LOGGER.debug(
                "Feller condition violated: 2*kappa*theta=%.6g <= sigma^2=%.6g",
                2.0 * self.kappa * self.theta, self.sigma ** 2,
            )

    def size(self):
        return 2

    def initial_values(self):
        return np.array([self.s0, self.v0])

    def feller_satisfied(self):
        return 2.0 * self.kappa * self.theta > self.sigma ** 2

    def drift(self, t, x):
        s, v = as_state(x, 2)
        v = max(v, 0.0)
        carry = self.risk_free.forward_rate(t) - self.dividend_yield.forward_rate(t)
        return np.array([carry * s, self.kappa * (self.theta - v)])

    def diffusion(self, t, x):
        s, v = as_state(x, 2)
        vol = math.sqrt(max(v, 0.0))
        scale = np.array([[vol * s], [vol * self.sigma]])
        return scale * self._factor

    def __repr__(self):
        return (
            "HestonProcess(s0=%r, v0=%r, kappa=%r, theta=%r, sigma=%r, rho=%r)"
            % (self.s0, self.v0, self.kappa, self.theta, self.sigma, self.rho)
        )


class BatesProcess(StochasticProcess):
    """Heston with log-normal jumps in the spot, as a thin decorator.

    The diffusion is Heston's; the spot drift subtracts ``lambda k S`` with
    ``k = exp(delta + nu^2 / 2) - 1``, ``delta`` the mean and ``nu`` the
    volatility of the log jump size. Poisson arrivals are not generated here.
    """

    def __init__(self, heston, jump_intensity, log_jump_mean, log_jump_vol):
        require(jump_intensity >= 0.0, "negative jump intensity %r" % jump_intensity)
        require(log_jump_vol >= 0.0, "negative jump volatility %r" % log_jump_vol)
        self.heston = heston
        self.jump_intensity = float(jump_intensity)
        self.log_jump_mean = float(log_jump_mean)
        self.log_jump_vol = float(log_jump_vol)

    @classmethod
    def create(cls, s0, v0, risk_free, dividend_yield, kappa, theta, sigma, rho,
               jump_intensity, log_jump_mean, log_jump_vol):
        heston = HestonProcess(s0, v0, risk_free, dividend_yield, kappa, theta, sigma, rho)
        return cls(heston, jump_intensity, log_jump_mean, log_jump_vol)

    def size(self):
        return 2

    def initial_values(self):
        return self.heston.initial_values()

    def jump_compensator(self):
        return math.exp(self.log_jump_mean + 0.5 * self.log_jump_vol ** 2) - 1.0

    def drift(self, t, x):
        mu = self.heston.drift(t, x)
        if self.jump_intensity == 0.0:
            return mu
        s = as_state(x, 2)[0]
        mu[0] -= self.jump_intensity * self.jump_compensator() * s
        return mu

    def diffusion(self, t, x):
        return self.heston.diffusion(t, x)
