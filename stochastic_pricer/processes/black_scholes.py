"""Black-Scholes family of processes.

The generalized Black-Scholes process is expressed on the log of the price:
``drift`` and ``diffusion`` are the coefficients of ``d ln S`` while states
stay in price units, ``apply(S, dx) = S exp(dx)`` and
``displacement(S0, S) = ln(S / S0)``. With a constant volatility the
default ``evolve`` is then the exact log-normal step.
"""

import math

import numpy as np

from ..market import FlatCurve, as_curve
from ..utils import require
from .base import StochasticProcess1D


class GeneralizedBlackScholesProcess(StochasticProcess1D):
    """``d ln S = (r(t) - q(t) - sigma^2 / 2) dt + sigma dW``.

    Parameters
    ----------
    x0 : float
        Spot price, strictly positive.
    risk_free : YieldCurve or float
        Risk-free curve; ``r(t)`` is its instantaneous forward rate.
    dividend_yield : YieldCurve or float
        Dividend (or foreign-rate) curve.
    volatility : float or callable
        Constant volatility, or a local-volatility function ``sigma(t, S)``
        that accepts numpy arrays of prices.
    """

    log_space = True

    def __init__(self, x0, risk_free, dividend_yield, volatility):
        require(x0 > 0.0, "spot must be positive, got %r" % x0)
        if not callable(volatility):
            require(volatility >= 0.0, "negative volatility %r" % volatility)
            volatility = float(volatility)
        self._x0 = float(x0)
        self.risk_free = as_curve(risk_free)
        self.dividend_yield = as_curve(dividend_yield)
        self.volatility = volatility

    @property
    def x0(self):
        return self._x0

    def local_volatility(self, t, x):
        if callable(self.volatility):
            return self.volatility(t, x)
        return self.volatility

    def carry(self, t):
        """r(t) - q(t)."""
        return self.risk_free.forward_rate(t) - self.dividend_yield.forward_rate(t)

    def drift(self, t, x):
        sigma = self.local_volatility(t, x)
        return self.carry(t) - 0.5 * sigma * sigma

    def diffusion(self, t, x):
        return self.local_volatility(t, x)

    def apply(self, x, dx):
        return x * np.exp(dx)

    def displacement(self, x0, x):
        return np.log(x / x0)

    def __repr__(self):
        return "GeneralizedBlackScholesProcess(x0=%r, risk_free=%r, dividend_yield=%r, volatility=%r)" % (
            self._x0, self.risk_free, self.dividend_yield, self.volatility)


def black_scholes_process(x0, risk_free, volatility):
    """Black-Scholes process without dividends."""
    return GeneralizedBlackScholesProcess(x0, risk_free, FlatCurve(0.0), volatility)


def black_scholes_merton_process(x0, risk_free, dividend_yield, volatility):
    """Black-Scholes-Merton process with a continuous dividend yield."""
    return GeneralizedBlackScholesProcess(x0, risk_free, dividend_yield, volatility)


class GeometricBrownianMotionProcess(StochasticProcess1D):
    """Price-level GBM ``dS = mu S dt + sigma S dW``.

    The noise is proportional to the state, so this process cannot drive a
    trinomial lattice; use the generalized Black-Scholes process for that.
    """

    def __init__(self, x0, mu, sigma):
        require(x0 > 0.0, "initial value must be positive, got %r" % x0)
        require(sigma >= 0.0, "negative volatility %r" % sigma)
        self._x0 = float(x0)
        self.mu = float(mu)
        self.sigma = float(sigma)

    @property
    def x0(self):
        return self._x0

    def drift(self, t, x):
        return self.mu * x

    def diffusion(self, t, x):
        return self.sigma * x

    def expectation(self, t, x, dt):
        return x * math.exp(self.mu * dt)


class Merton76Process(StochasticProcess1D):
    """Black-Scholes diffusion with log-normal jumps (compensator only).

    The drift subtracts ``lambda k`` with ``k = exp(m + v^2 / 2) - 1`` so the
    discounted price stays a martingale once jumps are added. Jump arrivals
    themselves are left to the simulation layer.
    """

    log_space = True

    def __init__(self, black_scholes, jump_intensity, log_jump_mean, log_jump_vol):
        require(jump_intensity >= 0.0, "negative jump intensity %r" % jump_intensity)
        require(log_jump_vol >= 0.0, "negative jump volatility %r" % log_jump_vol)
        self.black_scholes = black_scholes
        self.jump_intensity = float(jump_intensity)
        self.log_jump_mean = float(log_jump_mean)
        self.log_jump_vol = float(log_jump_vol)

    @property
    def x0(self):
        return self.black_scholes.x0

    def jump_compensator(self):
        return math.exp(self.log_jump_mean + 0.5 * self.log_jump_vol ** 2) - 1.0

    def drift(self, t, x):
        return self.black_scholes.drift(t, x) - self.jump_intensity * self.jump_compensator()

    def diffusion(self, t, x):
        return self.black_scholes.diffusion(t, x)

    def apply(self, x, dx):
        return self.black_scholes.apply(x, dx)

    def displacement(self, x0, x):
        return self.black_scholes.displacement(x0, x)
