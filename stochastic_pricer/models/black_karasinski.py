import math

import numpy as np

from ..config import FORWARD_RATE_BUMP, MATURITY_EPSILON, MIN_SHORT_RATE
from ..parameters import Parameter, PositiveConstraint
from ..processes import StochasticProcess1D, ou_variance
from ..utils import require
from .base import OneFactorModel


class BlackKarasinskiDynamics(StochasticProcess1D):
    """Dynamics of ``y = ln r`` in the Black-Karasinski model.

    ``dy = (theta(t) - a y) dt + sigma dW`` with ``y = alpha(t) + x`` and
    ``x`` a zero-mean OU process. The shift

        alpha(t) = ln f(0, t) - Var[x(t)] / 2

    makes ``E[r(t)] = f(0, t)``; ``theta(t) = alpha'(t) + a alpha(t)`` uses a
    forward finite difference. Forwards are floored at ``MIN_SHORT_RATE``
    before the logarithm.
    """

    def __init__(self, term_structure, a, sigma):
        require(a >= 0.0, "negative mean-reversion speed %r" % a)
        require(sigma >= 0.0, "negative volatility %r" % sigma)
        self.term_structure = term_structure
        self.a = float(a)
        self.sigma = float(sigma)

    @property
    def x0(self):
        return self.alpha(0.0)

    def alpha(self, t):
        forward = max(self.term_structure.forward_rate(t), MIN_SHORT_RATE)
        return math.log(forward) - 0.5 * ou_variance(self.a, self.sigma, t)

    def theta(self, t):
        h = FORWARD_RATE_BUMP
        return (self.alpha(t + h) - self.alpha(t)) / h + self.a * self.alpha(t)

    def drift(self, t, x):
        return self.theta(t) - self.a * x

    def diffusion(self, t, x):
        return self.sigma

    def expectation(self, t, x, dt):
        return self.alpha(t + dt) + (x - self.alpha(t)) * math.exp(-self.a * dt)

    def variance(self, t, x, dt):
        return ou_variance(self.a, self.sigma, dt)


class BlackKarasinski(OneFactorModel):
    """Black-Karasinski model ``d ln r = (theta(t) - a ln r) dt + sigma dW``.

    Parameters are ``[a, sigma]``, both positive.

    Notes
    -----
    There is no closed-form bond price. :meth:`discount_bond` returns the
    initial curve's forward discount ``P(0, T) / P(0, t)`` and ignores the
    short rate and the model's volatility: it is an approximation kept for
    the common bond-pricing interface. The model price of ``P(0, T)`` is
    :meth:`tree_discount_bond`, computed on the model's trinomial tree.
    """

    def __init__(self, term_structure, a=0.1, sigma=0.1):
        require(term_structure is not None, "Black-Karasinski needs an initial yield curve")
        super().__init__(
            [
                Parameter(a, PositiveConstraint(), "a"),
                Parameter(sigma, PositiveConstraint(), "sigma"),
            ],
            term_structure,
        )

    @property
    def a(self):
        return self._arguments[0].value

    @property
    def sigma(self):
        return self._arguments[1].value

    def discount_bond(self, t, maturity, rate):
        if maturity - t <= MATURITY_EPSILON:
            return 1.0
        curve = self.term_structure
        return math.exp(curve.log_discount(maturity) - curve.log_discount(t))

    def short_rate(self, t, x):
        return np.exp(x)

    def short_rate_drift(self, t, r):
        y = math.log(max(r, MIN_SHORT_RATE))
        dynamics = self.dynamics_process()
        return r * (dynamics.drift(t, y) + 0.5 * self.sigma ** 2)

    def short_rate_diffusion(self, t, r):
        return self.sigma * r

    def dynamics_process(self):
        return BlackKarasinskiDynamics(self.term_structure, self.a, self.sigma)

    def __repr__(self):
        return "BlackKarasinski(a=%r, sigma=%r)" % (self.a, self.sigma)
