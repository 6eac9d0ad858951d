"""Hull-White short-rate processes fitted to an initial yield curve.

The short rate is ``r(t) = x(t) + alpha(t)`` with ``x`` a zero-mean OU
process and

    alpha(t) = f(0, t) + sigma^2 / (2 a^2) (1 - exp(-a t))^2,

which makes the model reprice the curve. Equivalently the drift of ``r`` is
``theta(t) - a r`` with

    theta(t) = f'(0, t) + a f(0, t) + sigma^2 / (2 a) (1 - exp(-2 a t)),

``f'`` taken as a forward finite difference of the curve's instantaneous
forward rate.
"""

import math

from ..config import FORWARD_RATE_BUMP, REVERSION_EPSILON
from ..market import as_curve
from ..utils import reversion_factor, require
from .base import StochasticProcess1D
from .ornstein_uhlenbeck import ou_variance


class HullWhiteProcess(StochasticProcess1D):
    """Spot-measure Hull-White process for the short rate itself.

    Parameters
    ----------
    term_structure : YieldCurve
        Initial curve; ``x0`` is its instantaneous forward at 0.
    a : float
        Mean-reversion speed (``a -> 0`` handled by the limiting formulas).
    sigma : float
        Short-rate volatility.
    """

    def __init__(self, term_structure, a, sigma):
        require(a >= 0.0, "negative mean-reversion speed %r" % a)
        require(sigma >= 0.0, "negative volatility %r" % sigma)
        self.term_structure = as_curve(term_structure)
        self.a = float(a)
        self.sigma = float(sigma)

    @property
    def x0(self):
        return self.term_structure.forward_rate(0.0)

    def alpha(self, t):
        """Deterministic shift so that ``r = x + alpha``."""
        b = reversion_factor(self.a, t)
        return self.term_structure.forward_rate(t) + 0.5 * (self.sigma * b) ** 2

    def theta(self, t):
        f = self.term_structure.forward_rate(t)
        f_up = self.term_structure.forward_rate(t + FORWARD_RATE_BUMP)
        f_prime = (f_up - f) / FORWARD_RATE_BUMP
        if abs(self.a) < REVERSION_EPSILON:
            convexity = self.sigma ** 2 * t
        else:
            convexity = self.sigma ** 2 * -math.expm1(-2.0 * self.a * t) / (2.0 * self.a)
        return f_prime + self.a * f + convexity

    def drift(self, t, x):
        return self.theta(t) - self.a * x

    def diffusion(self, t, x):
        return self.sigma

    def expectation(self, t, x, dt):
        decay = math.exp(-self.a * dt)
        return self.alpha(t + dt) + (x - self.alpha(t)) * decay

    def variance(self, t, x, dt):
        return ou_variance(self.a, self.sigma, dt)

    def __repr__(self):
        return "HullWhiteProcess(a=%r, sigma=%r)" % (self.a, self.sigma)


class HullWhiteForwardProcess(StochasticProcess1D):
    """Hull-White dynamics under the T-forward measure.

    The drift gains ``-sigma^2 B(t, T)`` and the conditional mean gains
    ``-M_T(t, t + dt)``; the variance is unchanged.
    """

    def __init__(self, term_structure, a, sigma, forward_measure_time):
        require(forward_measure_time > 0.0, "forward measure time must be positive")
        self.spot = HullWhiteProcess(term_structure, a, sigma)
        self.forward_measure_time = float(forward_measure_time)

    @property
    def x0(self):
        return self.spot.x0

    @property
    def a(self):
        return self.spot.a

    @property
    def sigma(self):
        return self.spot.sigma

    def B(self, t, T):
        return reversion_factor(self.a, T - t)

    def M_T(self, s, t, T):
        """Forward-measure correction of the conditional mean from ``s`` to ``t``.

        ``sigma^2 int_s^t e^{-a (t - u)} B(u, T) du``, written as
        ``sigma^2 (B(t, T) B(s, t) + e^{-a (T - t)} B(s, t)^2 / 2)`` so that no
        difference of exponentials is divided by ``a^2``.
        """
        a = self.a
        elapsed = reversion_factor(a, t - s)
        remaining = reversion_factor(a, T - t)
        return self.sigma ** 2 * (remaining * elapsed + 0.5 * math.exp(-a * (T - t)) * elapsed * elapsed)

    def drift(self, t, x):
        return self.spot.drift(t, x) - self.sigma ** 2 * self.B(t, self.forward_measure_time)

    def diffusion(self, t, x):
        return self.sigma

    def expectation(self, t, x, dt):
        return self.spot.expectation(t, x, dt) - self.M_T(t, t + dt, self.forward_measure_time)

    def variance(self, t, x, dt):
        return self.spot.variance(t, x, dt)
