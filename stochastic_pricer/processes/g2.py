import math

import numpy as np

from ..config import REVERSION_EPSILON
from ..market import as_curve
from ..utils import as_state, correlation_factor, reversion_factor, require
from .base import StochasticProcess
from .ornstein_uhlenbeck import ou_variance


def _cross_variance(a, b, dt):
    """``int_0^dt exp(-(a + b) u) du``, the covariance kernel of two OU factors."""
    k = a + b
    if abs(k) < REVERSION_EPSILON:
        return dt
    return -math.expm1(-k * dt) / k


class G2Process(StochasticProcess):
    """Two-factor Gaussian process behind the G2++ model.

    ``dx = -a x dt + sigma dW1``, ``dy = -b y dt + eta dW2`` with
    ``d<W1, W2> = rho dt``; the short rate is ``x + y + phi(t)``.
    Conditional mean and covariance are exact.
    """

    def __init__(self, a, sigma, b, eta, rho, term_structure=None):
        require(a >= 0.0 and b >= 0.0, "negative mean-reversion speed")
        require(sigma >= 0.0 and eta >= 0.0, "negative volatility")
        self._factor = correlation_factor(rho)
        self.a = float(a)
        self.sigma = float(sigma)
        self.b = float(b)
        self.eta = float(eta)
        self.rho = float(rho)
        self.term_structure = as_curve(term_structure) if term_structure is not None else None

    def size(self):
        return 2

    def initial_values(self):
        return np.zeros(2)

    def drift(self, t, x):
        x, y = as_state(x, 2)
        return np.array([-self.a * x, -self.b * y])

    def diffusion(self, t, x):
        return np.array([[self.sigma], [self.eta]]) * self._factor

    def expectation(self, t, x, dt):
        x, y = as_state(x, 2)
        return np.array([x * math.exp(-self.a * dt), y * math.exp(-self.b * dt)])

    def covariance(self, t, x, dt):
        vx = ou_variance(self.a, self.sigma, dt)
        vy = ou_variance(self.b, self.eta, dt)
        cxy = self.rho * self.sigma * self.eta * _cross_variance(self.a, self.b, dt)
        return np.array([[vx, cxy], [cxy, vy]])

    def std_deviation(self, t, x, dt):
        cov = self.covariance(t, x, dt)
        sx = math.sqrt(cov[0, 0])
        if sx == 0.0:
            return np.array([[0.0, 0.0], [0.0, math.sqrt(cov[1, 1])]])
        lower = cov[1, 0] / sx
        return np.array([[sx, 0.0], [lower, math.sqrt(max(cov[1, 1] - lower * lower, 0.0))]])

    def phi(self, t):
        """Deterministic shift reproducing the initial curve."""
        require(self.term_structure is not None, "G2 process has no term structure to fit")
        ba = reversion_factor(self.a, t)
        bb = reversion_factor(self.b, t)
        return (
            self.term_structure.forward_rate(t)
            + 0.5 * (self.sigma * ba) ** 2
            + 0.5 * (self.eta * bb) ** 2
            + self.rho * self.sigma * self.eta * ba * bb
        )

    def short_rate(self, t, x):
        x, y = as_state(x, 2)
        return x + y + self.phi(t)

    def __repr__(self):
        return "G2Process(a=%r, sigma=%r, b=%r, eta=%r, rho=%r)" % (
            self.a, self.sigma, self.b, self.eta, self.rho)
