import math

from ..config import REVERSION_EPSILON
from ..utils import require
from .base import StochasticProcess1D


def ou_expectation(x, level, speed, dt):
    """Exact conditional mean ``level + (x - level) exp(-speed dt)``."""
    return level + (x - level) * math.exp(-speed * dt)


def ou_variance(speed, volatility, dt):
    """Exact conditional variance ``sigma^2 (1 - exp(-2 a dt)) / (2 a)``.

    Degenerates to ``sigma^2 dt`` when ``|a| < REVERSION_EPSILON``.
    """
    v2 = volatility * volatility
    if abs(speed) < REVERSION_EPSILON:
        return v2 * dt
    return v2 * -math.expm1(-2.0 * speed * dt) / (2.0 * speed)


class OrnsteinUhlenbeckProcess(StochasticProcess1D):
    """``dx = a (level - x) dt + sigma dW`` with exact Gaussian transitions.

    Parameters
    ----------
    speed : float
        Mean-reversion speed ``a >= 0``.
    volatility : float
        ``sigma >= 0``.
    x0 : float
        Initial value.
    level : float
        Long-run mean.
    """

    def __init__(self, speed, volatility, x0=0.0, level=0.0):
        require(speed >= 0.0, "negative mean-reversion speed %r" % speed)
        require(volatility >= 0.0, "negative volatility %r" % volatility)
        self.speed = float(speed)
        self.volatility = float(volatility)
        self.level = float(level)
        self._x0 = float(x0)

    @property
    def x0(self):
        return self._x0

    def drift(self, t, x):
        return self.speed * (self.level - x)

    def diffusion(self, t, x):
        return self.volatility

    def expectation(self, t, x, dt):
        return ou_expectation(x, self.level, self.speed, dt)

    def variance(self, t, x, dt):
        return ou_variance(self.speed, self.volatility, dt)

    def __repr__(self):
        return "OrnsteinUhlenbeckProcess(speed=%r, volatility=%r, x0=%r, level=%r)" % (
            self.speed, self.volatility, self._x0, self.level)
