import numpy as np

from ..utils import require
from .base import StochasticProcess1D


class SquareRootProcess(StochasticProcess1D):
    """CIR dynamics ``dx = a (b - x) dt + sigma sqrt(x) dW``.

    Discretised with the default Euler step under full truncation: the state
    is floored at zero before it enters the drift or the square root, so the
    diffusion is always defined even when an Euler increment pushed the raw
    state below zero. The negative state itself is not corrected.
    """

    def __init__(self, speed, mean, volatility, x0):
        require(speed >= 0.0, "negative mean-reversion speed %r" % speed)
        require(volatility >= 0.0, "negative volatility %r" % volatility)
        require(x0 >= 0.0, "negative initial value %r" % x0)
        self.speed = float(speed)
        self.mean = float(mean)
        self.volatility = float(volatility)
        self._x0 = float(x0)

    @property
    def x0(self):
        return self._x0

    def drift(self, t, x):
        return self.speed * (self.mean - np.maximum(x, 0.0))

    def diffusion(self, t, x):
        return self.volatility * np.sqrt(np.maximum(x, 0.0))

    def feller_satisfied(self):
        return 2.0 * self.speed * self.mean > self.volatility ** 2

    def __repr__(self):
        return "SquareRootProcess(speed=%r, mean=%r, volatility=%r, x0=%r)" % (
            self.speed, self.mean, self.volatility, self._x0)
