"""Gaussian short-rate (GSR) process with piecewise-constant coefficients.

``dx = -a(t) x dt + sigma(t) dW`` with ``a`` and ``sigma`` constant between
consecutive ``times``. Conditional moments are exact: a step is split at
every breakpoint it crosses and the OU transition of each piece is composed.
"""

import bisect
import math

import numpy as np
from scipy import integrate

from ..config import REVERSION_EPSILON
from ..market import as_curve
from ..utils import require
from .base import StochasticProcess1D
from .ornstein_uhlenbeck import ou_variance


class GsrProcess(StochasticProcess1D):
    """Piecewise-constant Gaussian process.

    Parameters
    ----------
    times : sequence of float
        Strictly increasing positive breakpoints ``t_1 < ... < t_N``.
    reversions, volatilities : float or sequence of float
        Values on ``[0, t_1), [t_1, t_2), ..., [t_N, inf)``: either one value
        (constant) or ``N + 1`` values.
    x0 : float
        Initial state.
    term_structure : YieldCurve, optional
        When given, :meth:`short_rate` adds the shift ``phi(t)`` that fits the
        model to this curve.
    """

    def __init__(self, times, reversions, volatilities, x0=0.0, term_structure=None):
        self.times = [float(t) for t in times]
        for i, t in enumerate(self.times):
            require(t > 0.0, "breakpoints must be positive, got %r" % t)
            if i > 0:
                require(t > self.times[i - 1], "breakpoints must be strictly increasing")
        n = len(self.times) + 1
        self.reversions = self._expand(reversions, n, "reversions")
        self.volatilities = self._expand(volatilities, n, "volatilities")
        require(all(a >= 0.0 for a in self.reversions), "negative mean-reversion speed")
        require(all(s >= 0.0 for s in self.volatilities), "negative volatility")
        self._x0 = float(x0)
        self.term_structure = as_curve(term_structure) if term_structure is not None else None

    @staticmethod
    def _expand(values, n, label):
        values = [float(v) for v in np.atleast_1d(values)]
        if len(values) == 1:
            return values * n
        require(len(values) == n, "%s needs 1 or %d values, got %d" % (label, n, len(values)))
        return values

    @property
    def x0(self):
        return self._x0

    def _index(self, t):
        return bisect.bisect_right(self.times, t)

    def reversion(self, t):
        return self.reversions[self._index(t)]

    def volatility(self, t):
        return self.volatilities[self._index(t)]

    def _segments(self, t0, t1):
        """Yield ``(length, a, sigma)`` for each constant piece of [t0, t1]."""
        start = t0
        i = self._index(t0)
        while start < t1:
            end = t1 if i >= len(self.times) else min(t1, self.times[i])
            if end > start:
                yield end - start, self.reversions[i], self.volatilities[i]
            start = end
            i += 1

    def _integrated_reversion(self, t0, t1):
        return sum(h * a for h, a, _ in self._segments(t0, t1))

    def drift(self, t, x):
        return -self.reversion(t) * x

    def diffusion(self, t, x):
        return self.volatility(t)

    def expectation(self, t, x, dt):
        return x * math.exp(-self._integrated_reversion(t, t + dt))

    def variance(self, t, x, dt):
        var = 0.0
        for h, a, sigma in self._segments(t, t + dt):
            var = var * math.exp(-2.0 * a * h) + ou_variance(a, sigma, h)
        return var

    def G(self, s, t):
        """``int_s^t exp(-int_s^u a) du``, the bond loading of a unit shock at ``s``."""
        total = 0.0
        decay = 1.0
        for h, a, _ in self._segments(s, t):
            if abs(a) < REVERSION_EPSILON:
                total += decay * h
            else:
                total += decay * -math.expm1(-a * h) / a
            decay *= math.exp(-a * h)
        return total

    def phi(self, t):
        """Shift ``phi(t)`` with ``r = x + phi`` reproducing the initial curve.

        ``phi(t) = f(0, t) + int_0^t sigma(s)^2 exp(-int_s^t a) G(s, t) ds``,
        integrated numerically across the breakpoints.
        """
        require(self.term_structure is not None, "GSR process has no term structure to fit")
        t = float(t)
        convexity = 0.0
        if t > 0.0:
            points = [p for p in self.times if p < t]

            def integrand(s):
                sigma = self.volatility(s)
                return sigma * sigma * math.exp(-self._integrated_reversion(s, t)) * self.G(s, t)

            convexity, _ = integrate.quad(integrand, 0.0, t, points=points or None, limit=200)
        return self.term_structure.forward_rate(t) + convexity

    def short_rate(self, t, x):
        return x + self.phi(t)

    def __repr__(self):
        return "GsrProcess(times=%r, reversions=%r, volatilities=%r)" % (
            self.times, self.reversions, self.volatilities)
