"""Stochastic process contract.

A process describes ``dX = drift(t, X) dt + diffusion(t, X) dW``. The only
mandatory operations are ``size``, ``factors``, ``initial_values``, ``drift``
and ``diffusion``; the discretisation defaults are a first-order Euler step
and concrete processes override them where an exact conditional moment is
known.

Processes are immutable after construction and safe to share.
"""

import abc
import math

import numpy as np

from ..utils import require


class StochasticProcess(abc.ABC):
    """Multi-dimensional process with state ``x`` in R^n driven by m factors."""

    @abc.abstractmethod
    def size(self):
        """State dimension n."""

    def factors(self):
        """Number of independent Brownian drivers m."""
        return self.size()

    @abc.abstractmethod
    def initial_values(self):
        """Initial state as a numpy vector."""

    @abc.abstractmethod
    def drift(self, t, x):
        """Drift vector, shape (n,)."""

    @abc.abstractmethod
    def diffusion(self, t, x):
        """Diffusion matrix, shape (n, m)."""

    def expectation(self, t, x, dt):
        x = np.asarray(x, dtype=float)
        return x + self.drift(t, x) * dt

    def std_deviation(self, t, x, dt):
        return self.diffusion(t, x) * math.sqrt(dt)

    def covariance(self, t, x, dt):
        s = self.std_deviation(t, x, dt)
        return s @ s.T

    def evolve(self, t, x, dt, dw):
        """One step from ``x`` at ``t`` given m independent standard draws ``dw``."""
        dw = np.asarray(dw, dtype=float).reshape(-1)
        require(dw.size == self.factors(), "expected %d draws, got %d" % (self.factors(), dw.size))
        return self.expectation(t, x, dt) + self.std_deviation(t, x, dt) @ dw


class StochasticProcess1D(StochasticProcess):
    """One-dimensional process.

    States are scalars, or numpy arrays of independent states: every method
    broadcasts over the state argument, which is what the lattice builders
    rely on to evaluate a whole layer at once.

    ``apply(x, dx)`` moves a state by a displacement and ``displacement(x0, x)``
    is its inverse. Both are additive here; log-price processes make them
    multiplicative and set ``log_space``. Lattices are laid out in
    displacement space.
    """

    log_space = False

    @property
    @abc.abstractmethod
    def x0(self):
        """Initial state."""

    def size(self):
        return 1

    def factors(self):
        return 1

    def initial_values(self):
        return np.array([self.x0])

    def apply(self, x, dx):
        return x + dx

    def displacement(self, x0, x):
        return x - x0

    def expectation(self, t, x, dt):
        return self.apply(x, self.drift(t, x) * dt)

    def variance(self, t, x, dt):
        sigma = self.diffusion(t, x)
        return sigma * sigma * dt

    def std_deviation(self, t, x, dt):
        return np.sqrt(self.variance(t, x, dt))

    def covariance(self, t, x, dt):
        return self.variance(t, x, dt)

    def evolve(self, t, x, dt, dw):
        return self.apply(self.expectation(t, x, dt), self.std_deviation(t, x, dt) * dw)
