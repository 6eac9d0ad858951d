"""Recombining trinomial tree for additive-noise 1-D processes.

The tree is laid out in displacement space around ``x0``: the node ``j`` of
layer ``i`` sits at ``apply(x0, j dx_i)``. For each layer the spacing is
``dx_{i+1} = v sqrt(3)`` with ``v^2`` the process variance over the step.
Each node's conditional mean ``m`` (in displacement units) is snapped to the
closest node ``k`` of the next layer and the residual ``e = m - k dx``
sets the three probabilities

    p_down = (1 + e^2 / v^2 - e sqrt(3) / v) / 6
    p_mid  = (2 - e^2 / v^2) / 3
    p_up   = (1 + e^2 / v^2 + e sqrt(3) / v) / 6

which sum to one and match the conditional mean and variance exactly.

The construction is only valid when the variance over a step does not
depend on the state, so this is checked when the tree is built.
"""

import logging
import math

import numpy as np

from ..config import ADDITIVE_NOISE_TOLERANCE
from ..utils import require
from .time_grid import TimeGrid

LOGGER = logging.getLogger(__name__)

_SQRT3 = math.sqrt(3.0)


class _Branching:
    """Branching of one layer: middle descendants ``k`` and probabilities."""

    def __init__(self, k, probabilities):
        self.k = k
        self.probabilities = probabilities
        self.j_min = int(k.min()) - 1
        self.j_max = int(k.max()) + 1

    def size(self):
        return self.j_max - self.j_min + 1

    def descendants(self):
        base = self.k - self.j_min - 1
        return np.vstack([base, base + 1, base + 2])


class TrinomialTree:
    """Trinomial tree built from a 1-D process and a time grid.

    Parameters
    ----------
    process : StochasticProcess1D
        Must have additive noise: its step variance may depend on time but
        not on the state. A ``ValueError`` is raised otherwise.
    time_grid : TimeGrid
        Layer times; the grid may be non-uniform.
    """

    branches = 3

    def __init__(self, process, time_grid):
        self.process = process
        self.time_grid = time_grid
        x0 = process.x0
        self.x0 = x0

        self._dx = [0.0]
        self._j_min = [0]
        self._branchings = []

        j_min, j_max = 0, 0
        for i in range(time_grid.steps):
            t = time_grid[i]
            dt = time_grid.dt(i)
            v2 = float(process.variance(t, x0, dt))
            require(v2 > 0.0, "trinomial tree needs a positive step variance at t=%r" % t)
            v = math.sqrt(v2)
            self._check_additive_noise(t, dt, v2, v)
            dx = v * _SQRT3

            js = np.arange(j_min, j_max + 1)
            states = process.apply(x0, js * self._dx[i])
            m = process.displacement(x0, process.expectation(t, states, dt))
            m = np.broadcast_to(np.asarray(m, dtype=float), js.shape)
            k = np.rint(m / dx).astype(int)
            e = m - k * dx
            e2 = e * e / v2
            e3 = e * _SQRT3 / v
            probabilities = np.vstack([
                (1.0 + e2 - e3) / 6.0,
                (2.0 - e2) / 3.0,
                (1.0 + e2 + e3) / 6.0,
            ])
            branching = _Branching(k, probabilities)
            self._branchings.append(branching)
            self._dx.append(dx)
            j_min, j_max = branching.j_min, branching.j_max
            self._j_min.append(j_min)

        LOGGER.debug(
            "Built trinomial tree: %d steps, %d terminal nodes", time_grid.steps, self.size(time_grid.steps)
        )

    @classmethod
    def uniform(cls, process, end, steps):
        return cls(process, TimeGrid.uniform(end, steps))

    def _check_additive_noise(self, t, dt, v2, v):
        for shift in (-3.0 * v, 3.0 * v):
            state = self.process.apply(self.x0, shift)
            other = float(self.process.variance(t, state, dt))
            require(
                abs(other - v2) <= ADDITIVE_NOISE_TOLERANCE * v2,
                "trinomial tree needs state-independent noise: variance %.12g at x0 but %.12g at %.12g"
                % (v2, other, state),
            )

    @property
    def steps(self):
        return self.time_grid.steps

    def size(self, i):
        if i == 0:
            return 1
        return self._branchings[i - 1].size()

    def dx(self, i):
        return self._dx[i]

    def underlyings(self, i):
        js = np.arange(self._j_min[i], self._j_min[i] + self.size(i))
        return np.asarray(self.process.apply(self.x0, js * self._dx[i]), dtype=float)

    def underlying(self, i, index):
        return float(self.process.apply(self.x0, (self._j_min[i] + index) * self._dx[i]))

    def descendants(self, i):
        """Array of shape (3, size(i)) with the next-layer index of each branch."""
        return self._branchings[i].descendants()

    def probabilities(self, i):
        """Array of shape (3, size(i)) with the down/middle/up probabilities."""
        return self._branchings[i].probabilities

    def descendant(self, i, index, branch):
        return int(self._branchings[i].descendants()[branch, index])

    def probability(self, i, index, branch):
        return float(self._branchings[i].probabilities[branch, index])

    def __repr__(self):
        return "TrinomialTree(process=%r, steps=%d)" % (self.process, self.steps)
