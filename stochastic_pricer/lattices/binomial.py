"""Recombining binomial trees.

All variants are built on a uniform grid from a 1-D process evaluated at
``(0, x0)``: ``drift`` and ``variance`` are read in displacement units, which
for the Black-Scholes family means the log of the price. Node ``j`` of layer
``i`` (``j = 0..i`` up moves) sits at ``apply(x0, offset(i, j))``.

Two families:

- additive trees move by a fixed displacement (Jarrow-Rudd, Cox-Ross-Rubinstein,
  additive equal-probability, Trigeorgis);
- multiplicative trees are parameterised by up/down price multipliers (Tian,
  Leisen-Reimer, Joshi4) and only accept log-space processes.

Leisen-Reimer and Joshi4 are centred on a strike and force an odd number of
steps.
"""

import logging
import math

import numpy as np

from ..config import PROBABILITY_TOLERANCE
from ..utils import require
from .time_grid import TimeGrid

LOGGER = logging.getLogger(__name__)


def peizer_pratt_inversion(z, n):
    """Peizer-Pratt method 2 inversion of the normal distribution for ``n`` steps."""
    require(n % 2 == 1, "Peizer-Pratt inversion needs an odd number of steps, got %d" % n)
    result = z / (n + 1.0 / 3.0 + 0.1 / (n + 1.0))
    result = math.exp(-result * result * (n + 1.0 / 6.0))
    sign = 1.0 if z > 0.0 else -1.0
    return 0.5 + sign * math.sqrt(0.25 * (1.0 - result))


def _joshi_up_probability(k, dj):
    alpha = dj / math.sqrt(8.0)
    alpha2 = alpha * alpha
    alpha3 = alpha * alpha2
    alpha5 = alpha3 * alpha2
    alpha7 = alpha5 * alpha2
    beta = -0.375 * alpha - alpha3
    gamma = (5.0 / 6.0) * alpha5 + (13.0 / 12.0) * alpha3 + (25.0 / 128.0) * alpha
    delta = -0.1025 * alpha - 0.9285 * alpha3 - 1.43 * alpha5 - 0.5 * alpha7
    rootk = math.sqrt(k)
    p = 0.5
    p += alpha / rootk
    p += beta / (k * rootk)
    p += gamma / (k * k * rootk)
    p += delta / (k * k * k * rootk)
    return p


class BinomialTree:
    """Recombining binomial tree.

    Parameters
    ----------
    process : StochasticProcess1D
        Additive variants accept any 1-D process; ``tian``,
        ``leisen_reimer`` and ``joshi4`` place nodes at log multipliers and
        require a log-space process (``process.log_space``).
    end : float or TimeGrid
        Horizon of the tree, or a uniform grid that fixes both the horizon
        and the number of steps.
    steps : int
        Number of time steps when ``end`` is a float (bumped to the next odd
        number for the strike-centred variants).
    variant : str
        One of :attr:`VARIANTS`.
    strike : float, optional
        Required by ``leisen_reimer`` and ``joshi4``.
    """

    VARIANTS = (
        "jarrow_rudd",
        "cox_ross_rubinstein",
        "additive_eqp",
        "trigeorgis",
        "tian",
        "leisen_reimer",
        "joshi4",
    )
    MULTIPLICATIVE_VARIANTS = ("tian", "leisen_reimer", "joshi4")
    branches = 2

    def __init__(self, process, end, steps=None, variant="cox_ross_rubinstein", strike=None):
        require(variant in self.VARIANTS, "unknown binomial variant %r" % variant)
        if variant in self.MULTIPLICATIVE_VARIANTS:
            require(
                getattr(process, "log_space", False),
                "%s tree needs a log-space process, got %r" % (variant, process),
            )
        if isinstance(end, TimeGrid):
            dts = np.diff(end.times)
            require(bool(np.allclose(dts, dts[0], rtol=1e-10, atol=0.0)), "binomial trees need a uniform time grid")
            end, steps = end.end, end.steps
        require(steps is not None, "number of steps is required when the horizon is a float")
        require(end > 0.0, "tree horizon must be positive, got %r" % end)
        require(int(steps) > 0, "number of steps must be positive, got %r" % steps)
        steps = int(steps)
        if variant in ("leisen_reimer", "joshi4"):
            require(strike is not None and strike > 0.0, "%s needs a positive strike" % variant)
            if steps % 2 == 0:
                steps += 1

        self.process = process
        self.variant = variant
        self.strike = strike
        self.x0 = process.x0
        self.end = float(end)
        self._steps = steps
        self.dt = self.end / steps
        self.time_grid = TimeGrid.uniform(self.end, steps)

        self.drift_per_step = float(process.drift(0.0, self.x0)) * self.dt
        self._node_drift = self.drift_per_step
        getattr(self, "_build_" + variant)()

        require(
            -PROBABILITY_TOLERANCE <= self.pu <= 1.0 + PROBABILITY_TOLERANCE,
            "%s tree has up probability %.6g outside [0, 1]; use more steps" % (variant, self.pu),
        )
        self.pd = 1.0 - self.pu
        LOGGER.debug("Built %s binomial tree: %d steps, pu=%.6f", variant, steps, self.pu)

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------
    def _variance(self, dt):
        return float(self.process.variance(0.0, self.x0, dt))

    def _build_jarrow_rudd(self):
        self.up = math.sqrt(self._variance(self.dt))
        self.pu = 0.5
        self._additive = True

    def _build_cox_ross_rubinstein(self):
        self.up = math.sqrt(self._variance(self.dt))
        self.pu = 0.5 + 0.5 * self.drift_per_step / self.up
        self._node_drift = 0.0
        self._additive = True

    def _build_additive_eqp(self):
        var = self._variance(self.dt)
        dps = self.drift_per_step
        self.up = -0.5 * dps + 0.5 * math.sqrt(4.0 * var - 3.0 * dps * dps)
        self.pu = 0.5
        self._additive = True

    def _build_trigeorgis(self):
        var = self._variance(self.dt)
        dps = self.drift_per_step
        self.up = math.sqrt(dps * dps + var)
        self.pu = 0.5 + 0.5 * dps / self.up
        self._node_drift = 0.0
        self._additive = True

    def _build_tian(self):
        q = math.exp(self._variance(self.dt))
        r = math.exp(self.drift_per_step) * math.sqrt(q)
        root = math.sqrt(q * q + 2.0 * q - 3.0)
        self._set_multipliers(0.5 * r * q * (q + 1.0 + root), 0.5 * r * q * (q + 1.0 - root))
        self.pu = (r - self.down) / (self.up - self.down)

    def _strike_centred(self):
        variance = self._variance(self.end)
        d2 = (math.log(self.x0 / self.strike) + self.drift_per_step * self._steps) / math.sqrt(variance)
        ermqdt = math.exp(self.drift_per_step + 0.5 * variance / self._steps)
        return variance, d2, ermqdt

    def _build_leisen_reimer(self):
        variance, d2, ermqdt = self._strike_centred()
        self.pu = peizer_pratt_inversion(d2, self._steps)
        pdash = peizer_pratt_inversion(d2 + math.sqrt(variance), self._steps)
        up = ermqdt * pdash / self.pu
        self._set_multipliers(up, (ermqdt - self.pu * up) / (1.0 - self.pu))

    def _build_joshi4(self):
        variance, d2, ermqdt = self._strike_centred()
        k = (self._steps - 1.0) / 2.0
        self.pu = _joshi_up_probability(k, d2)
        pdash = _joshi_up_probability(k, d2 + math.sqrt(variance))
        up = ermqdt * pdash / self.pu
        self._set_multipliers(up, (ermqdt - self.pu * up) / (1.0 - self.pu))

    def _set_multipliers(self, up, down):
        require(up > 0.0 and down > 0.0, "binomial multipliers must be positive")
        self.up = up
        self.down = down
        self._log_up = math.log(up)
        self._log_down = math.log(down)
        self._additive = False

    # ------------------------------------------------------------------
    # Lattice interface
    # ------------------------------------------------------------------
    @classmethod
    def jarrow_rudd(cls, process, end, steps):
        return cls(process, end, steps, "jarrow_rudd")

    @classmethod
    def cox_ross_rubinstein(cls, process, end, steps):
        return cls(process, end, steps, "cox_ross_rubinstein")

    @classmethod
    def additive_eqp(cls, process, end, steps):
        return cls(process, end, steps, "additive_eqp")

    @classmethod
    def trigeorgis(cls, process, end, steps):
        return cls(process, end, steps, "trigeorgis")

    @classmethod
    def tian(cls, process, end, steps):
        return cls(process, end, steps, "tian")

    @classmethod
    def leisen_reimer(cls, process, end, steps, strike):
        return cls(process, end, steps, "leisen_reimer", strike)

    @classmethod
    def joshi4(cls, process, end, steps, strike):
        return cls(process, end, steps, "joshi4", strike)

    @property
    def steps(self):
        return self._steps

    def size(self, i):
        return i + 1

    def _offsets(self, i):
        j = np.arange(i + 1)
        if self._additive:
            return i * self._node_drift + (2 * j - i) * self.up
        return (i - j) * self._log_down + j * self._log_up

    def underlyings(self, i):
        return np.asarray(self.process.apply(self.x0, self._offsets(i)), dtype=float)

    def underlying(self, i, index):
        return float(self.underlyings(i)[index])

    def descendants(self, i):
        j = np.arange(i + 1)
        return np.vstack([j, j + 1])

    def probabilities(self, i):
        n = i + 1
        return np.vstack([np.full(n, self.pd), np.full(n, self.pu)])

    def descendant(self, i, index, branch):
        return index + branch

    def probability(self, i, index, branch):
        return self.pu if branch == 1 else self.pd

    def __repr__(self):
        return "BinomialTree(variant=%r, steps=%d, end=%r)" % (self.variant, self._steps, self.end)
