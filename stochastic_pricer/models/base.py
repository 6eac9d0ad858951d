"""Short-rate model contract.

A short-rate model owns its calibration parameters and, optionally, the
initial yield curve it is fitted to. It prices zero-coupon bonds in closed
form as ``P(t, T) = A(t, T) exp(-B(t, T) r)`` and builds a fresh dynamics
process from its current parameters on every ``dynamics_process()`` call.
"""

import abc

from ..lattices import TimeGrid, TrinomialTree, price_discount_bond
from ..market import as_curve
from ..parameters import CalibratedModel


class ShortRateModel(CalibratedModel, abc.ABC):
    def __init__(self, arguments, term_structure=None):
        super().__init__(arguments)
        self._term_structure = as_curve(term_structure) if term_structure is not None else None

    @property
    def term_structure(self):
        return self._term_structure

    @abc.abstractmethod
    def discount_bond(self, t, maturity, rate):
        """Price at ``t`` of a bond paying 1 at ``maturity`` given the short rate."""

    @abc.abstractmethod
    def dynamics_process(self):
        """Process driving the model state under its current parameters."""


class OneFactorModel(ShortRateModel):
    """Short-rate model driven by one state variable ``x`` with ``r = short_rate(t, x)``."""

    def short_rate(self, t, x):
        return x

    def short_rate_drift(self, t, r):
        return self.dynamics_process().drift(t, r)

    def short_rate_diffusion(self, t, r):
        return self.dynamics_process().diffusion(t, r)

    def tree(self, time_grid):
        return TrinomialTree(self.dynamics_process(), time_grid)

    def tree_discount_bond(self, maturity, steps):
        """P(0, maturity) by backward induction on the model's trinomial tree."""
        tree = self.tree(TimeGrid.uniform(maturity, steps))
        return price_discount_bond(tree, self.short_rate)


class TwoFactorModel(ShortRateModel):
    """Short-rate model driven by two correlated state variables."""
