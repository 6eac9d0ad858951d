"""Backward induction on binomial and trinomial trees.

Every routine initialises the terminal layer from the payoff and walks the
layers from last to first, replacing each node's value with the discounted,
probability-weighted values of its descendants. The per-step discount is a
scalar or one factor per step.

Trees expose ``steps``, ``time_grid``, ``underlyings(i)``, ``descendants(i)``
and ``probabilities(i)``; both tree classes share this interface, so the
induction itself is written once.
"""

import logging

import numpy as np

from ..utils import require
from .trinomial import TrinomialTree

LOGGER = logging.getLogger(__name__)


def _discount_factors(discount, steps):
    if np.ndim(discount) == 0:
        return np.full(steps, float(discount))
    factors = np.asarray(discount, dtype=float).reshape(-1)
    require(factors.size == steps, "expected %d discount factors, got %d" % (steps, factors.size))
    return factors


def _payoff_values(tree, payoff, i):
    return np.array([payoff(s) for s in tree.underlyings(i)], dtype=float)


def _rollback(tree, payoff, discount, exercise_layers):
    factors = _discount_factors(discount, tree.steps)
    values = _payoff_values(tree, payoff, tree.steps)
    for i in range(tree.steps - 1, -1, -1):
        continuation = np.sum(tree.probabilities(i) * values[tree.descendants(i)], axis=0)
        values = factors[i] * continuation
        if i in exercise_layers:
            values = np.maximum(values, _payoff_values(tree, payoff, i))
    return float(values[0])


def price_european(tree, payoff, discount):
    """Value of ``payoff(S_T)`` received at the last layer."""
    return _rollback(tree, payoff, discount, frozenset())


def price_american(tree, payoff, discount):
    """Value with exercise allowed at every node of every layer."""
    return _rollback(tree, payoff, discount, frozenset(range(tree.steps)))


def price_bermudan(tree, payoff, discount, exercise_times):
    """Value with exercise allowed on the layers closest to ``exercise_times``.

    Exercise at the final layer is always implied by the terminal payoff.
    """
    layers = frozenset(tree.time_grid.closest_index(t) for t in exercise_times)
    return _rollback(tree, payoff, discount, layers)


def price_european_trinomial(tree, payoff, discount):
    require(isinstance(tree, TrinomialTree), "expected a TrinomialTree, got %s" % type(tree).__name__)
    return price_european(tree, payoff, discount)


def price_american_trinomial(tree, payoff, discount):
    require(isinstance(tree, TrinomialTree), "expected a TrinomialTree, got %s" % type(tree).__name__)
    return price_american(tree, payoff, discount)


def price_discount_bond(tree, short_rate=None):
    """Zero-coupon bond paying 1 at the last layer of a short-rate tree.

    Each node discounts with ``exp(-r dt)`` where ``r = short_rate(t, x)``
    for the node's state ``x``; by default the state is the rate itself.
    """
    grid = tree.time_grid
    values = np.ones(tree.size(tree.steps))
    for i in range(tree.steps - 1, -1, -1):
        t = grid[i]
        states = tree.underlyings(i)
        rates = states if short_rate is None else np.asarray(short_rate(t, states), dtype=float)
        continuation = np.sum(tree.probabilities(i) * values[tree.descendants(i)], axis=0)
        values = np.exp(-rates * grid.dt(i)) * continuation
    price = float(values[0])
    LOGGER.debug("Tree discount bond to t=%.6g over %d steps: %.10f", grid.end, tree.steps, price)
    return price
