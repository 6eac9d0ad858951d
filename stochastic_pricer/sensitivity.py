"""Diagnostic sweeps over models and lattices.

The functions return ``pandas.DataFrame`` objects in a *wide* format: the
first column is the x-axis and each additional column is a label (model or
method).

1) Model discount curves (bond price vs maturity)
2) Bond price vs a model volatility parameter
3) Lattice price convergence vs the number of steps
"""

import math

import pandas as pd
import QuantLib as ql

from .lattices import BinomialTree, TrinomialTree, price_american, price_european


def black_scholes_reference(spot, strike, rate, dividend, volatility, maturity, option_type="call"):
    """Closed-form Black-Scholes price from QuantLib's ``blackFormula``."""
    forward = spot * math.exp((rate - dividend) * maturity)
    std_dev = volatility * math.sqrt(maturity)
    discount = math.exp(-rate * maturity)
    kind = ql.Option.Call if option_type == "call" else ql.Option.Put
    return float(ql.blackFormula(kind, strike, forward, std_dev, discount))


def _scaled_values(model, name, multiplier):
    """Flat parameter vector of ``model`` with one named parameter scaled."""
    values = model.param_values()
    values[model.param_names().index(name)] *= float(multiplier)
    return values


def model_discount_curves(models, maturities, rates=None):
    """Bond prices ``P(0, T)`` of each model on a maturity grid.

    Parameters
    ----------
    models : dict[str, ShortRateModel]
    maturities : iterable[float]
    rates : dict[str, float], optional
        Short rate per label; defaults to ``model.r0`` or the curve's forward at 0.
    """
    rates = rates or {}
    rows = []
    for T in maturities:
        row = {"maturity": float(T)}
        for label, model in models.items():
            r = rates.get(label)
            if r is None:
                r = model.r0 if hasattr(model, "r0") else model.term_structure.forward_rate(0.0)
            row[label] = float(model.discount_bond(0.0, float(T), r))
        rows.append(row)
    return pd.DataFrame(rows)


def price_vs_volatility(models, maturity, vol_multipliers, parameter="sigma"):
    """Bond price sensitivity to a multiplicative bump of a volatility parameter.

    The short rate is each model's own ``r0`` (or the curve's forward at 0).
    Each model is bumped through ``set_params`` and restored afterwards.
    """
    rows = []
    for m in vol_multipliers:
        row = {"vol_multiplier": float(m)}
        for label, model in models.items():
            base = model.param_values()
            try:
                model.set_params(_scaled_values(model, parameter, m))
                r = model.r0 if hasattr(model, "r0") else model.term_structure.forward_rate(0.0)
                row[label] = float(model.discount_bond(0.0, float(maturity), r))
            finally:
                model.set_params(base)
        rows.append(row)
    return pd.DataFrame(rows)


def lattice_convergence(process, payoff, maturity, rate, steps_grid, reference=None,
                        binomial_variant="cox_ross_rubinstein", strike=None):
    """Lattice prices of ``payoff`` for increasing step counts.

    Columns: ``steps``, ``binomial_european``, ``trinomial_european``,
    ``trinomial_american`` and, when ``reference`` is given, the errors of
    the two European prices against it.
    """
    rows = []
    for n in steps_grid:
        n = int(n)
        binomial = BinomialTree(process, maturity, n, binomial_variant, strike)
        trinomial = TrinomialTree.uniform(process, maturity, n)
        row = {
            "steps": n,
            "binomial_european": price_european(binomial, payoff, math.exp(-rate * binomial.dt)),
            "trinomial_european": price_european(trinomial, payoff, math.exp(-rate * maturity / n)),
            "trinomial_american": price_american(trinomial, payoff, math.exp(-rate * maturity / n)),
        }
        if reference is not None:
            row["binomial_error"] = row["binomial_european"] - reference
            row["trinomial_error"] = row["trinomial_european"] - reference
        rows.append(row)
    return pd.DataFrame(rows)
