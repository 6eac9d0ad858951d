"""Stochastic-process, short-rate model and lattice pricing package.

This package provides:
- Yield-curve collaborators (flat curves, QuantLib adapters, CSV loading)
- Stochastic processes (Black-Scholes family, Heston/Bates, Ornstein-Uhlenbeck,
  Hull-White, GSR, G2, square-root, variance-gamma)
- Calibratable models (Vasicek, CIR, Hull-White, Black-Karasinski, G2, Heston, Bates)
- Binomial/trinomial trees with backward-induction pricing
- Calibration to bond prices and diagnostic sweeps
"""

from .config import EngineConfig
from .market import FlatCurve, MarketLoader, QuantLibCurve, YieldCurve
from .parameters import (
    BoundaryConstraint,
    CalibratedModel,
    NoConstraint,
    Parameter,
    PositiveConstraint,
)
from .calibration import BondHelper, Calibrator, helpers_from_curve
