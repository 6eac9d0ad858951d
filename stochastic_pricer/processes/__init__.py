"""Stochastic processes: the drift/diffusion contract and its concrete variants."""

from .base import StochasticProcess, StochasticProcess1D
from .black_scholes import (
    GeneralizedBlackScholesProcess,
    GeometricBrownianMotionProcess,
    Merton76Process,
    black_scholes_merton_process,
    black_scholes_process,
)
from .g2 import G2Process
from .gsr import GsrProcess
from .heston import BatesProcess, HestonProcess
from .hull_white import HullWhiteForwardProcess, HullWhiteProcess
from .ornstein_uhlenbeck import OrnsteinUhlenbeckProcess, ou_expectation, ou_variance
from .square_root import SquareRootProcess
from .variance_gamma import VarianceGammaProcess
