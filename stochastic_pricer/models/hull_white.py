import math

from ..config import MATURITY_EPSILON, REVERSION_EPSILON
from ..parameters import Parameter, PositiveConstraint
from ..processes import HullWhiteForwardProcess, HullWhiteProcess
from ..utils import reversion_factor, require
from .base import OneFactorModel


class HullWhite(OneFactorModel):
    """Hull-White model perfectly fitted to an initial curve.

    Parameters are ``[a, sigma]``, both positive.

    Notes
    -----
    ``P(t, T) = A(t, T) exp(-B(t, T) r)`` with

        ln A = ln(P(0, T) / P(0, t)) + B f(0, t) - sigma^2 / (4 a) (1 - e^{-2at}) B^2

    where ``f(0, t)`` is the instantaneous forward. The factor
    ``(1 - e^{-2at}) / (4a)`` tends to ``t / 2`` as ``a -> 0``. Log discounts
    are read from zero rates so long maturities never underflow.
    """

    def __init__(self, term_structure, a=0.1, sigma=0.01):
        require(term_structure is not None, "Hull-White needs an initial yield curve")
        super().__init__(
            [
                Parameter(a, PositiveConstraint(), "a"),
                Parameter(sigma, PositiveConstraint(), "sigma"),
            ],
            term_structure,
        )

    @property
    def a(self):
        return self._arguments[0].value

    @property
    def sigma(self):
        return self._arguments[1].value

    @property
    def r0(self):
        return self.term_structure.forward_rate(0.0)

    def B(self, t, maturity):
        return reversion_factor(self.a, maturity - t)

    def log_A(self, t, maturity):
        curve = self.term_structure
        a, sigma = self.a, self.sigma
        bt = self.B(t, maturity)
        if abs(a) < REVERSION_EPSILON:
            spread = 0.5 * t
        else:
            spread = -math.expm1(-2.0 * a * t) / (4.0 * a)
        return (
            curve.log_discount(maturity)
            - curve.log_discount(t)
            + bt * curve.forward_rate(t)
            - sigma * sigma * spread * bt * bt
        )

    def discount_bond(self, t, maturity, rate):
        if maturity - t <= MATURITY_EPSILON:
            return 1.0
        return math.exp(self.log_A(t, maturity) - self.B(t, maturity) * rate)

    def dynamics_process(self):
        return HullWhiteProcess(self.term_structure, self.a, self.sigma)

    def forward_process(self, forward_measure_time):
        return HullWhiteForwardProcess(self.term_structure, self.a, self.sigma, forward_measure_time)

    def __repr__(self):
        return "HullWhite(a=%r, sigma=%r)" % (self.a, self.sigma)
