import math

from ..config import MATURITY_EPSILON
from ..parameters import BoundaryConstraint, Parameter, PositiveConstraint
from ..processes import G2Process
from ..utils import integrated_b_product, reversion_factor, require
from .base import TwoFactorModel


class G2(TwoFactorModel):
    """Two-factor additive Gaussian model (G2++) fitted to an initial curve.

    ``r(t) = x(t) + y(t) + phi(t)``, with ``x`` and ``y`` correlated OU
    factors (see :class:`G2Process`). Parameters are
    ``[a, sigma, b, eta, rho]``; ``rho`` is bounded to ``[-1, 1]`` and the
    rest are positive.

    Notes
    -----
    ``P(t, T) = A(t, T) exp(-B_a(tau) x - B_b(tau) y)`` with

        A(t, T) = P(0, T) / P(0, t) exp((V(tau) - V(T) + V(t)) / 2)

    and ``V(tau)`` the variance of ``int_t^T (x + y) du``.
    """

    def __init__(self, term_structure, a=0.1, sigma=0.01, b=0.1, eta=0.01, rho=-0.75):
        require(term_structure is not None, "G2 needs an initial yield curve")
        super().__init__(
            [
                Parameter(a, PositiveConstraint(), "a"),
                Parameter(sigma, PositiveConstraint(), "sigma"),
                Parameter(b, PositiveConstraint(), "b"),
                Parameter(eta, PositiveConstraint(), "eta"),
                Parameter(rho, BoundaryConstraint(-1.0, 1.0), "rho"),
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
    def b(self):
        return self._arguments[2].value

    @property
    def eta(self):
        return self._arguments[3].value

    @property
    def rho(self):
        return self._arguments[4].value

    @property
    def correlation(self):
        return self.rho

    def V(self, tau):
        a, b = self.a, self.b
        sigma, eta, rho = self.sigma, self.eta, self.rho
        return (
            sigma * sigma * integrated_b_product(a, a, tau)
            + eta * eta * integrated_b_product(b, b, tau)
            + 2.0 * rho * sigma * eta * integrated_b_product(a, b, tau)
        )

    def log_A(self, t, maturity):
        curve = self.term_structure
        return (
            curve.log_discount(maturity)
            - curve.log_discount(t)
            + 0.5 * (self.V(maturity - t) - self.V(maturity) + self.V(t))
        )

    def phi(self, t):
        return self.dynamics_process().phi(t)

    def discount_bond_factors(self, t, maturity, x, y):
        """Bond price given the two factor values at ``t``."""
        if maturity - t <= MATURITY_EPSILON:
            return 1.0
        tau = maturity - t
        exponent = (
            self.log_A(t, maturity)
            - reversion_factor(self.a, tau) * x
            - reversion_factor(self.b, tau) * y
        )
        return math.exp(exponent)

    def discount_bond(self, t, maturity, rate):
        """Bond price given the short rate at ``t``.

        A scalar short rate does not pin down both factors; the deviation
        from ``phi(t)`` is attributed to the first factor (``x = r - phi(t)``,
        ``y = 0``). Use :meth:`discount_bond_factors` when the state is known.
        """
        return self.discount_bond_factors(t, maturity, rate - self.phi(t), 0.0)

    def dynamics_process(self):
        return G2Process(self.a, self.sigma, self.b, self.eta, self.rho, self.term_structure)

    def __repr__(self):
        return "G2(a=%r, sigma=%r, b=%r, eta=%r, rho=%r)" % (
            self.a, self.sigma, self.b, self.eta, self.rho)
