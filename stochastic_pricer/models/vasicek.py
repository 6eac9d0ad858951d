import math

from ..config import MATURITY_EPSILON
from ..parameters import Parameter, PositiveConstraint
from ..processes import OrnsteinUhlenbeckProcess
from ..utils import integrated_b_product, reversion_factor
from .base import OneFactorModel


class Vasicek(OneFactorModel):
    """Vasicek model ``dr = a (b - r) dt + sigma dW``.

    Parameters are ``[a, b, sigma]`` (``a`` and ``sigma`` positive, ``b``
    unconstrained); ``r0`` is fixed at construction.

    Notes
    -----
    ``ln A(t, T) = (b - sigma^2 / (2 a^2)) (B - tau) - sigma^2 B^2 / (4 a)``
    with ``B = (1 - exp(-a tau)) / a``. The convexity part is evaluated as
    ``sigma^2 / 2 int_0^tau B(u)^2 du``, which stays accurate for any
    ``a tau`` and tends to ``sigma^2 tau^3 / 6`` as ``a -> 0``.
    """

    def __init__(self, a=0.1, b=0.05, sigma=0.01, r0=0.05, term_structure=None):
        super().__init__(
            [
                Parameter(a, PositiveConstraint(), "a"),
                Parameter.constant(b, "b"),
                Parameter(sigma, PositiveConstraint(), "sigma"),
            ],
            term_structure,
        )
        self.r0 = float(r0)

    @property
    def a(self):
        return self._arguments[0].value

    @property
    def b(self):
        return self._arguments[1].value

    @property
    def sigma(self):
        return self._arguments[2].value

    def B(self, t, maturity):
        return reversion_factor(self.a, maturity - t)

    def log_A(self, t, maturity):
        tau = maturity - t
        convexity = 0.5 * self.sigma ** 2 * integrated_b_product(self.a, self.a, tau)
        return self.b * (self.B(t, maturity) - tau) + convexity

    def discount_bond(self, t, maturity, rate):
        if maturity - t <= MATURITY_EPSILON:
            return 1.0
        return math.exp(self.log_A(t, maturity) - self.B(t, maturity) * rate)

    def dynamics_process(self):
        return OrnsteinUhlenbeckProcess(self.a, self.sigma, self.r0, self.b)

    def __repr__(self):
        return "Vasicek(a=%r, b=%r, sigma=%r, r0=%r)" % (self.a, self.b, self.sigma, self.r0)
