import logging
import math

from ..config import MATURITY_EPSILON, REVERSION_EPSILON
from ..parameters import Parameter, PositiveConstraint
from ..processes import SquareRootProcess
from ..utils import reversion_factor
from .base import OneFactorModel

LOGGER = logging.getLogger(__name__)


class CoxIngersollRoss(OneFactorModel):
    """CIR model ``dr = a (b - r) dt + sigma sqrt(r) dW``.

    Parameters are ``[a, b, sigma]``, all positive; ``r0`` is fixed.

    The Feller condition ``2 a b > sigma^2`` is reported by
    :meth:`feller_satisfied` but never enforced: the model still prices when
    it fails and the simulated rate may then touch zero.

    Notes
    -----
    With ``h = sqrt(a^2 + 2 sigma^2)`` and ``tau = T - t``:

    - ``B = 2 (e^{h tau} - 1) / (2h + (a + h)(e^{h tau} - 1))``
    - ``A = (2h e^{(a + h) tau / 2} / (2h + (a + h)(e^{h tau} - 1)))^{2ab / sigma^2}``

    Both are evaluated after multiplying through by ``e^{-h tau}``, so long
    maturities reach their finite limits instead of overflowing.

    For ``sigma -> 0`` the rate is deterministic and ``ln A = b (B - tau)``
    with the Vasicek ``B``.
    """

    def __init__(self, a=0.1, b=0.05, sigma=0.05, r0=0.05, term_structure=None):
        super().__init__(
            [
                Parameter(a, PositiveConstraint(), "a"),
                Parameter(b, PositiveConstraint(), "b"),
                Parameter(sigma, PositiveConstraint(), "sigma"),
            ],
            term_structure,
        )
        self.r0 = float(r0)
        if not self.feller_satisfied():
            LOGGER.debug("CIR Feller condition violated for a=%r b=%r sigma=%r", a, b, sigma)

    @property
    def a(self):
        return self._arguments[0].value

    @property
    def b(self):
        return self._arguments[1].value

    @property
    def sigma(self):
        return self._arguments[2].value

    def feller_satisfied(self):
        return 2.0 * self.a * self.b > self.sigma ** 2

    def _deterministic(self):
        return self.sigma * self.sigma < REVERSION_EPSILON

    def _h_terms(self, tau):
        # e^{-h tau} and 1 - e^{-h tau}: both bounded for any maturity
        h = math.sqrt(self.a ** 2 + 2.0 * self.sigma ** 2)
        return h, math.exp(-h * tau), -math.expm1(-h * tau)

    def B(self, t, maturity):
        tau = maturity - t
        a = self.a
        if self._deterministic():
            return reversion_factor(a, tau)
        h, decay, rise = self._h_terms(tau)
        return 2.0 * rise / (2.0 * h * decay + (a + h) * rise)

    def log_A(self, t, maturity):
        tau = maturity - t
        a, b, sigma = self.a, self.b, self.sigma
        if self._deterministic():
            return b * (reversion_factor(a, tau) - tau)
        h, decay, rise = self._h_terms(tau)
        denominator = 2.0 * h * decay + (a + h) * rise
        return 2.0 * a * b / (sigma * sigma) * (math.log(2.0 * h) + 0.5 * (a - h) * tau - math.log(denominator))

    def discount_bond(self, t, maturity, rate):
        if maturity - t <= MATURITY_EPSILON:
            return 1.0
        return math.exp(self.log_A(t, maturity) - self.B(t, maturity) * rate)

    def dynamics_process(self):
        return SquareRootProcess(self.a, self.b, self.sigma, self.r0)

    def __repr__(self):
        return "CoxIngersollRoss(a=%r, b=%r, sigma=%r, r0=%r)" % (self.a, self.b, self.sigma, self.r0)
