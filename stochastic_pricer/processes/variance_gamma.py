import math

from ..market import as_curve
from ..utils import require
from .base import StochasticProcess1D


class VarianceGammaProcess(StochasticProcess1D):
    """Variance-gamma dynamics of the log price.

    The state is ``ln S`` and the drift carries the martingale correction

        omega = ln(1 - theta nu - sigma^2 nu / 2) / nu,

    so ``drift = r(t) - q(t) + omega``. Only the Euler step of the diffusive
    proxy is provided; gamma time changes belong to a simulation layer.
    """

    def __init__(self, s0, risk_free, dividend_yield, sigma, nu, theta):
        require(s0 > 0.0, "spot must be positive, got %r" % s0)
        require(sigma >= 0.0, "negative volatility %r" % sigma)
        require(nu > 0.0, "variance rate nu must be positive, got %r" % nu)
        base = 1.0 - theta * nu - 0.5 * sigma * sigma * nu
        require(base > 0.0, "1 - theta*nu - sigma^2*nu/2 must be positive, got %r" % base)
        self.s0 = float(s0)
        self.risk_free = as_curve(risk_free)
        self.dividend_yield = as_curve(dividend_yield)
        self.sigma = float(sigma)
        self.nu = float(nu)
        self.theta = float(theta)
        self.omega = math.log(base) / self.nu

    @property
    def x0(self):
        return math.log(self.s0)

    def drift(self, t, x):
        return self.risk_free.forward_rate(t) - self.dividend_yield.forward_rate(t) + self.omega

    def diffusion(self, t, x):
        return self.sigma
