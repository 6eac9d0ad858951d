"""Calibratable stochastic-volatility equity models."""

from ..market import as_curve
from ..parameters import BoundaryConstraint, CalibratedModel, NoConstraint, Parameter, PositiveConstraint
from ..processes import BatesProcess, HestonProcess



class HestonModel(CalibratedModel):
    """Heston model with parameters ``[kappa, theta, sigma, rho, v0]``.

    Spot and curves are market inputs and stay fixed; ``process()`` rebuilds a
    :class:`HestonProcess` from the current parameters.
    """

    def __init__(self, s0, risk_free, dividend_yield, kappa=1.5, theta=0.04, sigma=0.3, rho=-0.7, v0=0.04):
        super().__init__(self._heston_arguments(kappa, theta, sigma, rho, v0))
        self.s0 = float(s0)
        self.risk_free = as_curve(risk_free)
        self.dividend_yield = as_curve(dividend_yield)

    @staticmethod
    def _heston_arguments(kappa, theta, sigma, rho, v0):
        return [
            Parameter(kappa, PositiveConstraint(), "kappa"),
            Parameter(theta, PositiveConstraint(), "theta"),
            Parameter(sigma, PositiveConstraint(), "sigma"),
            Parameter(rho, BoundaryConstraint(-1.0, 1.0), "rho"),
            Parameter(v0, PositiveConstraint(), "v0"),
        ]

    @property
    def kappa(self):
        return self._arguments[0].value

    @property
    def theta(self):
        return self._arguments[1].value

    @property
    def sigma(self):
        return self._arguments[2].value

    @property
    def rho(self):
        return self._arguments[3].value

    @property
    def v0(self):
        return self._arguments[4].value

    def feller_satisfied(self):
        return 2.0 * self.kappa * self.theta > self.sigma ** 2

    def process(self):
        return HestonProcess(
            self.s0, self.v0, self.risk_free, self.dividend_yield,
            self.kappa, self.theta, self.sigma, self.rho,
        )


class BatesModel(HestonModel):
    """Heston model plus log-normal jumps.

    Parameters are Heston's followed by ``[jump_intensity, log_jump_mean,
    log_jump_vol]``; the intensity and jump volatility are positive and the
    mean jump is unconstrained.
    """

    def __init__(self, s0, risk_free, dividend_yield, kappa=1.5, theta=0.04, sigma=0.3, rho=-0.7, v0=0.04,
                 jump_intensity=0.1, log_jump_mean=-0.05, log_jump_vol=0.1):
        super().__init__(s0, risk_free, dividend_yield, kappa, theta, sigma, rho, v0)
        self._arguments.extend([
            Parameter(jump_intensity, PositiveConstraint(), "jump_intensity"),
            Parameter(log_jump_mean, NoConstraint(), "log_jump_mean"),
            Parameter(log_jump_vol, PositiveConstraint(), "log_jump_vol"),
        ])

    @property
    def jump_intensity(self):
        return self._arguments[5].value

    @property
    def log_jump_mean(self):
        return self._arguments[6].value

    @property
    def log_jump_vol(self):
        return self._arguments[7].value

    def process(self):
        return BatesProcess(super().process(), self.jump_intensity, self.log_jump_mean, self.log_jump_vol)
