"""Short-rate model calibration to market zero-coupon bond prices.

The calibrator only talks to a model through the flat-vector contract
(``param_values`` / ``set_params`` / ``is_valid``), so it works for every
:class:`~stochastic_pricer.models.ShortRateModel`. Parameter sets that break
a constraint are penalised, not raised.

The model is mutated in place and left at the best parameters found; do not
calibrate the same instance from two threads.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy import optimize

from .config import EngineConfig
from .utils import require

LOGGER = logging.getLogger(__name__)


@dataclass
class BondHelper:
    """Market price of a zero-coupon bond maturing at ``maturity`` (years)."""

    maturity: float
    market_price: float

    def __post_init__(self):
        require(self.maturity > 0.0, "helper maturity must be positive, got %r" % self.maturity)
        require(0.0 < self.market_price, "helper price must be positive, got %r" % self.market_price)


@dataclass
class CalibrationResult:
    parameters: np.ndarray
    names: list
    rmse: float
    success: bool
    evaluations: int
    message: str = ""
    errors: list = field(default_factory=list)

    def as_dict(self):
        d = {name: float(v) for name, v in zip(self.names, self.parameters)}
        d["rmse"] = float(self.rmse)
        return d


def helpers_from_curve(curve, maturities):
    """Bond helpers reproducing ``curve`` at the given maturities."""
    return [BondHelper(float(t), float(curve.discount(t))) for t in maturities]


class Calibrator:
    """Fit short-rate models to zero-coupon bond prices.

    Parameters
    ----------
    cfg : EngineConfig, optional
        Supplies the optimizer method, evaluation limits, seed and penalty.
    """

    def __init__(self, cfg=None):
        self.cfg = cfg if cfg is not None else EngineConfig()

    # ------------------------------------------------------------------
    # Objective
    # ------------------------------------------------------------------
    @staticmethod
    def _short_rate(model, rate):
        if rate is not None:
            return float(rate)
        if hasattr(model, "r0"):
            return float(model.r0)
        require(model.term_structure is not None, "no short rate given and the model has no curve")
        return model.term_structure.forward_rate(0.0)

    @staticmethod
    def _free_mask(model, fixed):
        n = model.param_values().size
        mask = np.ones(n, dtype=bool)
        if fixed is not None:
            fixed = np.asarray(fixed, dtype=bool).reshape(-1)
            require(fixed.size == n, "fixed mask has %d entries, model has %d parameters" % (fixed.size, n))
            mask = ~fixed
        require(mask.any(), "every parameter is fixed, nothing to calibrate")
        return mask

    def _residuals_factory(self, model, helpers, rate, mask, base):
        penalty = float(self.cfg.invalid_penalty)

        def residuals(x):
            full = base.copy()
            full[mask] = x
            model.set_params(full)
            if not model.is_valid():
                return np.full(len(helpers), penalty)
            r = self._short_rate(model, rate)
            return np.array(
                [(model.discount_bond(0.0, h.maturity, r) - h.market_price) / h.market_price for h in helpers]
            )

        return residuals

    def _finish(self, model, residuals, mask, base, x, success, evaluations, message):
        full = base.copy()
        full[mask] = x
        model.set_params(full)
        errors = residuals(x)
        rmse = float(np.sqrt(np.mean(errors ** 2)))
        result = CalibrationResult(
            parameters=model.param_values(),
            names=model.param_names(),
            rmse=rmse,
            success=bool(success) and model.is_valid(),
            evaluations=int(evaluations),
            message=str(message),
            errors=[float(e) for e in errors],
        )
        if result.success:
            LOGGER.info("Calibrated %s: %s", type(model).__name__, result.as_dict())
        else:
            LOGGER.warning("Calibration of %s did not converge: %s", type(model).__name__, message)
        return result

    # ------------------------------------------------------------------
    # Optimizers
    # ------------------------------------------------------------------
    def calibrate(self, model, helpers, rate=None, fixed=None):
        """Local least-squares fit starting from the model's current parameters.

        Parameters
        ----------
        model : ShortRateModel
        helpers : list[BondHelper]
        rate : float, optional
            Short rate at time 0; defaults to ``model.r0`` or the curve's
            instantaneous forward at 0.
        fixed : sequence of bool, optional
            Flags for parameters kept at their current value.

        Returns
        -------
        CalibrationResult
        """
        require(len(helpers) > 0, "calibration needs at least one helper")
        mask = self._free_mask(model, fixed)
        base = model.param_values()
        residuals = self._residuals_factory(model, helpers, rate, mask, base)

        method = self.cfg.calibration_method
        if method == "lm" and len(helpers) < int(mask.sum()):
            method = "trf"
        res = optimize.least_squares(
            residuals,
            base[mask],
            method=method,
            max_nfev=self.cfg.calibration_max_evaluations,
            xtol=self.cfg.calibration_tolerance,
            ftol=self.cfg.calibration_tolerance,
            gtol=self.cfg.calibration_tolerance,
        )
        return self._finish(model, residuals, mask, base, res.x, res.success, res.nfev, res.message)

    def calibrate_global(self, model, helpers, bounds, rate=None, fixed=None):
        """Differential-evolution fit inside ``bounds`` (one pair per free parameter)."""
        require(len(helpers) > 0, "calibration needs at least one helper")
        mask = self._free_mask(model, fixed)
        require(len(bounds) == int(mask.sum()), "expected %d bounds, got %d" % (int(mask.sum()), len(bounds)))
        base = model.param_values()
        residuals = self._residuals_factory(model, helpers, rate, mask, base)

        def loss(x):
            return float(np.sum(residuals(x) ** 2))

        res = optimize.differential_evolution(
            loss,
            bounds,
            seed=self.cfg.de_seed,
            maxiter=self.cfg.de_maxiter,
            tol=1e-10,
            polish=True,
        )
        return self._finish(model, residuals, mask, base, res.x, res.success, res.nfev, res.message)
