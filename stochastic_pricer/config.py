import logging
import warnings

import numpy as np


# ----------------
# Numerical thresholds shared by the closed forms
# ----------------
# Mean-reversion speeds below this switch to the a -> 0 limiting formulas.
REVERSION_EPSILON = 1e-12
# Bond prices with T - t below this are exactly 1.
MATURITY_EPSILON = 1e-14
# Step of the forward finite difference of the instantaneous forward curve.
FORWARD_RATE_BUMP = 1e-4
PROBABILITY_TOLERANCE = 1e-10
# Relative tolerance used when checking that a process has additive noise.
ADDITIVE_NOISE_TOLERANCE = 1e-8
# Floor applied to forward rates before taking logarithms.
MIN_SHORT_RATE = 1e-10


class EngineConfig:
    """Central configuration object for the diagnostic and calibration layer.

    The process, model and lattice classes never read this object; every knob
    they need is an explicit argument. The calibrator, the sensitivity sweeps
    and ``run_analysis.py`` receive an instance so a run is reproducible from
    one place.

    Parameters
    ----------
    tree_steps : int
        Default number of time steps for lattice pricing.
    output_dir : str
        Directory used by the reporting helpers.

    Notes
    -----
    - ``calibration_method`` is handed to ``scipy.optimize.least_squares``;
      use ``"lm"`` only when there are at least as many market quotes as free
      parameters.
    """

    def __init__(self, tree_steps=200, output_dir="outputs"):
        self.tree_steps = int(tree_steps)
        self.output_dir = str(output_dir)

        # ----------------
        # Lattice convergence study
        # ----------------
        self.convergence_steps = [25, 50, 100, 200, 400]
        self.binomial_variant = "cox_ross_rubinstein"

        # ----------------
        # Calibration
        # ----------------
        self.calibration_method = "trf"
        self.calibration_max_evaluations = 2000
        self.calibration_tolerance = 1e-12
        self.de_maxiter = 50
        self.de_seed = 42
        # Residual assigned to every quote when the parameters break a constraint.
        self.invalid_penalty = 1e3

        # ----------------
        # Sensitivity sweeps
        # ----------------
        self.vol_multipliers = [0.5, 0.75, 1.0, 1.25, 1.5]
        self.report_maturities = [0.5, 1.0, 2.0, 3.0, 5.0, 7.0, 10.0, 20.0, 30.0]

        # ----------------
        # Global flags
        # ----------------
        self.log_level = "INFO"
        self.suppress_warnings = False
        self.numpy_seed = 42

    def apply_global_settings(self):
        """Apply global settings (logging level, warnings filter, RNG seed)."""
        logging.basicConfig(
            level=getattr(logging, str(self.log_level).upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        if self.suppress_warnings:
            warnings.filterwarnings("ignore")
        np.random.seed(self.numpy_seed)
