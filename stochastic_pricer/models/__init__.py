"""Short-rate and equity models exposing the calibration contract."""

from .base import OneFactorModel, ShortRateModel, TwoFactorModel
from .black_karasinski import BlackKarasinski, BlackKarasinskiDynamics
from .cox_ingersoll_ross import CoxIngersollRoss
from .equity import BatesModel, HestonModel
from .g2 import G2
from .hull_white import HullWhite
from .vasicek import Vasicek
