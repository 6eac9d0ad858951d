import math

import numpy as np
import pandas as pd
import QuantLib as ql

from .config import REVERSION_EPSILON


def require(condition, message):
    """Raise ``ValueError`` with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ValueError(message)


def as_state(x, size):
    """Return ``x`` as a float vector of length ``size``."""
    arr = np.asarray(x, dtype=float).reshape(-1)
    require(arr.size == size, "state has %d entries, expected %d" % (arr.size, size))
    return arr


def correlation_factor(rho):
    """Lower-triangular factor of the 2x2 correlation matrix [[1, rho], [rho, 1]]."""
    rho = float(rho)
    require(-1.0 <= rho <= 1.0, "correlation must lie in [-1, 1], got %r" % rho)
    return np.array([[1.0, 0.0], [rho, math.sqrt(1.0 - rho * rho)]])


def reversion_factor(speed, tau):
    """(1 - exp(-speed * tau)) / speed, equal to tau when speed vanishes.

    This is the ``B(t, T)`` of every Gaussian short-rate model.
    """
    speed = float(speed)
    if abs(speed) < REVERSION_EPSILON:
        return float(tau)
    return float(-math.expm1(-speed * tau) / speed)


# Taylor terms of B_k(s tau) / tau = sum_n (-k tau)^(n-1) s^n / n!; enough for |k tau| <= 1.
_SERIES_ORDERS = np.arange(1, 21)
_SERIES_WEIGHTS = 1.0 / np.cumprod(_SERIES_ORDERS.astype(float))
_SERIES_KERNEL = 1.0 / (_SERIES_ORDERS[:, None] + _SERIES_ORDERS[None, :] + 1.0)
# Below this |k tau| the closed form loses too many digits next to a fast factor.
_SLOW_REVERSION = 1e-3


def _b_coefficients(x):
    return (-x) ** (_SERIES_ORDERS - 1) * _SERIES_WEIGHTS


def _expand_in_slow_speed(slow, fast, tau):
    # int_0^1 s^m e^{-x s} ds by forward recursion, stable for |x| > 1 and small m
    x = fast * tau
    decay = math.exp(-x)
    moment = -math.expm1(-x) / x
    total = 0.0
    for m in range(1, 7):
        moment = (m * moment - decay) / x
        total += (-slow * tau) ** (m - 1) / math.factorial(m) * (1.0 / (m + 1) - moment) / x
    return tau ** 3 * total


def integrated_b_product(k1, k2, tau):
    """``int_0^tau B_k1(u) B_k2(u) du`` with ``B_k(u) = (1 - exp(-k u)) / k``.

    The textbook closed form ``(tau - B_k1 - B_k2 + B_{k1+k2}) / (k1 k2)``
    cancels catastrophically when ``k tau`` is small, so three regimes are
    used:

    - both ``|k tau| <= 1``: the double power series, exact to rounding;
    - one speed slow (``|k tau| < 1e-3``) next to a fast one: a short
      expansion in the slow speed with exact moments of the fast factor;
    - otherwise the closed form.

    Equals ``tau^3 / 3`` when both speeds vanish.
    """
    k1, k2, tau = float(k1), float(k2), float(tau)
    x1, x2 = k1 * tau, k2 * tau
    if max(abs(x1), abs(x2)) <= 1.0:
        return float(tau ** 3 * _b_coefficients(x1) @ _SERIES_KERNEL @ _b_coefficients(x2))
    if abs(x1) < _SLOW_REVERSION:
        return _expand_in_slow_speed(k1, k2, tau)
    if abs(x2) < _SLOW_REVERSION:
        return _expand_in_slow_speed(k2, k1, tau)
    return (
        tau
        - reversion_factor(k1, tau)
        - reversion_factor(k2, tau)
        + reversion_factor(k1 + k2, tau)
    ) / (k1 * k2)


class DateUtils:
    """Small helpers to keep date parsing in one place."""

    @staticmethod
    def to_ql_date(d):
        """Convert common Python date representations into QuantLib.Date."""
        if isinstance(d, ql.Date):
            return d
        if isinstance(d, str):
            d = pd.to_datetime(d).date()
        elif isinstance(d, pd.Timestamp):
            d = d.date()
        return ql.Date(d.day, d.month, d.year)
