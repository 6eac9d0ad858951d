import os
import sys

import pytest
import QuantLib as ql

# Allow running tests without installing the package.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from stochastic_pricer.market import FlatCurve, QuantLibCurve  # noqa: E402


@pytest.fixture
def flat_curve():
    return FlatCurve(0.05)


@pytest.fixture
def reference_date():
    return ql.Date(10, 9, 2025)


@pytest.fixture
def ql_flat_curve(reference_date):
    return QuantLibCurve.flat(reference_date, 0.05)


@pytest.fixture
def sloped_curve(reference_date):
    """Upward-sloping QuantLib zero curve (log-linear discounts)."""
    dc = ql.Actual365Fixed()
    dates = [reference_date + ql.Period(n, ql.Years) for n in (0, 1, 2, 5, 10, 30)]
    rates = [0.02, 0.025, 0.03, 0.035, 0.04, 0.045]
    curve = ql.ZeroCurve(dates, rates, dc, ql.NullCalendar(), ql.Linear(), ql.Continuous)
    curve.enableExtrapolation()
    return QuantLibCurve(curve)
