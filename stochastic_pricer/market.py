"""Yield-curve collaborators.

Processes and models only ever query a curve by year fraction through
``discount(t)``, ``zero_rate(t)`` and ``forward_rate(t)`` (instantaneous,
continuously compounded). Curve construction (bootstrapping, interpolation,
day counts) is delegated to QuantLib; this module wraps it.

Curves are read-only once built and may be shared between threads.
"""

import abc
import logging
import math

import pandas as pd
import QuantLib as ql

from .config import FORWARD_RATE_BUMP
from .utils import DateUtils, require

LOGGER = logging.getLogger(__name__)

# Below this time the zero rate is taken as the instantaneous forward at 0.
_SHORT_END = 1e-8


class YieldCurve(abc.ABC):
    """Read-only discount/zero/forward query interface."""

    @abc.abstractmethod
    def discount(self, t):
        """Discount factor P(0, t)."""

    def log_discount(self, t):
        """ln P(0, t), computed from the zero rate so deep discounts never underflow."""
        t = float(t)
        if t <= 0.0:
            return 0.0
        return -self.zero_rate(t) * t

    def zero_rate(self, t):
        t = float(t)
        if t < _SHORT_END:
            return self.forward_rate(0.0)
        return -math.log(self.discount(t)) / t

    def forward_rate(self, t):
        t = float(t)
        h = FORWARD_RATE_BUMP
        return (math.log(self.discount(t)) - math.log(self.discount(t + h))) / h


class FlatCurve(YieldCurve):
    """Constant continuously-compounded rate."""

    def __init__(self, rate):
        self.rate = float(rate)

    def discount(self, t):
        return math.exp(-self.rate * float(t))

    def log_discount(self, t):
        return -self.rate * max(float(t), 0.0)

    def zero_rate(self, t):
        return self.rate

    def forward_rate(self, t):
        return self.rate

    def __repr__(self):
        return "FlatCurve(rate=%r)" % self.rate


class QuantLibCurve(YieldCurve):
    """Adapter over a QuantLib ``YieldTermStructure`` (or a handle to one).

    Times are year fractions measured with the curve's own day counter from
    its reference date. Queries always allow extrapolation.
    """

    def __init__(self, term_structure):
        if hasattr(term_structure, "currentLink"):
            term_structure = term_structure.currentLink()
        self.ts = term_structure

    def discount(self, t):
        return float(self.ts.discount(float(t), True))

    def zero_rate(self, t):
        t = float(t)
        if t < _SHORT_END:
            return self.forward_rate(0.0)
        return float(self.ts.zeroRate(t, ql.Continuous, ql.NoFrequency, True).rate())

    def forward_rate(self, t):
        t = float(t)
        return float(self.ts.forwardRate(t, t, ql.Continuous, ql.NoFrequency, True).rate())

    def handle(self):
        return ql.YieldTermStructureHandle(self.ts)

    @classmethod
    def flat(cls, reference_date, rate, day_count=None):
        """Flat continuously-compounded QuantLib curve anchored at ``reference_date``."""
        day_count = day_count or ql.Actual365Fixed()
        curve = ql.FlatForward(
            DateUtils.to_ql_date(reference_date),
            float(rate),
            day_count,
            ql.Continuous,
            ql.NoFrequency,
        )
        return cls(curve)


class MarketLoader:
    """Load discount curves from CSV exports.

    The loader is intentionally permissive regarding column names: any column
    containing "date", "data" or "vertice" is the pillar date and any column
    containing "discount", "fator" or "desconto" (or named "df") is the
    discount factor.
    """

    def __init__(self, reference_date, day_count=None, calendar=None):
        self.reference_date = DateUtils.to_ql_date(reference_date)
        self.day_count = day_count or ql.Actual365Fixed()
        self.calendar = calendar or ql.NullCalendar()

    def load_curve(self, path, allow_extrapolation=True):
        """Load a discount curve from a CSV and return a ``QuantLibCurve``.

        The reference date is inserted with DF = 1.0; pillars on or before it
        are skipped.
        """
        df = pd.read_csv(path)
        col_date = next(
            (c for c in df.columns if any(k in c.lower() for k in ("date", "data", "vertice"))),
            None,
        )
        col_df = next(
            (
                c
                for c in df.columns
                if c.lower() == "df" or any(k in c.lower() for k in ("discount", "fator", "desconto"))
            ),
            None,
        )
        require(
            col_date is not None and col_df is not None,
            "curve CSV needs a date column and a discount factor column, got %s" % list(df.columns),
        )

        df[col_date] = pd.to_datetime(df[col_date])
        df = df.sort_values(col_date)

        dates = [self.reference_date]
        dfs = [1.0]
        for _, row in df.iterrows():
            d = DateUtils.to_ql_date(row[col_date])
            if d <= self.reference_date:
                continue
            dates.append(d)
            dfs.append(float(row[col_df]))
        require(len(dates) > 1, "curve CSV %s has no pillar after the reference date" % path)

        curve = ql.DiscountCurve(dates, dfs, self.day_count, self.calendar)
        if allow_extrapolation:
            curve.enableExtrapolation()
        LOGGER.debug("Loaded %d curve pillars from %s", len(dates) - 1, path)
        return QuantLibCurve(curve)


def as_curve(curve_or_rate):
    """Return ``curve_or_rate`` as a curve; plain numbers become a ``FlatCurve``."""
    if isinstance(curve_or_rate, YieldCurve):
        return curve_or_rate
    if hasattr(curve_or_rate, "currentLink") or hasattr(curve_or_rate, "zeroRate"):
        return QuantLibCurve(curve_or_rate)
    return FlatCurve(float(curve_or_rate))
