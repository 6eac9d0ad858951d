"""Time grids, recombining trees and backward-induction pricing."""

from .binomial import BinomialTree
from .pricing import (
    price_american,
    price_american_trinomial,
    price_bermudan,
    price_discount_bond,
    price_european,
    price_european_trinomial,
)
from .time_grid import TimeGrid
from .trinomial import TrinomialTree
