import logging
import math

import numpy as np

from ..utils import require

LOGGER = logging.getLogger(__name__)

# Times closer than this are treated as the same point.
_DEDUP_TOLERANCE = 1e-12


def _dedupe(times):
    out = []
    for t in sorted(float(t) for t in times):
        if out and abs(t - out[-1]) <= _DEDUP_TOLERANCE:
            continue
        out.append(t)
    return out


class TimeGrid:
    """Ordered partition ``0 = t_0 < t_1 < ... < t_N`` of ``[0, end]``.

    Parameters
    ----------
    times : sequence of float
        Grid points; must start at 0 and be strictly increasing.
    mandatory_times : sequence of float, optional
        Points the caller required the grid to hit (e.g. exercise dates).
    """

    def __init__(self, times, mandatory_times=None):
        times = np.asarray(times, dtype=float).reshape(-1)
        require(times.size >= 2, "a time grid needs at least two points")
        require(times[0] == 0.0, "a time grid must start at 0, got %r" % times[0])
        require(bool(np.all(np.diff(times) > 0.0)), "time grid points must be strictly increasing")
        self._times = times
        self._dt = np.diff(times)
        self._mandatory = list(mandatory_times) if mandatory_times is not None else [float(times[-1])]

    @classmethod
    def uniform(cls, end, steps):
        """``steps`` equal intervals on ``[0, end]``."""
        require(end > 0.0, "grid end must be positive, got %r" % end)
        require(int(steps) > 0, "number of steps must be positive, got %r" % steps)
        times = np.linspace(0.0, float(end), int(steps) + 1)
        return cls(times, [float(end)])

    @classmethod
    def from_times(cls, mandatory, min_steps):
        """Grid hitting every mandatory time with at least ``min_steps`` intervals.

        Each interval between consecutive mandatory times is cut into equal
        sub-steps no longer than ``end / min_steps``.
        """
        require(len(mandatory) > 0, "at least one mandatory time is required")
        require(all(float(t) >= 0.0 for t in mandatory), "mandatory times must be non-negative")
        mandatory = _dedupe(mandatory)
        end = mandatory[-1]
        require(end > 0.0, "the last mandatory time must be positive")
        dt_max = end / max(int(min_steps), 1)

        points = [0.0] + [t for t in mandatory if t > _DEDUP_TOLERANCE]
        times = [0.0]
        for start, stop in zip(points[:-1], points[1:]):
            n = max(int(math.ceil((stop - start) / dt_max - 1e-9)), 1)
            h = (stop - start) / n
            times.extend(start + k * h for k in range(1, n))
            times.append(stop)
        grid = cls(_dedupe(times), mandatory)
        LOGGER.debug("TimeGrid: %d mandatory times, %d steps", len(mandatory), grid.steps)
        return grid

    @property
    def times(self):
        return self._times.copy()

    @property
    def mandatory_times(self):
        return list(self._mandatory)

    @property
    def steps(self):
        return int(self._dt.size)

    @property
    def end(self):
        return float(self._times[-1])

    def dt(self, i):
        return float(self._dt[i])

    def __len__(self):
        return int(self._times.size)

    def __getitem__(self, i):
        return float(self._times[i])

    def __iter__(self):
        return iter(self._times.tolist())

    def closest_index(self, t):
        return int(np.argmin(np.abs(self._times - float(t))))

    def closest_time(self, t):
        return float(self._times[self.closest_index(t)])

    def index(self, t):
        """Index of a time that lies on the grid; raises if ``t`` is not a grid point."""
        i = self.closest_index(t)
        require(
            abs(self._times[i] - float(t)) <= _DEDUP_TOLERANCE * max(1.0, abs(float(t))),
            "time %r is not on the grid (closest %r)" % (t, self._times[i]),
        )
        return i

    def __repr__(self):
        return "TimeGrid(steps=%d, end=%r)" % (self.steps, self.end)
