"""Calibration parameters, their constraints and the calibrated-model contract.

A model owns an ordered list of :class:`Parameter` objects. An external
optimizer sees them only as one flat vector:

- ``params()`` returns copies of the parameters (read),
- ``param_values()`` returns the flat vector,
- ``set_params(values)`` splits a flat vector across the parameters in
  declared order (bulk write).

``set_params`` with a vector of the wrong length is a silent no-op: the
model keeps its current values and nothing is raised, so an optimizer that
overshoots or undershoots the vector length will not be told. Constraint
violations are not rejected either; ``is_valid()`` reports them on demand and
must be checked by the caller after every write.

A model instance must not be calibrated from two threads at once.
"""

import abc
import copy
import logging

import numpy as np

from .utils import require

LOGGER = logging.getLogger(__name__)


class Constraint(abc.ABC):
    """Validity predicate over a parameter's value vector."""

    @abc.abstractmethod
    def test(self, values):
        """Return True when every entry of ``values`` is admissible."""


class NoConstraint(Constraint):
    def test(self, values):
        return True

    def __repr__(self):
        return "NoConstraint()"


class PositiveConstraint(Constraint):
    """Every value strictly greater than zero."""

    def test(self, values):
        return bool(np.all(np.asarray(values, dtype=float) > 0.0))

    def __repr__(self):
        return "PositiveConstraint()"


class BoundaryConstraint(Constraint):
    """Every value inside the closed interval [lower, upper]."""

    def __init__(self, lower, upper):
        require(lower <= upper, "lower bound %r above upper bound %r" % (lower, upper))
        self.lower = float(lower)
        self.upper = float(upper)

    def test(self, values):
        v = np.asarray(values, dtype=float)
        return bool(np.all((v >= self.lower) & (v <= self.upper)))

    def __repr__(self):
        return "BoundaryConstraint(%r, %r)" % (self.lower, self.upper)


class Parameter:
    """A vector of real values with one attached constraint.

    Parameters
    ----------
    values : float or sequence of float
        Initial values; a scalar gives a one-element parameter.
    constraint : Constraint, optional
        Defaults to :class:`NoConstraint`.
    name : str, optional
        Label used in logs and reports only.
    """

    def __init__(self, values, constraint=None, name=None):
        self._values = np.atleast_1d(np.asarray(values, dtype=float)).copy()
        require(self._values.ndim == 1 and self._values.size > 0, "parameter needs at least one value")
        self.constraint = constraint if constraint is not None else NoConstraint()
        self.name = name

    @classmethod
    def constant(cls, value, name=None):
        """Unconstrained scalar parameter."""
        return cls(value, NoConstraint(), name)

    @property
    def values(self):
        return self._values.copy()

    @property
    def value(self):
        """First (usually only) value."""
        return float(self._values[0])

    def __len__(self):
        return int(self._values.size)

    def set_values(self, values):
        values = np.atleast_1d(np.asarray(values, dtype=float))
        require(values.size == self._values.size, "parameter %s expects %d values, got %d" % (
            self.name, self._values.size, values.size))
        self._values = values.copy()

    def is_valid(self):
        return self.constraint.test(self._values)

    def __repr__(self):
        return "Parameter(name=%r, values=%s, constraint=%r)" % (self.name, self._values.tolist(), self.constraint)


class CalibratedModel:
    """Base class for anything exposing the flat-vector calibration contract.

    Subclasses pass their parameters in declared order and read them back
    through ``self._arguments``. ``_generate_arguments`` is called after each
    successful bulk write so a subclass can refresh derived quantities.
    """

    def __init__(self, arguments):
        self._arguments = list(arguments)

    def params(self):
        return [copy.deepcopy(p) for p in self._arguments]

    def param_values(self):
        return np.concatenate([p.values for p in self._arguments])

    def param_names(self):
        names = []
        for i, p in enumerate(self._arguments):
            base = p.name or "p%d" % i
            if len(p) == 1:
                names.append(base)
            else:
                names.extend("%s[%d]" % (base, j) for j in range(len(p)))
        return names

    def set_params(self, values):
        values = np.asarray(values, dtype=float).reshape(-1)
        expected = sum(len(p) for p in self._arguments)
        if values.size != expected:
            LOGGER.debug(
                "%s.set_params ignored: got %d values, expected %d",
                type(self).__name__, values.size, expected,
            )
            return
        offset = 0
        for p in self._arguments:
            n = len(p)
            p.set_values(values[offset:offset + n])
            offset += n
        self._generate_arguments()

    def _generate_arguments(self):
        pass

    def is_valid(self):
        return all(p.is_valid() for p in self._arguments)

    def constraint_violations(self):
        """Names of the parameters whose constraint currently fails."""
        return [p.name or "p%d" % i for i, p in enumerate(self._arguments) if not p.is_valid()]
