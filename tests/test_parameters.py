import numpy as np
import pytest

from stochastic_pricer.models import G2, HullWhite, Vasicek
from stochastic_pricer.parameters import (
    BoundaryConstraint,
    CalibratedModel,
    NoConstraint,
    Parameter,
    PositiveConstraint,
)


def test_constraints():
    assert PositiveConstraint().test([0.1, 2.0])
    assert not PositiveConstraint().test([0.1, 0.0])
    assert BoundaryConstraint(-1.0, 1.0).test([-1.0, 0.3, 1.0])
    assert not BoundaryConstraint(-1.0, 1.0).test([1.0000001])
    assert NoConstraint().test([-1e9])
    with pytest.raises(ValueError):
        BoundaryConstraint(1.0, -1.0)


def test_parameter_values_are_copied():
    p = Parameter([0.1, 0.2], PositiveConstraint(), "vols")
    v = p.values
    v[0] = -5.0
    assert p.values[0] == 0.1
    assert len(p) == 2
    assert p.value == 0.1
    with pytest.raises(ValueError):
        p.set_values([1.0])


def test_set_params_splits_in_declared_order():
    model = G2(0.05)
    model.set_params([0.2, 0.02, 0.3, 0.015, 0.5])
    assert (model.a, model.sigma, model.b, model.eta, model.rho) == (0.2, 0.02, 0.3, 0.015, 0.5)
    assert model.param_names() == ["a", "sigma", "b", "eta", "rho"]
    np.testing.assert_allclose(model.param_values(), [0.2, 0.02, 0.3, 0.015, 0.5])


@pytest.mark.parametrize("values", [[0.2, 0.05], [0.2, 0.05, 0.01, 0.3], []])
def test_set_params_with_wrong_length_is_a_silent_noop(values):
    model = Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.05)
    model.set_params(values)
    np.testing.assert_array_equal(model.param_values(), [0.1, 0.05, 0.01])
    assert model.is_valid()


def test_invalid_values_are_reported_not_raised():
    model = Vasicek(a=0.1, b=0.05, sigma=0.01, r0=0.05)
    model.set_params([-0.3, 0.07, 0.02])
    assert not model.is_valid()
    assert model.constraint_violations() == ["a"]
    # the other parameters took their new values untouched
    assert model.b == 0.07
    assert model.sigma == 0.02
    model.set_params([0.3, 0.07, 0.02])
    assert model.is_valid()


def test_correlation_out_of_bounds_is_invalid():
    model = G2(0.05)
    values = model.param_values()
    values[4] = 1.5
    model.set_params(values)
    assert not model.is_valid()
    assert model.constraint_violations() == ["rho"]
    assert model.a == 0.1


def test_params_returns_independent_copies(flat_curve):
    model = HullWhite(flat_curve, a=0.1, sigma=0.01)
    params = model.params()
    params[0].set_values([5.0])
    assert model.a == 0.1
    assert isinstance(params[1].constraint, PositiveConstraint)


def test_generate_arguments_hook_runs_after_bulk_write():
    class Counting(CalibratedModel):
        def __init__(self):
            super().__init__([Parameter(1.0), Parameter([2.0, 3.0])])
            self.generated = 0

        def _generate_arguments(self):
            self.generated += 1

    model = Counting()
    model.set_params([1.0, 2.0])
    assert model.generated == 0
    model.set_params([4.0, 5.0, 6.0])
    assert model.generated == 1
    assert model.param_names() == ["p0", "p1[0]", "p1[1]"]
