import math

import numpy as np
import pytest

from stochastic_pricer.lattices import (
    BinomialTree,
    TimeGrid,
    TrinomialTree,
    price_american,
    price_american_trinomial,
    price_bermudan,
    price_discount_bond,
    price_european,
    price_european_trinomial,
)
from stochastic_pricer.market import FlatCurve
from stochastic_pricer.processes import (
    GeometricBrownianMotionProcess,
    HullWhiteProcess,
    OrnsteinUhlenbeckProcess,
    SquareRootProcess,
    black_scholes_process,
)

SPOT, STRIKE, RATE, VOL, MATURITY = 100.0, 100.0, 0.05, 0.20, 1.0
BS_CALL = 10.450583572185565


def call(s):
    return max(s - STRIKE, 0.0)


def put(s):
    return max(STRIKE - s, 0.0)


@pytest.fixture
def bs_process():
    return black_scholes_process(SPOT, RATE, VOL)


def _step_discount(tree):
    return math.exp(-RATE * tree.time_grid.dt(0))


def test_uniform_grid():
    grid = TimeGrid.uniform(2.0, 8)
    assert grid.steps == 8
    assert len(grid) == 9
    assert grid.dt(3) == pytest.approx(0.25)
    assert grid[0] == 0.0 and grid.end == 2.0
    assert grid.closest_index(0.6) == 2
    assert grid.closest_time(0.6) == pytest.approx(0.5)
    assert grid.mandatory_times == [2.0]


def test_grid_from_mandatory_times():
    grid = TimeGrid.from_times([0.75, 0.25, 1.0, 0.5], 10)
    assert grid.steps == 12
    assert grid.mandatory_times == [0.25, 0.5, 0.75, 1.0]
    for t in (0.25, 0.5, 0.75, 1.0):
        assert grid[grid.index(t)] == pytest.approx(t)
    assert max(grid.dt(i) for i in range(grid.steps)) <= 0.1 + 1e-12
    with pytest.raises(ValueError):
        grid.index(0.3)


def test_grid_from_single_time_is_uniform():
    grid = TimeGrid.from_times([1.0], 4)
    np.testing.assert_allclose(list(grid), [0.0, 0.25, 0.5, 0.75, 1.0])


def test_grid_validation():
    with pytest.raises(ValueError):
        TimeGrid([0.1, 0.5])
    with pytest.raises(ValueError):
        TimeGrid([0.0, 0.5, 0.5])
    with pytest.raises(ValueError):
        TimeGrid.uniform(1.0, 0)


def test_trinomial_probabilities_are_valid():
    process = HullWhiteProcess(FlatCurve(0.04), 0.1, 0.01)
    tree = TrinomialTree(process, TimeGrid.from_times([0.5, 2.0, 5.0], 40))
    for i in range(tree.steps):
        p = tree.probabilities(i)
        assert p.shape == (3, tree.size(i))
        np.testing.assert_allclose(p.sum(axis=0), 1.0, atol=1e-10)
        assert np.all(p >= 0.0) and np.all(p <= 1.0)
        d = tree.descendants(i)
        assert d.min() >= 0 and d.max() < tree.size(i + 1)


def test_trinomial_matches_conditional_moments():
    process = OrnsteinUhlenbeckProcess(0.5, 0.02, x0=0.03, level=0.05)
    tree = TrinomialTree.uniform(process, 2.0, 10)
    i = 4
    states = tree.underlyings(i + 1)
    for index, x in enumerate(tree.underlyings(i)):
        branches = [tree.descendant(i, index, b) for b in range(3)]
        probs = [tree.probability(i, index, b) for b in range(3)]
        mean = sum(p * states[j] for p, j in zip(probs, branches))
        second = sum(p * (states[j] - mean) ** 2 for p, j in zip(probs, branches))
        t, dt = tree.time_grid[i], tree.time_grid.dt(i)
        assert mean == pytest.approx(process.expectation(t, x, dt), abs=1e-12)
        assert second == pytest.approx(process.variance(t, x, dt), rel=1e-9)


def test_trinomial_converges_to_black_scholes(bs_process):
    coarse = price_european_trinomial(TrinomialTree.uniform(bs_process, MATURITY, 200), call,
                                      math.exp(-RATE * MATURITY / 200))
    fine = price_european_trinomial(TrinomialTree.uniform(bs_process, MATURITY, 1000), call,
                                    math.exp(-RATE * MATURITY / 1000))
    assert 5.0 < coarse < 20.0
    assert coarse == pytest.approx(BS_CALL, abs=0.5)
    assert fine == pytest.approx(BS_CALL, abs=0.05)


def test_american_put_dominates_european(bs_process):
    tree = TrinomialTree.uniform(bs_process, MATURITY, 200)
    disc = _step_discount(tree)
    european = price_european_trinomial(tree, put, disc)
    american = price_american_trinomial(tree, put, disc)
    assert american > european
    assert american >= put(SPOT)


def test_bermudan_lies_between_european_and_american(bs_process):
    grid = TimeGrid.from_times([0.25, 0.5, 0.75, 1.0], 100)
    tree = TrinomialTree(bs_process, grid)
    discounts = [math.exp(-RATE * grid.dt(i)) for i in range(grid.steps)]
    european = price_european(tree, put, discounts)
    bermudan = price_bermudan(tree, put, discounts, [0.25, 0.5, 0.75])
    american = price_american(tree, put, discounts)
    assert european < bermudan < american


def test_per_step_discounts_match_scalar(bs_process):
    tree = TrinomialTree.uniform(bs_process, MATURITY, 50)
    disc = _step_discount(tree)
    assert price_european(tree, call, [disc] * 50) == pytest.approx(price_european(tree, call, disc))
    with pytest.raises(ValueError):
        price_european(tree, call, [disc] * 49)


def test_trinomial_rejects_multiplicative_noise():
    with pytest.raises(ValueError):
        TrinomialTree.uniform(GeometricBrownianMotionProcess(SPOT, RATE, VOL), MATURITY, 10)
    with pytest.raises(ValueError):
        TrinomialTree.uniform(SquareRootProcess(0.3, 0.05, 0.1, 0.04), 5.0, 10)


def test_trinomial_only_pricers_check_the_tree(bs_process):
    tree = BinomialTree(bs_process, MATURITY, 50)
    with pytest.raises(ValueError):
        price_european_trinomial(tree, call, 1.0)


@pytest.mark.parametrize("variant", BinomialTree.VARIANTS)
def test_binomial_variants_price_black_scholes(bs_process, variant):
    tree = BinomialTree(bs_process, MATURITY, 200, variant, strike=STRIKE)
    price = price_european(tree, call, _step_discount(tree))
    assert price == pytest.approx(BS_CALL, abs=0.15)
    assert 0.0 <= tree.pu <= 1.0


def test_leisen_reimer_is_accurate_and_odd(bs_process):
    tree = BinomialTree.leisen_reimer(bs_process, MATURITY, 100, STRIKE)
    assert tree.steps == 101
    price = price_european(tree, call, _step_discount(tree))
    assert price == pytest.approx(BS_CALL, abs=1e-3)


def test_binomial_layout(bs_process):
    tree = BinomialTree.cox_ross_rubinstein(bs_process, MATURITY, 4)
    assert tree.size(3) == 4
    np.testing.assert_array_equal(tree.descendants(2), [[0, 1, 2], [1, 2, 3]])
    up = math.exp(VOL * math.sqrt(0.25))
    np.testing.assert_allclose(tree.underlyings(2), [SPOT / up ** 2, SPOT, SPOT * up ** 2])
    assert tree.probability(0, 0, 1) == pytest.approx(tree.pu)
    assert tree.descendant(1, 1, 1) == 2
    with pytest.raises(ValueError):
        BinomialTree(bs_process, MATURITY, 4, "nonexistent")
    with pytest.raises(ValueError):
        BinomialTree(bs_process, MATURITY, 4, "joshi4")


def test_discount_bond_on_flat_rate_tree():
    process = OrnsteinUhlenbeckProcess(0.1, 0.0001, x0=0.03, level=0.03)
    tree = TrinomialTree.uniform(process, 5.0, 50)
    assert price_discount_bond(tree) == pytest.approx(math.exp(-0.15), rel=1e-6)


def test_binomial_american_put_dominates_european(bs_process):
    tree = BinomialTree.cox_ross_rubinstein(bs_process, MATURITY, 200)
    disc = _step_discount(tree)
    european = price_european(tree, put, disc)
    american = price_american(tree, put, disc)
    assert american > european
    assert american >= put(SPOT)


def test_binomial_tree_from_uniform_grid(bs_process):
    grid = TimeGrid.uniform(MATURITY, 50)
    from_grid = BinomialTree(bs_process, grid, variant="trigeorgis")
    assert from_grid.steps == 50 and from_grid.end == MATURITY
    direct = BinomialTree(bs_process, MATURITY, 50, "trigeorgis")
    disc = _step_discount(direct)
    assert price_european(from_grid, call, disc) == pytest.approx(price_european(direct, call, disc))
    with pytest.raises(ValueError):
        BinomialTree(bs_process, TimeGrid.from_times([0.25, 1.0], 10))
    with pytest.raises(ValueError):
        BinomialTree(bs_process, MATURITY)


def test_multiplicative_variants_need_log_space_process():
    process = OrnsteinUhlenbeckProcess(0.1, 0.01, x0=0.03, level=0.03)
    for variant in BinomialTree.MULTIPLICATIVE_VARIANTS:
        with pytest.raises(ValueError):
            BinomialTree(process, 5.0, 51, variant, strike=0.03)
    tree = BinomialTree.cox_ross_rubinstein(process, 5.0, 50)
    np.testing.assert_allclose(tree.underlyings(1), [0.03 - tree.up, 0.03 + tree.up])
