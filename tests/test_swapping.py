"""
Tests for the multi-start swapping search.
"""

import itertools

import numpy as np
import pandas as pd
import pytest

from css.covariance import estimate_covariance
from css.objective import CSSObjective, css_objective
from css.swapping import (
    SwappingSelector,
    child_seed,
    local_search,
    seed_sequence_from,
    swapping_select,
)


@pytest.fixture
def cov(factor_data):
    return estimate_covariance(factor_data)


def _brute_force(cov, k):
    best = None
    for subset in itertools.combinations(range(cov.shape[0]), k):
        value = css_objective(cov, subset)
        if best is None or value < best[1]:
            best = (subset, value)
    return best


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_dominant_column_selected(dominant_data, seed):
    """One dominant column: k=1 picks it with near-zero unexplained variance."""
    cov = estimate_covariance(dominant_data)
    result = swapping_select(cov, k=1, restarts=5, random_state=seed)

    assert result.subset == (0,)
    assert result.objective / np.trace(cov) < 1e-4


def test_matches_brute_force_on_small_problem(cov):
    subset, value = _brute_force(cov, 2)
    result = swapping_select(cov, k=2, restarts=10, random_state=0)
    assert result.objective == pytest.approx(value)
    assert result.subset == tuple(sorted(subset))


def test_result_shape(cov):
    result = swapping_select(cov, k=3, restarts=4, random_state=11)

    assert len(result.subset) == 3
    assert len(set(result.subset)) == 3
    assert list(result.subset) == sorted(result.subset)
    assert len(result.restart_objectives) == 4
    assert result.objective == min(result.restart_objectives)
    assert result.objective == pytest.approx(css_objective(cov, result.subset))
    assert result.method == "swapping"
    assert result.feasible
    assert result.converged


def test_more_restarts_never_worse(cov):
    """Restart r is seeded independently of the restart count."""
    previous = np.inf
    for restarts in (1, 2, 5, 10):
        result = swapping_select(cov, k=2, restarts=restarts, random_state=123)
        assert result.objective <= previous
        previous = result.objective

    few = swapping_select(cov, k=2, restarts=3, random_state=123)
    many = swapping_select(cov, k=2, restarts=8, random_state=123)
    assert many.restart_objectives[:3] == few.restart_objectives


def test_same_seed_is_reproducible(cov):
    a = swapping_select(cov, k=3, restarts=5, random_state=99)
    b = swapping_select(cov, k=3, restarts=5, random_state=99)
    assert a == b


def test_generator_random_state(cov):
    rng = np.random.default_rng(5)
    result = swapping_select(cov, k=2, restarts=3, random_state=rng)
    assert len(result.subset) == 2


def test_parallel_matches_sequential(cov):
    sequential = swapping_select(cov, k=2, restarts=6, random_state=17)
    parallel = swapping_select(cov, k=2, restarts=6, random_state=17, n_jobs=2)
    assert parallel.subset == sequential.subset
    assert parallel.restart_objectives == sequential.restart_objectives


def test_ties_keep_first_restart():
    """Identity covariance: every subset ties, so restart 0 wins."""
    result = swapping_select(np.eye(6), k=2, restarts=5, random_state=3)
    assert result.subset == tuple(sorted(result.outcomes[0].subset))


def test_local_search_first_improvement_order():
    """The first improving swap in scan order is taken, not the best one."""
    cov = np.diag([1.0, 2.0, 3.0, 4.0])
    subset, value, n_swaps, converged = local_search(CSSObjective(cov), [0])

    # 0 -> 1 -> 2 -> 3, one column at a time
    assert subset == [3]
    assert n_swaps == 3
    assert value == pytest.approx(6.0)
    assert converged


def test_local_search_respects_max_swaps():
    cov = np.diag([1.0, 2.0, 3.0, 4.0])
    subset, _, n_swaps, converged = local_search(CSSObjective(cov), [0], max_swaps=1)
    assert subset == [1]
    assert n_swaps == 1
    assert not converged


def test_singular_candidates_are_skipped():
    """A zero-variance column is infeasible and never selected."""
    cov = np.diag([0.0, 1.0, 2.0, 3.0])
    result = swapping_select(cov, k=2, restarts=5, random_state=0)
    assert 0 not in result.subset
    assert result.subset == (2, 3)


def test_singular_initial_subset_recovers():
    cov = np.diag([0.0, 1.0, 2.0])
    subset, value, _, _ = local_search(CSSObjective(cov), [0])
    assert subset == [2]
    assert value == pytest.approx(1.0)


def test_all_infeasible_reports_inf():
    result = swapping_select(np.zeros((3, 3)), k=1, restarts=2, random_state=0)
    assert result.objective == float("inf")
    assert not result.feasible


def test_all_missing_column_not_selected():
    rng = np.random.default_rng(8)
    X = rng.normal(size=(60, 10))
    X[:, 4] = np.nan
    cov = estimate_covariance(X)

    result = swapping_select(cov, k=3, restarts=5, random_state=1)
    assert 4 not in result.subset
    assert np.isfinite(result.objective)


@pytest.mark.parametrize("k", [0, 7, 2.5])
def test_invalid_k(cov, k):
    with pytest.raises(ValueError, match="k must"):
        swapping_select(cov, k=k)


def test_invalid_restarts(cov):
    with pytest.raises(ValueError, match="restarts"):
        swapping_select(cov, k=2, restarts=0)


def test_child_seeds_independent_of_count():
    root = seed_sequence_from(42)
    first = np.random.default_rng(child_seed(root, 0)).integers(1000, size=5)
    again = np.random.default_rng(child_seed(seed_sequence_from(42), 0)).integers(1000, size=5)
    assert np.array_equal(first, again)


def test_seed_sequence_rejects_unknown():
    with pytest.raises(ValueError):
        seed_sequence_from("seed")


def test_selector_fit_transform(item_frame):
    selector = SwappingSelector(n_select=2, restarts=5, random_state=0)
    reduced = selector.fit_transform(item_frame)

    assert isinstance(reduced, pd.DataFrame)
    assert list(reduced.columns) == selector.selected_features_
    assert selector.get_support().sum() == 2
    assert list(selector.get_support(indices=True)) == selector.selected_
    assert selector.objective_ == pytest.approx(
        css_objective(selector.covariance_, selector.selected_)
    )


def test_selector_precomputed(cov):
    selector = SwappingSelector(n_select=2, restarts=5, random_state=0, precomputed=True)
    selector.fit(cov)
    expected = swapping_select(cov, k=2, restarts=5, random_state=0)
    assert tuple(selector.selected_) == expected.subset


def test_transform_before_fit():
    with pytest.raises(RuntimeError, match="fit"):
        SwappingSelector(n_select=1).transform(np.zeros((2, 3)))


def test_widely_different_variances_are_feasible():
    result = swapping_select(np.diag([1e8, 1e-5]), k=2, restarts=3, random_state=0)
    assert result.feasible
    assert result.subset == (0, 1)
    assert result.objective == pytest.approx(0.0, abs=1e-6)


def test_rescaled_covariance_full_subset_feasible(cov):
    d = np.array([1e4, 1.0, 1.0, 1e-3, 1.0, 1.0])
    scaled = cov * np.outer(d, d)

    result = swapping_select(scaled, k=6, restarts=2, random_state=0)
    assert result.feasible
    assert result.subset == (0, 1, 2, 3, 4, 5)
    assert np.isfinite(CSSObjective(scaled).safe([0, 3]))
