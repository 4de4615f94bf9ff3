"""
Tests for pairwise-complete covariance estimation and PSD repair.
"""

import numpy as np
import pandas as pd
import pytest

from css.covariance import (
    CovarianceEstimator,
    estimate_covariance,
    pairwise_covariance,
    repair_psd,
)


def test_complete_data_matches_sample_covariance(factor_data):
    """Without missing cells the estimate is the ordinary sample covariance."""
    cov = estimate_covariance(factor_data)
    assert np.allclose(cov, np.cov(factor_data, rowvar=False))


def test_pairwise_uses_jointly_observed_rows():
    X = np.array([
        [1.0, 2.0, 0.5],
        [2.0, np.nan, 1.5],
        [3.0, 7.0, np.nan],
        [4.0, 5.0, 2.0],
        [5.0, 4.0, 0.0],
    ])
    cov = pairwise_covariance(X)

    rows = ~np.isnan(X[:, 0]) & ~np.isnan(X[:, 1])
    expected = np.cov(X[rows, 0], X[rows, 1])[0, 1]
    assert np.isclose(cov[0, 1], expected)
    assert np.isclose(cov[1, 0], expected)
    # Diagonal uses every observed value of the column
    assert np.isclose(cov[2, 2], np.var([0.5, 1.5, 2.0, 0.0], ddof=1))


def test_output_symmetric_and_psd(missing_data):
    cov = estimate_covariance(missing_data)
    assert np.array_equal(cov, cov.T)
    assert np.linalg.eigvalsh(cov).min() >= -1e-10


def test_repair_clamps_negative_eigenvalues():
    # Valid correlations pairwise, not jointly
    S = np.array([
        [1.0, 0.9, -0.9],
        [0.9, 1.0, 0.9],
        [-0.9, 0.9, 1.0],
    ])
    assert np.linalg.eigvalsh(S).min() < 0

    repaired = repair_psd(S)
    eigvals = np.linalg.eigvalsh(repaired)
    assert eigvals.min() >= -1e-12
    assert np.array_equal(repaired, repaired.T)


def test_repair_leaves_psd_matrix_unchanged(factor_data):
    cov = np.cov(factor_data, rowvar=False)
    assert np.allclose(repair_psd(cov), cov)


def test_all_missing_column_gives_zero_row():
    """An all-missing column degrades to zeros instead of raising."""
    rng = np.random.default_rng(3)
    X = rng.normal(size=(40, 10))
    X[:, 4] = np.nan

    cov = estimate_covariance(X)
    assert np.all(cov[4, :] == 0.0)
    assert np.all(cov[:, 4] == 0.0)
    assert np.linalg.eigvalsh(cov).min() >= -1e-10


def test_sparse_pairs_default_to_zero():
    """Pairs with a single co-observed row get a zero covariance."""
    X = np.array([
        [1.0, np.nan],
        [2.0, np.nan],
        [3.0, 1.0],
        [np.nan, 2.0],
        [np.nan, 4.0],
    ])
    cov = pairwise_covariance(X)
    assert cov[0, 1] == 0.0
    assert cov[0, 0] > 0
    assert cov[1, 1] > 0


def test_min_periods_threshold():
    X = np.array([
        [1.0, 2.0],
        [2.0, 1.0],
        [3.0, 5.0],
        [np.nan, 4.0],
    ])
    assert pairwise_covariance(X, min_periods=3)[0, 1] != 0.0
    assert pairwise_covariance(X, min_periods=4)[0, 1] == 0.0


def test_input_not_mutated(missing_data):
    before = missing_data.copy()
    estimate_covariance(missing_data)
    assert np.array_equal(before, missing_data, equal_nan=True)


def test_dataframe_input_with_pandas_na(item_frame):
    frame = item_frame.astype("Float64")
    cov = estimate_covariance(frame)
    assert np.allclose(cov, estimate_covariance(item_frame.to_numpy()))


def test_infinite_values_raise():
    X = np.array([[1.0, 2.0], [np.inf, 1.0], [3.0, 0.0]])
    with pytest.raises(ValueError):
        estimate_covariance(X)


def test_repair_rejects_non_finite():
    with pytest.raises(ValueError):
        repair_psd(np.array([[1.0, np.nan], [np.nan, 1.0]]))


def test_rejects_one_dimensional_input():
    with pytest.raises(ValueError, match="2-D"):
        estimate_covariance(np.arange(5.0))


def test_estimator_attributes(item_frame):
    estimator = CovarianceEstimator().fit(item_frame)

    assert estimator.covariance_.shape == (6, 6)
    assert np.allclose(estimator.covariance_, estimate_covariance(item_frame))
    assert estimator.n_features_in_ == 6
    assert list(estimator.feature_names_in_) == list(item_frame.columns)
    assert estimator.pair_counts_[0, 0] == item_frame["item_1"].notna().sum()
    assert estimator.n_clamped_ >= 0


def test_estimator_rejects_bad_min_periods(factor_data):
    with pytest.raises(ValueError, match="min_periods"):
        CovarianceEstimator(min_periods=1).fit(factor_data)


@pytest.mark.parametrize("min_periods", [0, 1])
def test_pairwise_rejects_bad_min_periods(missing_data, min_periods):
    with pytest.raises(ValueError, match="min_periods"):
        pairwise_covariance(missing_data, min_periods=min_periods)
