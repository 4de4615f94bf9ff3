"""
@module: css.covariance
@depends: numpy, pandas, scipy, sklearn
@exports: CovarianceEstimator, estimate_covariance, pairwise_covariance, repair_psd
@paper_ref: N/A
@data_flow: raw matrix (NaN = missing) -> pairwise-complete covariance -> PSD covariance

Covariance estimation from partially observed data.

Each entry is estimated from the rows where both columns are observed, so the
assembled matrix is generally not positive semi-definite. Negative eigenvalues
are clamped to zero and the matrix is reconstructed from its eigenvectors.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import linalg
from sklearn.base import BaseEstimator

from css.config import CovarianceConfig
from css.meta import component

logger = logging.getLogger(__name__)

MatrixLike = Union[np.ndarray, pd.DataFrame]


def _as_matrix(X: MatrixLike) -> np.ndarray:
    """Return a float copy of ``X`` with every missing cell encoded as NaN."""
    if isinstance(X, pd.DataFrame):
        data = X.to_numpy(dtype=float, na_value=np.nan, copy=True)
    else:
        data = np.array(X, dtype=float, copy=True)

    if data.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got {data.ndim} dimension(s)")
    if data.shape[1] == 0:
        raise ValueError("Matrix has no columns")
    return data


def _check_n_select(k: int, p: int) -> int:
    if isinstance(k, bool) or int(k) != k:
        raise ValueError(f"k must be an integer, got {k!r}")
    k = int(k)
    if k < 1 or k > p:
        raise ValueError(f"k must be between 1 and {p}, got {k}")
    return k


def pairwise_covariance(X: MatrixLike, min_periods: int = 2) -> np.ndarray:
    """
    Pairwise-complete sample covariance.

    Entry (i, j) is the sample covariance (ddof=1) of columns i and j over
    the rows where both are observed. Pairs with fewer than ``min_periods``
    jointly observed rows are set to 0.

    Args:
        X: n x p matrix, NaN marks missing cells
        min_periods: Minimum jointly observed rows per pair (at least 2)

    Returns:
        Symmetric p x p matrix (not necessarily PSD)

    Raises:
        ValueError: If the data contains infinite values or min_periods < 2
    """
    CovarianceConfig(min_periods=min_periods)
    data = _as_matrix(X)
    if np.isinf(data).any():
        raise ValueError("Input contains infinite values")

    observed = (~np.isnan(data)).astype(float)
    counts = observed.T @ observed

    # pandas computes each entry over the rows observed in both columns
    cov = pd.DataFrame(data).cov(min_periods=min_periods).to_numpy(copy=True)

    sparse = counts < min_periods
    cov[sparse] = 0.0
    n_sparse = int(np.triu(sparse).sum())
    if n_sparse:
        logger.debug(
            "%s column pair(s) have fewer than %s jointly observed rows; covariance set to 0",
            n_sparse,
            min_periods,
        )

    return (cov + cov.T) / 2.0


def _repair_psd(cov: np.ndarray) -> Tuple[np.ndarray, int, float]:
    """PSD repair returning (matrix, number of clamped eigenvalues, minimum eigenvalue)."""
    cov = np.asarray(cov, dtype=float)
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise ValueError(f"Covariance matrix must be square, got shape {cov.shape}")

    repaired = np.zeros_like(cov)
    # Zero rows and columns are decoupled from the rest; keep them exactly zero
    active = np.flatnonzero(np.any(cov != 0, axis=0) | np.any(cov != 0, axis=1))
    if active.size == 0:
        return repaired, 0, 0.0

    block = cov[np.ix_(active, active)]
    eigvals, eigvecs = linalg.eigh(block)

    n_clamped = int(np.sum(eigvals < 0))
    min_eigenvalue = float(eigvals[0])
    clamped = np.clip(eigvals, 0.0, None)

    rebuilt = (eigvecs * clamped) @ eigvecs.T
    repaired[np.ix_(active, active)] = (rebuilt + rebuilt.T) / 2.0
    return repaired, n_clamped, min_eigenvalue


def repair_psd(cov: MatrixLike) -> np.ndarray:
    """
    Force a symmetric matrix to be positive semi-definite.

    Negative eigenvalues are clamped to 0 and the matrix is rebuilt as
    V diag(w) V^T. The output is exactly symmetric.

    Raises:
        ValueError: If the matrix is not square or contains NaN/inf
        numpy.linalg.LinAlgError: If the eigendecomposition does not converge
    """
    repaired, n_clamped, min_eigenvalue = _repair_psd(np.asarray(cov, dtype=float))
    if n_clamped:
        logger.debug(
            "PSD repair clamped %s negative eigenvalue(s) (min %.3g)", n_clamped, min_eigenvalue
        )
    return repaired


def estimate_covariance(X: MatrixLike, min_periods: int = 2) -> np.ndarray:
    """
    Estimate a PSD covariance matrix from data with missing entries.

    Args:
        X: n x p matrix or DataFrame, NaN marks missing cells
        min_periods: Minimum jointly observed rows per column pair

    Returns:
        p x p symmetric positive semi-definite covariance matrix

    Example:
        >>> X = np.array([[1.0, 2.0], [2.0, np.nan], [3.0, 7.0]])
        >>> cov = estimate_covariance(X)
        >>> cov.shape
        (2, 2)
    """
    return repair_psd(pairwise_covariance(X, min_periods=min_periods))


@component(
    name="CovarianceEstimator",
    responsibility="Pairwise-complete covariance with PSD repair",
)
class CovarianceEstimator(BaseEstimator):
    """
    Scikit-learn style wrapper around :func:`estimate_covariance`.

    Example:
        >>> estimator = CovarianceEstimator().fit(df)
        >>> estimator.covariance_.shape
        (10, 10)
    """

    def __init__(self, min_periods: int = 2):
        self.min_periods = min_periods

    def fit(self, X: MatrixLike, y: Optional[pd.Series] = None) -> "CovarianceEstimator":
        """Estimate the covariance matrix of ``X``."""
        config = CovarianceConfig(min_periods=self.min_periods)
        data = _as_matrix(X)

        raw = pairwise_covariance(data, min_periods=config.min_periods)
        self.covariance_, self.n_clamped_, self.min_eigenvalue_ = _repair_psd(raw)

        observed = (~np.isnan(data)).astype(int)
        self.pair_counts_ = observed.T @ observed
        self.n_features_in_ = data.shape[1]
        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)

        logger.info(
            "Estimated %sx%s covariance from %s rows (%.1f%% missing, %s eigenvalue(s) clamped)",
            data.shape[1],
            data.shape[1],
            data.shape[0],
            100.0 * float(np.isnan(data).mean()) if data.size else 0.0,
            self.n_clamped_,
        )
        return self
