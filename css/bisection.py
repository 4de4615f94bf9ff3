"""
@module: css.bisection
@depends: sklearn
@exports: SparsityBisectionSelector, bisection_group_select, BisectionResult, NoExactSparsityError
@paper_ref: N/A
@data_flow: raw matrix -> mean imputation -> Lasso(alpha) bisection -> exactly-k support

L1-path baseline. The first column is the response and the remaining columns
are predictors; the penalty is bisected on [0, alpha_max] until the Lasso fit
has exactly k non-zero coefficients. When the bracket collapses without an
exact match the search reports failure instead of an approximate subset.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.impute import SimpleImputer
from sklearn.linear_model import Lasso

from css.config import BisectionConfig
from css.covariance import MatrixLike, _as_matrix, _check_n_select
from css.meta import component
from css.selection import BaseSubsetSelector

logger = logging.getLogger(__name__)


class NoExactSparsityError(RuntimeError):
    """Raised when no penalty yields exactly the requested number of non-zeros."""


@dataclass(frozen=True)
class BisectionResult:
    """Outcome of the sparsity bisection.

    ``indices`` refer to columns of the original matrix (predictor j is
    column j + 1) and are empty when ``found`` is False.
    """

    found: bool
    k: int
    indices: Tuple[int, ...] = ()
    alpha: Optional[float] = None
    alpha_max: float = 0.0
    n_iterations: int = 0
    n_nonzero_history: Tuple[int, ...] = ()

    def unwrap(self) -> Tuple[int, ...]:
        """Return the selected indices or raise :class:`NoExactSparsityError`."""
        if not self.found:
            raise NoExactSparsityError(
                f"No penalty in [0, {self.alpha_max:.6g}] gives exactly {self.k} non-zero "
                f"coefficients after {self.n_iterations} bisection steps "
                f"(observed counts: {sorted(set(self.n_nonzero_history))})"
            )
        return self.indices


def mean_impute(X: MatrixLike) -> np.ndarray:
    """Replace missing cells by their column's observed mean (0 for empty columns)."""
    data = _as_matrix(X)
    imputer = SimpleImputer(strategy="mean", keep_empty_features=True)
    return imputer.fit_transform(data)


def _lasso_support(
    predictors: np.ndarray, response: np.ndarray, alpha: float, max_iter: int
) -> np.ndarray:
    model = Lasso(alpha=alpha, fit_intercept=True, max_iter=max_iter)
    with warnings.catch_warnings():
        # Fits with tiny penalties rarely reach tol; only the support is used
        warnings.simplefilter("ignore", ConvergenceWarning)
        model.fit(predictors, response)
    return np.flatnonzero(model.coef_)


def bisection_group_select(
    X: MatrixLike,
    k: int,
    tol: float = 1e-8,
    max_iter: int = 200,
    lasso_max_iter: int = 10000,
) -> BisectionResult:
    """
    Bisect the Lasso penalty until exactly ``k`` predictors are active.

    Args:
        X: n x p matrix or DataFrame, NaN marks missing cells; column 0 is
            the response
        k: Number of predictors to select
        tol: Stop once the bracket is narrower than ``tol * alpha_max``
        max_iter: Hard cap on bisection steps
        lasso_max_iter: Coordinate descent iterations per fit

    Returns:
        BisectionResult; ``found`` is False when no exact match exists
    """
    config = BisectionConfig(tol=tol, max_iter=max_iter, lasso_max_iter=lasso_max_iter)
    data = mean_impute(X)
    n, p = data.shape
    if p < 2:
        raise ValueError("Bisection needs a response column and at least one predictor")
    k = _check_n_select(k, p)

    response = data[:, 0]
    predictors = data[:, 1:]

    centred_x = predictors - predictors.mean(axis=0)
    centred_y = response - response.mean()
    alpha_max = float(np.max(np.abs(centred_x.T @ centred_y)) / n)

    if alpha_max <= 0:
        logger.warning("Response is uncorrelated with every predictor; nothing to bisect")
        return BisectionResult(found=False, k=k, alpha_max=alpha_max)

    lo, hi = 0.0, alpha_max
    history: List[int] = []
    for iteration in range(1, config.max_iter + 1):
        mid = (lo + hi) / 2.0
        support = _lasso_support(predictors, response, mid, config.lasso_max_iter)
        history.append(int(support.size))
        logger.debug("Bisection step %s: alpha=%.6g non-zeros=%s", iteration, mid, support.size)

        if support.size == k:
            indices = tuple(int(j) + 1 for j in support)
            logger.info("Bisection found %s predictors at alpha=%.6g: %s", k, mid, indices)
            return BisectionResult(
                found=True,
                k=k,
                indices=indices,
                alpha=mid,
                alpha_max=alpha_max,
                n_iterations=iteration,
                n_nonzero_history=tuple(history),
            )

        if support.size > k:
            lo = mid
        else:
            hi = mid

        if hi - lo < config.tol * alpha_max:
            break

    logger.warning(
        "Bisection found no penalty with exactly %s non-zeros after %s steps", k, len(history)
    )
    return BisectionResult(
        found=False,
        k=k,
        alpha_max=alpha_max,
        n_iterations=len(history),
        n_nonzero_history=tuple(history),
    )


@component(
    name="SparsityBisectionSelector",
    responsibility="Lasso penalty bisection to an exact support size",
)
class SparsityBisectionSelector(BaseSubsetSelector):
    """
    Scikit-learn compatible wrapper around :func:`bisection_group_select`.

    ``fit`` raises :class:`NoExactSparsityError` when no exact-k support
    exists. The response column (column 0) is never part of the selection.
    """

    def __init__(
        self,
        n_select: int = 1,
        tol: float = 1e-8,
        max_iter: int = 200,
        lasso_max_iter: int = 10000,
    ):
        self.n_select = n_select
        self.tol = tol
        self.max_iter = max_iter
        self.lasso_max_iter = lasso_max_iter

    def fit(self, X: MatrixLike, y: Optional[pd.Series] = None) -> "SparsityBisectionSelector":
        self.result_ = bisection_group_select(
            X,
            self.n_select,
            tol=self.tol,
            max_iter=self.max_iter,
            lasso_max_iter=self.lasso_max_iter,
        )
        self._store_selection(X, self.result_.unwrap())
        self.alpha_ = self.result_.alpha
        return self
