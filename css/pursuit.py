"""
@module: css.pursuit
@depends: numpy, scipy
@exports: MatchingPursuitSelector, matching_pursuit_select
@paper_ref: N/A
@data_flow: raw matrix -> residual energy -> greedy pick -> least-squares refit (x k)

Matching pursuit baseline tolerant of missing entries (BOMP).

At each step the unselected column with the largest residual energy (sum of
squared observed residuals) is picked. Every column is then regressed, without
intercept, on all selected columns using only the rows where the column and
the selected columns are observed, and its residual on those rows is replaced
by the regression residual.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import linalg

from css.covariance import MatrixLike, _as_matrix, _check_n_select
from css.meta import component
from css.selection import BaseSubsetSelector

logger = logging.getLogger(__name__)

# Columns (and refits) need at least this many observed rows
MIN_OBSERVED = 2


def _residual_energy(
    residual: np.ndarray, observed: np.ndarray, available: np.ndarray
) -> np.ndarray:
    energy = np.sum(np.where(observed, residual, 0.0) ** 2, axis=0)
    energy[observed.sum(axis=0) < MIN_OBSERVED] = 0.0
    energy[~available] = -np.inf
    return energy


def _refit_residuals(
    data: np.ndarray,
    observed: np.ndarray,
    residual: np.ndarray,
    selected: List[int],
) -> int:
    """Overwrite ``residual`` in place; returns the number of columns refitted."""
    basis = data[:, selected]
    basis_rows = observed[:, selected].all(axis=1)

    n_refit = 0
    for j in range(data.shape[1]):
        rows = basis_rows & observed[:, j]
        if rows.sum() < MIN_OBSERVED:
            continue
        design = basis[rows]
        target = data[rows, j]
        coef, _, _, _ = linalg.lstsq(design, target)
        residual[rows, j] = target - design @ coef
        n_refit += 1
    return n_refit


def _matching_pursuit(X: MatrixLike, k: int) -> Tuple[List[int], List[float]]:
    data = _as_matrix(X)
    if np.isinf(data).any():
        raise ValueError("Input contains infinite values")
    k = _check_n_select(k, data.shape[1])

    observed = ~np.isnan(data)
    residual = data.copy()
    available = np.ones(data.shape[1], dtype=bool)

    selected: List[int] = []
    scores: List[float] = []
    for step in range(k):
        energy = _residual_energy(residual, observed, available)
        pick = int(np.argmax(energy))

        selected.append(pick)
        scores.append(float(energy[pick]))
        available[pick] = False

        n_refit = _refit_residuals(data, observed, residual, selected)
        logger.debug(
            "Step %s: picked column %s (energy=%.6g), refitted %s column(s)",
            step + 1,
            pick,
            energy[pick],
            n_refit,
        )

    return selected, scores


def matching_pursuit_select(X: MatrixLike, k: int) -> List[int]:
    """
    Greedy matching pursuit selection on data with missing entries.

    Args:
        X: n x p matrix or DataFrame, NaN marks missing cells
        k: Number of columns to select

    Returns:
        k distinct column indices in selection order
    """
    selected, _ = _matching_pursuit(X, k)
    return selected


@component(
    name="MatchingPursuitSelector",
    responsibility="Greedy residual-energy selection with pairwise-complete refits",
)
class MatchingPursuitSelector(BaseSubsetSelector):
    """
    Scikit-learn compatible wrapper around :func:`matching_pursuit_select`.

    After ``fit``, ``selected_`` holds the columns in selection order and
    ``scores_`` the residual energy of each column when it was picked.
    """

    def __init__(self, n_select: int = 1):
        self.n_select = n_select

    def fit(self, X: MatrixLike, y: Optional[pd.Series] = None) -> "MatchingPursuitSelector":
        selected, scores = _matching_pursuit(X, self.n_select)
        self.scores_ = np.asarray(scores)
        self._store_selection(X, selected)
        logger.info("Matching pursuit selected %s", self.selected_)
        return self
