"""
@module: css.objective
@depends: numpy, scipy
@exports: css_objective, residual_covariance, explained_variance_ratio, SingularSubsetError
@paper_ref: N/A
@data_flow: (covariance, subset) -> unexplained variance

The CSS objective: total variance left after projecting every variable onto
the span of the selected variables,

    trace(C - C[:, S] C[S, S]^-1 C[S, :])
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np
from scipy import linalg

from css.meta import component

logger = logging.getLogger(__name__)

# Smallest accepted share of a selected variable's variance not explained by
# the other selected variables (1 - R^2)
DEFAULT_RCOND = 1e-12


class SingularSubsetError(np.linalg.LinAlgError):
    """Raised when the covariance block of a candidate subset cannot be inverted."""

    def __init__(self, subset: Sequence[int], reason: str):
        self.subset = tuple(int(i) for i in subset)
        self.reason = reason
        super().__init__(f"Covariance block of subset {list(self.subset)} is singular: {reason}")


def _check_covariance(cov) -> np.ndarray:
    cov = np.asarray(cov, dtype=float)
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise ValueError(f"Covariance matrix must be square, got shape {cov.shape}")
    return cov


def _check_subset(subset: Sequence[int], p: int) -> np.ndarray:
    idx = np.asarray(list(subset))
    if idx.ndim != 1 or idx.size == 0:
        raise ValueError("Subset must be a non-empty sequence of column indices")
    if not np.issubdtype(idx.dtype, np.integer):
        raise ValueError(f"Subset indices must be integers, got {idx.dtype}")
    if idx.min() < 0 or idx.max() >= p:
        raise ValueError(f"Subset indices must lie in [0, {p}), got {idx.tolist()}")
    if np.unique(idx).size != idx.size:
        raise ValueError(f"Subset contains duplicate indices: {idx.tolist()}")
    return idx.astype(int)


def _project(cov: np.ndarray, idx: np.ndarray, rcond: float) -> Tuple[np.ndarray, np.ndarray]:
    """Return (C[:, S], C[S, S]^-1 C[S, :]) for a validated subset."""
    block = cov[np.ix_(idx, idx)]
    try:
        factor, lower = linalg.cho_factor(block, lower=True)
    except np.linalg.LinAlgError as exc:
        raise SingularSubsetError(idx, "block is not positive definite") from exc

    # pivot_i^2 / C[i, i] is 1 - R^2 of variable i on the earlier ones, so the
    # check is invariant to rescaling the variables
    variances = np.diag(block)
    if np.any(variances <= 0):
        raise SingularSubsetError(idx, "block has a zero-variance column")
    unexplained = np.diag(factor) ** 2 / variances
    if unexplained.min() < rcond:
        raise SingularSubsetError(idx, "block is numerically rank deficient")

    cross = cov[:, idx]
    return cross, linalg.cho_solve((factor, lower), cross.T)


def css_objective(cov, subset: Sequence[int], rcond: float = DEFAULT_RCOND) -> float:
    """
    Unexplained variance of ``cov`` after projecting onto the columns in ``subset``.

    Args:
        cov: p x p positive semi-definite covariance matrix
        subset: k distinct column indices in [0, p)
        rcond: Smallest accepted 1 - R^2 of a selected variable on the others

    Returns:
        Non-negative objective value; 0 when the subset spans the covariance

    Raises:
        ValueError: On malformed inputs
        SingularSubsetError: If C[S, S] is singular or near-singular
    """
    cov = _check_covariance(cov)
    idx = _check_subset(subset, cov.shape[0])

    cross, solved = _project(cov, idx, rcond)
    explained = float(np.sum(cross.T * solved))
    value = float(np.trace(cov)) - explained

    # Floating-point cancellation can push a perfect fit slightly below zero
    return max(value, 0.0)


def residual_covariance(cov, subset: Sequence[int], rcond: float = DEFAULT_RCOND) -> np.ndarray:
    """Residual covariance C - C[:, S] C[S, S]^-1 C[S, :]."""
    cov = _check_covariance(cov)
    idx = _check_subset(subset, cov.shape[0])

    cross, solved = _project(cov, idx, rcond)
    residual = cov - cross @ solved
    return (residual + residual.T) / 2.0


def explained_variance_ratio(cov, subset: Sequence[int], rcond: float = DEFAULT_RCOND) -> float:
    """Share of total variance explained by ``subset`` (1.0 for a zero matrix)."""
    cov = _check_covariance(cov)
    total = float(np.trace(cov))
    if total <= 0:
        return 1.0
    return 1.0 - css_objective(cov, subset, rcond=rcond) / total


@component(
    name="CSSObjective",
    responsibility="Scores candidate subsets by unexplained covariance trace",
)
class CSSObjective:
    """
    Callable objective bound to one covariance matrix.

    Infeasible (singular) subsets are reported as ``+inf`` by :meth:`safe`,
    which is how the local search treats them.
    """

    def __init__(self, cov, rcond: float = DEFAULT_RCOND):
        self.cov = _check_covariance(cov)
        self.rcond = rcond
        self.n_evaluations = 0
        self.n_infeasible = 0

    @property
    def n_features(self) -> int:
        return self.cov.shape[0]

    def __call__(self, subset: Sequence[int]) -> float:
        self.n_evaluations += 1
        return css_objective(self.cov, subset, rcond=self.rcond)

    def safe(self, subset: Sequence[int]) -> float:
        """Objective value, or ``+inf`` when the subset block is singular."""
        try:
            return self(subset)
        except SingularSubsetError as exc:
            self.n_infeasible += 1
            logger.debug("Infeasible candidate: %s", exc)
            return float("inf")
