"""
@module: css.compare
@depends: css.swapping, css.pursuit, css.bisection, pandas
@exports: compare_selectors, random_subset_objectives
@data_flow: raw matrix -> every selector -> subsets scored on a reference covariance -> comparison table
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from css.bisection import bisection_group_select
from css.config import BisectionConfig, CovarianceConfig, SelectionMethod, SwappingConfig
from css.covariance import MatrixLike, _as_matrix, _check_n_select, estimate_covariance
from css.objective import SingularSubsetError, _check_covariance, css_objective
from css.pursuit import matching_pursuit_select
from css.swapping import RandomStateLike, child_seed, seed_sequence_from, swapping_select

logger = logging.getLogger(__name__)

_COLUMNS = ["method", "subset", "objective", "explained_ratio", "found", "runtime_s"]


def random_subset_objectives(
    cov, k: int, n_draws: int = 100, random_state: RandomStateLike = None
) -> np.ndarray:
    """Objective values of ``n_draws`` uniformly random subsets (``inf`` when singular)."""
    cov = _check_covariance(cov)
    k = _check_n_select(k, cov.shape[0])
    rng = np.random.default_rng(seed_sequence_from(random_state))

    values = np.empty(n_draws)
    for i in range(n_draws):
        subset = rng.choice(cov.shape[0], size=k, replace=False)
        try:
            values[i] = css_objective(cov, subset)
        except SingularSubsetError:
            values[i] = np.inf
    return values


def _score_row(
    method: SelectionMethod,
    subset: Optional[Iterable[int]],
    reference_cov: np.ndarray,
    runtime: float,
) -> Dict[str, object]:
    total = float(np.trace(reference_cov))
    row: Dict[str, object] = {
        "method": method.value,
        "subset": tuple(sorted(int(i) for i in subset)) if subset is not None else (),
        "objective": np.nan,
        "explained_ratio": np.nan,
        "found": False,
        "runtime_s": runtime,
    }
    if subset is None:
        return row

    try:
        objective = css_objective(reference_cov, row["subset"])
    except SingularSubsetError as exc:
        logger.warning("%s subset cannot be scored: %s", method.value, exc)
        return row

    row["objective"] = objective
    row["explained_ratio"] = 1.0 - objective / total if total > 0 else 1.0
    row["found"] = True
    return row


def compare_selectors(
    X: MatrixLike,
    k: int,
    reference_cov=None,
    methods: Optional[List[SelectionMethod]] = None,
    swapping_config: Optional[SwappingConfig] = None,
    bisection_config: Optional[BisectionConfig] = None,
    covariance_config: Optional[CovarianceConfig] = None,
    random_state: RandomStateLike = None,
) -> pd.DataFrame:
    """
    Run each selector on ``X`` and score its subset on a common covariance.

    The swapping search runs on the covariance estimated from ``X``; every
    subset is then scored against ``reference_cov`` (a ground-truth matrix in
    simulations, by default the same estimate).

    Args:
        X: n x p matrix or DataFrame, NaN marks missing cells
        k: Number of columns to select
        reference_cov: Covariance used for scoring
        methods: Selectors to run (default: all)
        swapping_config: Restarts / caps for the swapping search
        bisection_config: Tolerances for the bisection baseline
        covariance_config: Pairwise estimation settings
        random_state: Seed for swapping restarts and the random baseline

    Returns:
        DataFrame with columns method, subset, objective, explained_ratio,
        found, runtime_s. Failed baselines have found=False and NaN scores.
    """
    data = _as_matrix(X)
    k = _check_n_select(k, data.shape[1])
    methods = list(methods) if methods is not None else list(SelectionMethod)
    swapping_config = swapping_config or SwappingConfig()
    bisection_config = bisection_config or BisectionConfig()
    covariance_config = covariance_config or CovarianceConfig()

    estimated = estimate_covariance(data, min_periods=covariance_config.min_periods)
    if reference_cov is None:
        reference_cov = estimated
    reference_cov = _check_covariance(reference_cov)
    if reference_cov.shape[0] != data.shape[1]:
        raise ValueError(
            f"reference_cov is {reference_cov.shape[0]}x{reference_cov.shape[0]}, "
            f"data has {data.shape[1]} columns"
        )

    root = seed_sequence_from(random_state)
    rows = []
    for method in methods:
        start = time.perf_counter()
        subset: Optional[Iterable[int]] = None

        if method is SelectionMethod.SWAPPING:
            result = swapping_select(
                estimated,
                k,
                restarts=swapping_config.restarts,
                random_state=child_seed(root, 0),
                max_swaps=swapping_config.max_swaps,
                n_jobs=swapping_config.n_jobs,
            )
            subset = result.subset if result.feasible else None
        elif method is SelectionMethod.MATCHING_PURSUIT:
            subset = matching_pursuit_select(data, k)
        elif method is SelectionMethod.BISECTION:
            outcome = bisection_group_select(
                data,
                k,
                tol=bisection_config.tol,
                max_iter=bisection_config.max_iter,
                lasso_max_iter=bisection_config.lasso_max_iter,
            )
            subset = outcome.indices if outcome.found else None
        elif method is SelectionMethod.RANDOM:
            rng = np.random.default_rng(child_seed(root, 1))
            subset = rng.choice(data.shape[1], size=k, replace=False)
        else:
            raise ValueError(f"Unknown selection method: {method!r}")

        rows.append(_score_row(method, subset, reference_cov, time.perf_counter() - start))

    table = pd.DataFrame(rows, columns=_COLUMNS)
    logger.info("Compared %s selector(s) at k=%s", len(table), k)
    return table
