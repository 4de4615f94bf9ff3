"""
@module: css.swapping
@depends: css.objective, css.covariance, joblib
@exports: SwappingSelector, swapping_select, SelectionResult
@paper_ref: N/A
@data_flow: covariance -> random initial subsets -> first-improvement swaps -> best subset

Multi-start local search ("swapping") for column subset selection.

Each restart draws k distinct columns uniformly at random and repeatedly
replaces one member by a non-member. Positions are scanned in ascending order
and, for each position, candidates in ascending column order. The FIRST swap
that strictly lowers the objective is accepted and the scan starts again at
position 0; a full pass without improvement ends the restart. The best subset
over all restarts is returned, ties keeping the earliest restart.

Restart r draws its random numbers from child r of a root ``SeedSequence``,
so adding restarts never changes the earlier ones and the best objective can
only stay equal or improve as ``restarts`` grows.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from css.config import CovarianceConfig, SwappingConfig
from css.covariance import _check_n_select, estimate_covariance
from css.meta import component
from css.objective import CSSObjective, _check_covariance
from css.selection import BaseSubsetSelector

logger = logging.getLogger(__name__)

RandomStateLike = Union[None, int, np.integer, np.random.Generator, np.random.SeedSequence]


class SearchState(Enum):
    """States of a single local search."""

    SCANNING = "scanning"
    IMPROVED = "improved"
    CONVERGED = "converged"


@dataclass(frozen=True)
class RestartOutcome:
    """Result of one restart of the local search."""

    restart: int
    initial: Tuple[int, ...]
    subset: Tuple[int, ...]
    objective: float
    n_swaps: int
    converged: bool


@dataclass(frozen=True)
class SelectionResult:
    """Best subset found by a selector, with its objective value."""

    subset: Tuple[int, ...]
    objective: float
    method: str = "swapping"
    restart_objectives: Tuple[float, ...] = ()
    n_swaps: int = 0
    converged: bool = True
    outcomes: Tuple[RestartOutcome, ...] = field(default=(), repr=False)

    @property
    def k(self) -> int:
        return len(self.subset)

    @property
    def feasible(self) -> bool:
        return math.isfinite(self.objective)


def seed_sequence_from(random_state: RandomStateLike) -> np.random.SeedSequence:
    """
    Build the root ``SeedSequence`` for a run from an explicit random source.

    Integers and ``SeedSequence`` objects are used as-is; a ``Generator`` is
    advanced by one draw, so repeated calls with the same generator give
    different roots.
    """
    if random_state is None:
        return np.random.SeedSequence()
    if isinstance(random_state, np.random.SeedSequence):
        return random_state
    if isinstance(random_state, np.random.Generator):
        return np.random.SeedSequence(int(random_state.integers(0, 2**63)))
    if isinstance(random_state, (int, np.integer)) and not isinstance(random_state, bool):
        if random_state < 0:
            raise ValueError("random_state must be non-negative")
        return np.random.SeedSequence(int(random_state))
    raise ValueError(f"Unsupported random_state: {random_state!r}")


def child_seed(root: np.random.SeedSequence, index: int) -> np.random.SeedSequence:
    """Child ``index`` of ``root``; independent of how many children are used."""
    return np.random.SeedSequence(root.entropy, spawn_key=tuple(root.spawn_key) + (index,))


def _first_improving_swap(
    objective: CSSObjective,
    subset: List[int],
    members: np.ndarray,
    current: float,
) -> Optional[Tuple[int, int, float]]:
    """Scan (position, candidate) pairs in order; return the first strict improvement."""
    for position in range(len(subset)):
        for candidate in range(objective.n_features):
            if members[candidate]:
                continue
            trial = list(subset)
            trial[position] = candidate
            value = objective.safe(trial)
            if value < current:
                return position, candidate, value
    return None


def local_search(
    objective: CSSObjective,
    initial: Sequence[int],
    max_swaps: Optional[int] = None,
) -> Tuple[List[int], float, int, bool]:
    """
    First-improvement local search from ``initial``.

    Returns:
        Tuple of (subset, objective value, accepted swaps, converged flag).
        ``converged`` is False only when ``max_swaps`` stopped the search.
    """
    subset = [int(i) for i in initial]
    members = np.zeros(objective.n_features, dtype=bool)
    members[subset] = True
    current = objective.safe(subset)

    n_swaps = 0
    state = SearchState.SCANNING
    while state is not SearchState.CONVERGED:
        if max_swaps is not None and n_swaps >= max_swaps:
            return subset, current, n_swaps, False

        state = SearchState.SCANNING
        move = _first_improving_swap(objective, subset, members, current)
        if move is None:
            state = SearchState.CONVERGED
            continue

        position, candidate, value = move
        members[subset[position]] = False
        members[candidate] = True
        subset[position] = candidate
        current = value
        n_swaps += 1
        state = SearchState.IMPROVED

    return subset, current, n_swaps, True


def _run_restart(
    cov: np.ndarray,
    k: int,
    restart: int,
    seed: np.random.SeedSequence,
    max_swaps: Optional[int],
) -> RestartOutcome:
    rng = np.random.default_rng(seed)
    initial = rng.choice(cov.shape[0], size=k, replace=False)

    objective = CSSObjective(cov)
    subset, value, n_swaps, converged = local_search(objective, initial, max_swaps=max_swaps)

    if not converged:
        logger.warning(
            "Restart %s stopped after max_swaps=%s before reaching a local optimum",
            restart,
            max_swaps,
        )
    logger.debug(
        "Restart %s: objective=%.6g swaps=%s evaluations=%s infeasible=%s",
        restart,
        value,
        n_swaps,
        objective.n_evaluations,
        objective.n_infeasible,
    )
    return RestartOutcome(
        restart=restart,
        initial=tuple(int(i) for i in initial),
        subset=tuple(subset),
        objective=value,
        n_swaps=n_swaps,
        converged=converged,
    )


def swapping_select(
    cov,
    k: int,
    restarts: int = 10,
    random_state: RandomStateLike = None,
    max_swaps: Optional[int] = None,
    n_jobs: Optional[int] = None,
) -> SelectionResult:
    """
    Multi-start swapping search for the subset of size ``k`` minimising the CSS objective.

    Args:
        cov: p x p positive semi-definite covariance matrix
        k: Number of columns to select
        restarts: Number of random initial subsets
        random_state: Seed, ``Generator`` or ``SeedSequence`` for the initial draws
        max_swaps: Optional cap on accepted swaps per restart
        n_jobs: Run restarts on this many joblib workers (None = sequential)

    Returns:
        SelectionResult with the subset sorted ascending. The objective is
        ``inf`` when every restart ended on a singular subset.
    """
    config = SwappingConfig(restarts=restarts, max_swaps=max_swaps, n_jobs=n_jobs)
    cov = _check_covariance(cov)
    k = _check_n_select(k, cov.shape[0])

    root = seed_sequence_from(random_state)
    seeds = [child_seed(root, r) for r in range(config.restarts)]

    logger.info(
        "Swapping search: p=%s k=%s restarts=%s n_jobs=%s",
        cov.shape[0],
        k,
        config.restarts,
        config.n_jobs,
    )

    if config.n_jobs is None or config.n_jobs == 1:
        outcomes = [
            _run_restart(cov, k, r, seed, config.max_swaps) for r, seed in enumerate(seeds)
        ]
    else:
        outcomes = Parallel(n_jobs=config.n_jobs)(
            delayed(_run_restart)(cov, k, r, seed, config.max_swaps)
            for r, seed in enumerate(seeds)
        )

    # Reduce in restart order; a later restart must be strictly better to win
    best = outcomes[0]
    for outcome in outcomes[1:]:
        if outcome.objective < best.objective:
            best = outcome

    if not math.isfinite(best.objective):
        logger.warning("All %s restarts ended on singular subsets", config.restarts)
    else:
        logger.info(
            "Best subset %s (restart %s) objective=%.6g",
            sorted(best.subset),
            best.restart,
            best.objective,
        )

    return SelectionResult(
        subset=tuple(sorted(best.subset)),
        objective=best.objective,
        method="swapping",
        restart_objectives=tuple(o.objective for o in outcomes),
        n_swaps=sum(o.n_swaps for o in outcomes),
        converged=all(o.converged for o in outcomes),
        outcomes=tuple(outcomes),
    )


@component(
    name="SwappingSelector",
    responsibility="Multi-start first-improvement local search for the CSS objective",
    depends_on=["CovarianceEstimator", "CSSObjective"],
)
class SwappingSelector(BaseSubsetSelector):
    """
    Scikit-learn compatible swapping selector.

    ``fit`` estimates the covariance of ``X`` (missing cells as NaN) unless
    ``precomputed=True``, in which case ``X`` is the covariance matrix itself.

    Example:
        >>> selector = SwappingSelector(n_select=2, restarts=20, random_state=0)
        >>> selector.fit(df)
        >>> selector.selected_features_
        ['item_3', 'item_7']
    """

    def __init__(
        self,
        n_select: int = 1,
        restarts: int = 10,
        random_state: RandomStateLike = None,
        max_swaps: Optional[int] = None,
        n_jobs: Optional[int] = None,
        min_periods: int = 2,
        precomputed: bool = False,
    ):
        self.n_select = n_select
        self.restarts = restarts
        self.random_state = random_state
        self.max_swaps = max_swaps
        self.n_jobs = n_jobs
        self.min_periods = min_periods
        self.precomputed = precomputed

    def fit(self, X, y: Optional[pd.Series] = None) -> "SwappingSelector":
        """Run the swapping search on ``X`` (or on the covariance when precomputed)."""
        if self.precomputed:
            cov = _check_covariance(X)
        else:
            config = CovarianceConfig(min_periods=self.min_periods)
            cov = estimate_covariance(X, min_periods=config.min_periods)

        self.covariance_ = cov
        self.result_ = swapping_select(
            cov,
            self.n_select,
            restarts=self.restarts,
            random_state=self.random_state,
            max_swaps=self.max_swaps,
            n_jobs=self.n_jobs,
        )
        self.objective_ = self.result_.objective
        self._store_selection(X, self.result_.subset)
        return self
