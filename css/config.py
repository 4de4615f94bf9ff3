"""
@module: css.config
@depends:
@exports: SelectionMethod, CovarianceConfig, SwappingConfig, BisectionConfig
@paper_ref: N/A
@data_flow: user config -> validated parameters
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SelectionMethod(Enum):
    """Column subset selection methods available for benchmarking."""

    # Primary method
    SWAPPING = "swapping"

    # Baselines
    MATCHING_PURSUIT = "matching_pursuit"  # BOMP
    BISECTION = "bisection"  # L1 path, first column as response
    RANDOM = "random"


@dataclass
class CovarianceConfig:
    """
    Configuration for pairwise-complete covariance estimation.

    Attributes:
        min_periods: Minimum number of jointly observed rows for a pair of
            columns. Pairs below this threshold get a covariance of 0.
    """

    min_periods: int = 2

    def __post_init__(self) -> None:
        if self.min_periods < 2:
            raise ValueError("min_periods must be at least 2")


@dataclass
class SwappingConfig:
    """
    Configuration for the multi-start swapping search.

    Attributes:
        restarts: Number of random initial subsets
        max_swaps: Optional cap on accepted swaps per restart (None = run to
            a local optimum)
        n_jobs: joblib worker count for running restarts concurrently
            (None = sequential)

    Example:
        config = SwappingConfig(restarts=25, max_swaps=10_000)
    """

    restarts: int = 10
    max_swaps: Optional[int] = None
    n_jobs: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.restarts < 1:
            raise ValueError("restarts must be at least 1")
        if self.max_swaps is not None and self.max_swaps < 0:
            raise ValueError("max_swaps must be non-negative")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")


@dataclass
class BisectionConfig:
    """
    Configuration for the sparsity bisection baseline.

    Attributes:
        tol: Relative bracket width at which the search gives up
        max_iter: Hard cap on bisection steps
        lasso_max_iter: Coordinate descent iterations per Lasso fit
    """

    tol: float = 1e-8
    max_iter: int = 200
    lasso_max_iter: int = 10000

    def __post_init__(self) -> None:
        if self.tol <= 0:
            raise ValueError("tol must be positive")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if self.lasso_max_iter < 1:
            raise ValueError("lasso_max_iter must be at least 1")
