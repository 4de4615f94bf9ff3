"""
@module: css
@depends:
@exports: estimate_covariance, css_objective, swapping_select, matching_pursuit_select, bisection_group_select
@paper_ref: N/A
@data_flow: public API imports
"""

from css.bisection import (
    BisectionResult,
    NoExactSparsityError,
    SparsityBisectionSelector,
    bisection_group_select,
)
from css.compare import compare_selectors, random_subset_objectives
from css.config import BisectionConfig, CovarianceConfig, SelectionMethod, SwappingConfig
from css.covariance import CovarianceEstimator, estimate_covariance, pairwise_covariance, repair_psd
from css.objective import (
    CSSObjective,
    SingularSubsetError,
    css_objective,
    explained_variance_ratio,
    residual_covariance,
)
from css.presets import SelectorSettings, load_selector_presets, resolve_selector_config
from css.pursuit import MatchingPursuitSelector, matching_pursuit_select
from css.swapping import SelectionResult, SwappingSelector, swapping_select

__version__ = "0.1.0"
__all__ = [
    # Covariance
    "CovarianceEstimator",
    "estimate_covariance",
    "pairwise_covariance",
    "repair_psd",
    # Objective
    "CSSObjective",
    "SingularSubsetError",
    "css_objective",
    "explained_variance_ratio",
    "residual_covariance",
    # Selectors
    "SwappingSelector",
    "SelectionResult",
    "swapping_select",
    "MatchingPursuitSelector",
    "matching_pursuit_select",
    "SparsityBisectionSelector",
    "BisectionResult",
    "NoExactSparsityError",
    "bisection_group_select",
    # Benchmarking
    "compare_selectors",
    "random_subset_objectives",
    # Configuration
    "SelectionMethod",
    "CovarianceConfig",
    "SwappingConfig",
    "BisectionConfig",
    "SelectorSettings",
    "load_selector_presets",
    "resolve_selector_config",
]
