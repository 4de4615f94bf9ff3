"""
@module: css.presets
@depends: tomllib
@exports: load_selector_presets, resolve_selector_config, SelectorSettings
@data_flow: toml -> preset_map -> validated configs
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore

from css.config import BisectionConfig, CovarianceConfig, SwappingConfig

_SECTIONS = ("covariance", "swapping", "bisection")

_DEFAULT_PRESETS: Dict[str, Dict[str, Dict[str, Any]]] = {
    "default": {
        "covariance": {"min_periods": 2},
        "swapping": {"restarts": 10},
        "bisection": {"tol": 1e-8, "max_iter": 200, "lasso_max_iter": 10000},
    },
    "quick": {
        "covariance": {"min_periods": 2},
        "swapping": {"restarts": 3, "max_swaps": 1000},
        "bisection": {"tol": 1e-6, "max_iter": 60, "lasso_max_iter": 2000},
    },
    "thorough": {
        "covariance": {"min_periods": 2},
        "swapping": {"restarts": 50, "n_jobs": -1},
        "bisection": {"tol": 1e-10, "max_iter": 400, "lasso_max_iter": 50000},
    },
}


@dataclass
class SelectorSettings:
    """Validated configuration for one benchmark run."""

    covariance: CovarianceConfig = field(default_factory=CovarianceConfig)
    swapping: SwappingConfig = field(default_factory=SwappingConfig)
    bisection: BisectionConfig = field(default_factory=BisectionConfig)


def load_selector_presets(config_path: Path | None = None) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Load selector preset definitions from TOML.

    Each top-level table is a preset with optional ``covariance``,
    ``swapping`` and ``bisection`` sub-tables. Keys in the file override the
    built-in presets of the same name section by section.

    Args:
        config_path: Optional explicit path to presets TOML.

    Returns:
        Dict mapping preset name -> section -> params.
    """
    if config_path is None:
        repo_root = Path(__file__).resolve().parents[1]
        config_path = repo_root / "configs" / "selectors.toml"

    presets = copy.deepcopy(_DEFAULT_PRESETS)
    if not config_path.exists():
        return presets

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    for name, sections in data.items():
        if not isinstance(sections, dict):
            continue
        merged = presets.setdefault(name, {})
        for section, params in sections.items():
            if section not in _SECTIONS:
                raise ValueError(f"Unknown section '{section}' in preset '{name}'")
            merged.setdefault(section, {}).update(params)
    return presets


def resolve_selector_config(
    name: str = "default",
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    config_path: Path | None = None,
) -> SelectorSettings:
    """Resolve a named preset (plus overrides) into validated configs.

    Args:
        name: Preset name.
        overrides: Optional section -> params mapping applied last.
        config_path: Optional path to presets TOML.

    Returns:
        SelectorSettings built from the merged parameters.
    """
    presets = load_selector_presets(config_path)
    if name not in presets:
        raise ValueError(f"Unknown preset '{name}'. Available: {sorted(presets)}")

    params = copy.deepcopy(presets[name])
    for section, values in (overrides or {}).items():
        if section not in _SECTIONS:
            raise ValueError(f"Unknown section '{section}' in overrides")
        params.setdefault(section, {}).update(values)

    return SelectorSettings(
        covariance=CovarianceConfig(**params.get("covariance", {})),
        swapping=SwappingConfig(**params.get("swapping", {})),
        bisection=BisectionConfig(**params.get("bisection", {})),
    )
