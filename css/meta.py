"""
@module: css.meta
@depends:
@exports: component, registered_components
@paper_ref: N/A
@data_flow: decorator metadata -> component registry
"""

from typing import Dict, List, Optional

_REGISTRY: Dict[str, type] = {}


def component(
    name: str,
    responsibility: str,
    depends_on: Optional[List[str]] = None,
):
    """
    Decorator to mark selector classes as architectural components.

    The metadata is attached as ``__component_metadata__`` and the class is
    registered under ``name`` so that benchmarking code can enumerate the
    available selectors.

    Args:
        name: Component name (e.g., "SwappingSelector")
        responsibility: Brief description of component's role
        depends_on: List of component names this depends on

    Example:
        @component(
            name="SwappingSelector",
            responsibility="Multi-start local search for the CSS objective",
            depends_on=["CovarianceEstimator", "CSSObjective"]
        )
        class SwappingSelector:
            pass
    """
    def decorator(cls: type) -> type:
        cls.__component_metadata__ = {
            "name": name,
            "responsibility": responsibility,
            "depends_on": depends_on or [],
        }
        _REGISTRY[name] = cls
        return cls
    return decorator


def registered_components() -> Dict[str, type]:
    """Return a copy of the component registry (name -> class)."""
    return dict(_REGISTRY)
