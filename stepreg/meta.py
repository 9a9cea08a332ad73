"""
@module: stepreg.meta
@depends:
@exports: component, describe_components
@data_flow: decorator metadata -> component listing
"""

from typing import Any, Dict, Iterable, List, Optional


def component(
    name: str,
    responsibility: str,
    depends_on: Optional[List[str]] = None,
):
    """
    Decorator to mark classes as architectural components.

    Args:
        name: Component name (e.g., "BackwardElimination")
        responsibility: Brief description of component's role
        depends_on: List of component names this depends on

    Example:
        @component(
            name="BackwardElimination",
            responsibility="Removes the least significant feature per round",
            depends_on=["TrainingConfig", "SignificanceReporting"]
        )
        class BackwardElimination:
            pass
    """
    def decorator(cls: type) -> type:
        cls.__component_metadata__ = {
            "name": name,
            "responsibility": responsibility,
            "depends_on": depends_on or [],
        }
        return cls
    return decorator


def describe_components(classes: Iterable[type]) -> List[Dict[str, Any]]:
    """Collect the component metadata of the given classes (undecorated ones are skipped)."""
    return [
        dict(cls.__component_metadata__)
        for cls in classes
        if hasattr(cls, "__component_metadata__")
    ]
