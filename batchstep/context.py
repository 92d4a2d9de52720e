"""Execution context shared between the outer driver and its observers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = ["ChunkContext"]


class ChunkContext:
    """Key/value attribute store for one batch of step invocations.

    Owned by whoever drives the step. ``ChunkOrientedStep`` only borrows
    it and never writes to it.
    """

    def __init__(self, step_name: Optional[str] = None) -> None:
        self.step_name = step_name
        self._attributes: Dict[str, Any] = {}
        self._complete = False

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value

    def remove_attribute(self, name: str) -> Any:
        """Remove ``name`` and return its value (``None`` if absent)."""
        return self._attributes.pop(name, None)

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def attribute_names(self) -> List[str]:
        return list(self._attributes)

    def is_complete(self) -> bool:
        return self._complete

    def set_complete(self) -> None:
        self._complete = True

    def __repr__(self) -> str:
        return (
            f"ChunkContext(step={self.step_name!r}, "
            f"attributes={sorted(self._attributes)}, complete={self._complete})"
        )
