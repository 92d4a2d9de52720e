"""Chunk value type: a bounded, ordered batch of work items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterable, Iterator, List, Optional, TypeVar

__all__ = ["Chunk", "SkippedItem"]

T = TypeVar("T")


@dataclass(frozen=True)
class SkippedItem(Generic[T]):
    """An item a consumer deliberately dropped, with the reason."""

    item: T
    error: Exception


class Chunk(Generic[T]):
    """Ordered items produced by one acquisition call plus an end marker.

    The producer fills the chunk and, when input is exhausted, marks it
    with ``set_end()``. Consumers treat the chunk as read-only apart from
    recording skipped items.

    Example:
        chunk = Chunk(["a", "b"])
        chunk.add("c")
        len(chunk)  # 3
    """

    def __init__(self, items: Optional[Iterable[T]] = None, *, end: bool = False) -> None:
        self._items: List[T] = list(items) if items is not None else []
        self._skips: List[SkippedItem[T]] = []
        self._end = end
        self.user_data: Any = None

    def add(self, item: T) -> None:
        self._items.append(item)

    def add_all(self, items: Iterable[T]) -> None:
        self._items.extend(items)

    @property
    def items(self) -> List[T]:
        """A copy of the items in insertion order."""
        return list(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def set_end(self) -> None:
        """Mark this chunk as the last one the source will produce."""
        self._end = True

    def is_end(self) -> bool:
        return self._end

    def skip(self, item: T, error: Exception) -> None:
        """Record that ``item`` was dropped because of ``error``."""
        self._skips.append(SkippedItem(item, error))

    @property
    def skips(self) -> List[SkippedItem[T]]:
        return list(self._skips)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return (
            f"Chunk(items={self._items!r}, skips={len(self._skips)}, "
            f"end={self._end})"
        )
