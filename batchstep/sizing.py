"""Approximate payload sizes for bounding chunks by memory.

``item_size`` estimates the serialized size of one item; ``payload_size``
sums it over a chunk. Register extra types with ``item_size.register``:

    @item_size.register(Order)
    def _(order: Order) -> int:
        return len(order.sku) + 16
"""

from __future__ import annotations

import json
import sys
from functools import singledispatch
from typing import Any, Iterable

__all__ = ["MEGABYTE", "item_size", "payload_size"]

MEGABYTE = 1024 * 1024


@singledispatch
def item_size(item: Any) -> int:
    """Approximate size of ``item`` in bytes (in-memory size by default)."""
    return sys.getsizeof(item)


@item_size.register(type(None))
def _(item: None) -> int:
    return 0


@item_size.register(bytes)
@item_size.register(bytearray)
def _(item: bytes) -> int:
    return len(item)


@item_size.register(str)
def _(item: str) -> int:
    return len(item.encode("utf-8"))


@item_size.register(dict)
def _(item: dict) -> int:
    # Records are sized as the JSON they would be written as
    try:
        text = json.dumps(item, ensure_ascii=False, default=str)
    except ValueError:
        text = repr(item)
    return len(text.encode("utf-8"))


@item_size.register(list)
@item_size.register(tuple)
def _(item: Iterable[Any]) -> int:
    # One byte per element for separators
    return sum(item_size(element) + 1 for element in item)


def payload_size(items: Iterable[Any]) -> int:
    """Total approximate size of a chunk's items."""
    return sum(item_size(item) for item in items)
