"""Array helpers."""

from __future__ import annotations

import builtins
from collections.abc import Callable
from typing import Any


def _items(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def after(array: Any, n: int) -> list[Any]:
    """Return the items after index ``n``."""
    return _items(array)[n:]


def arrayify(value: Any) -> list[Any]:
    return _items(value)


def before(array: Any, n: int) -> list[Any]:
    """Return every item except the last ``n``."""
    items = _items(array)
    return items[: len(items) - n] if n > 0 else items


def filter(array: Any, value: Any, prop: str | None = None) -> list[Any]:
    """Return the items equal to ``value`` (or whose ``prop`` equals it)."""
    if prop is None:
        return [item for item in _items(array) if item == value]
    return [item for item in _items(array) if isinstance(item, dict) and item.get(prop) == value]


def first(array: Any, n: int | None = None) -> Any:
    items = _items(array)
    if n is None:
        return items[0] if items else None
    return items[:n]


def in_array(array: Any, value: Any) -> bool:
    return value in _items(array)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def last(array: Any, n: int | None = None) -> Any:
    items = _items(array)
    if n is None:
        return items[-1] if items else None
    return items[-n:] if n > 0 else []


def length_equal(array: Any, length: int) -> bool:
    return len(_items(array)) == length


def map(array: Any, fn: Callable[[Any], Any]) -> list[Any]:
    return list(builtins.map(fn, _items(array)))


def some(array: Any, predicate: Callable[[Any], Any]) -> bool:
    return any(predicate(item) for item in _items(array))


def sort(array: Any, reverse: bool = False) -> list[Any]:
    return sorted(_items(array), reverse=reverse)


def sort_by(array: Any, prop: str, reverse: bool = False) -> list[Any]:
    """Sort dictionaries by ``prop``; items missing it sort last."""
    items = _items(array)
    present = [item for item in items if isinstance(item, dict) and prop in item]
    absent = [item for item in items if not (isinstance(item, dict) and prop in item)]
    return sorted(present, key=lambda item: item[prop], reverse=reverse) + absent


def unique(array: Any) -> list[Any]:
    """Drop repeated items, keeping the first occurrence."""
    seen: list[Any] = []
    for item in _items(array):
        if item not in seen:
            seen.append(item)
    return seen
