"""Inflection helpers."""

from __future__ import annotations

_ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def inflect(count: int, singular: str, plural: str, include_count: bool = False) -> str:
    """Pick ``singular`` or ``plural`` for ``count``.

    Example:
        >>> inflect(2, "item", "items", True)
        '2 items'
    """
    word = singular if count == 1 else plural
    return f"{count} {word}" if include_count else word


def ordinalize(value: int | str) -> str:
    n = int(value)
    if 10 <= abs(n) % 100 <= 20:
        suffix = "th"
    else:
        suffix = _ORDINAL_SUFFIXES.get(abs(n) % 10, "th")
    return f"{n}{suffix}"
