"""Comparison helpers.

All helpers return booleans so templates use them in ``{% if %}`` tests.
"""

from __future__ import annotations

from typing import Any


def and_(*values: Any) -> bool:
    return all(values)


def or_(*values: Any) -> bool:
    return any(values)


def gt(a: Any, b: Any) -> bool:
    return a > b


def gte(a: Any, b: Any) -> bool:
    return a >= b


def lt(a: Any, b: Any) -> bool:
    return a < b


def lte(a: Any, b: Any) -> bool:
    return a <= b


def eq(a: Any, b: Any) -> bool:
    return a == b


def has(value: Any, pattern: Any) -> bool:
    """True when ``pattern`` is contained in ``value`` (string, list or dict)."""
    if value is None or pattern is None:
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return pattern in value
    return False


def if_even(n: int) -> bool:
    return int(n) % 2 == 0


def if_odd(n: int) -> bool:
    return int(n) % 2 == 1


def if_nth(a: int, b: int) -> bool:
    """True when ``b`` is a multiple of ``a``."""
    return int(a) != 0 and int(b) % int(a) == 0


def is_(a: Any, b: Any) -> bool:
    """Loose equality: values compare equal as strings."""
    return a == b or str(a) == str(b)


def isnt(a: Any, b: Any) -> bool:
    return not is_(a, b)


def neither(a: Any, b: Any) -> bool:
    return not a and not b
