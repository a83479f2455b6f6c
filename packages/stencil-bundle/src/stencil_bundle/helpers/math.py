"""Math helpers. Arguments may arrive as strings from theme settings."""

from __future__ import annotations

import builtins
import math as _math
from typing import Any


def _number(value: Any) -> float | int:
    if isinstance(value, (int, float)):
        return value
    text = str(value)
    return float(text) if "." in text or "e" in text.lower() else int(text)


def add(a: Any, b: Any) -> float | int:
    return _number(a) + _number(b)


def subtract(a: Any, b: Any) -> float | int:
    return _number(a) - _number(b)


def multiply(a: Any, b: Any) -> float | int:
    return _number(a) * _number(b)


def divide(a: Any, b: Any) -> float:
    return _number(a) / _number(b)


def modulo(a: Any, b: Any) -> float | int:
    return _number(a) % _number(b)


def floor(value: Any) -> int:
    return _math.floor(_number(value))


def ceil(value: Any) -> int:
    return _math.ceil(_number(value))


def round(value: Any, precision: int = 0) -> float | int:
    rounded = builtins.round(_number(value), precision)
    return int(rounded) if precision == 0 else rounded


def sum(*values: Any) -> float | int:
    """Sum numbers, flattening one level of lists."""
    flat: list[Any] = []
    for value in values:
        flat.extend(value if isinstance(value, (list, tuple)) else [value])
    return builtins.sum(_number(v) for v in flat)


def avg(*values: Any) -> float:
    flat: list[Any] = []
    for value in values:
        flat.extend(value if isinstance(value, (list, tuple)) else [value])
    if not flat:
        return 0.0
    return sum(flat) / len(flat)
