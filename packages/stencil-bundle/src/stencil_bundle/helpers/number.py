"""Number formatting helpers."""

from __future__ import annotations

import random as _random
import re
from typing import Any

_ABBREVIATIONS = ((1e12, "t"), (1e9, "b"), (1e6, "m"), (1e3, "k"))


def add_commas(value: Any) -> str:
    """Insert thousands separators.

    Example:
        >>> add_commas(1234567.5)
        '1,234,567.5'
    """
    whole, dot, fraction = str(value).partition(".")
    return re.sub(r"(\d)(?=(\d{3})+$)", r"\1,", whole) + dot + fraction


def phone_number(value: Any) -> str:
    """Format a 10-digit number as ``(xxx) xxx-xxxx``."""
    digits = re.sub(r"\D", "", str(value))
    if len(digits) != 10:
        return str(value)
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def random(low: int, high: int) -> int:
    return _random.randint(int(low), int(high))


def to_abbr(value: Any, precision: int = 2) -> str:
    """Abbreviate a large number (``1200`` becomes ``1.2k``)."""
    number = float(value)
    for threshold, suffix in _ABBREVIATIONS:
        if abs(number) >= threshold:
            return f"{number / threshold:.{precision}f}".rstrip("0").rstrip(".") + suffix
    return str(value)


def to_exponential(value: Any, digits: int = 0) -> str:
    return f"{float(value):.{int(digits)}e}"


def to_fixed(value: Any, digits: int = 0) -> str:
    return f"{float(value):.{int(digits)}f}"


def to_float(value: Any) -> float:
    return float(value)


def to_int(value: Any) -> int:
    return int(float(value))


def to_precision(value: Any, precision: int = 1) -> str:
    return f"{float(value):.{int(precision)}g}"


def bytes_(value: Any, precision: int = 2) -> str:
    """Format a byte count with a binary unit."""
    size = float(value)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.{precision}f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.{precision}f} TB"
