"""Collection helpers."""

from __future__ import annotations

from typing import Any


def is_empty(value: Any) -> bool:
    """True for None, empty strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return 0
