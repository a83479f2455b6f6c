"""Object (dictionary) helpers."""

from __future__ import annotations

import json
from typing import Any


def extend(*objects: Any) -> dict[str, Any]:
    """Shallow-merge dictionaries, later ones winning."""
    result: dict[str, Any] = {}
    for obj in objects:
        if isinstance(obj, dict):
            result.update(obj)
    return result


def merge(*objects: Any) -> dict[str, Any]:
    """Deep-merge dictionaries, later ones winning."""
    result: dict[str, Any] = {}
    for obj in objects:
        if not isinstance(obj, dict):
            continue
        for key, value in obj.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = merge(result[key], value)
            else:
                result[key] = value
    return result


def get(obj: Any, path: str, default: Any = None) -> Any:
    current = obj
    for part in str(path).split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def to_path(*parts: Any) -> str:
    """Join non-empty parts into a dotted property path."""
    return ".".join(str(part) for part in parts if part not in (None, ""))


def has_own(obj: Any, key: str) -> bool:
    return isinstance(obj, dict) and key in obj


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def jsonparse(text: str) -> Any:
    return json.loads(text)


def jsonstringify(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)
