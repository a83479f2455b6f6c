"""String helpers.

Case conversions split on spaces, underscores, hyphens, dots, slashes and
camelCase boundaries.
"""

from __future__ import annotations

import re
from typing import Any

_WORD_BOUNDARY = re.compile(r"[\s_\-./]+|(?<=[a-z0-9])(?=[A-Z])")


def _words(text: Any) -> list[str]:
    return [word for word in _WORD_BOUNDARY.split(str(text or "")) if word]


def camelcase(text: Any) -> str:
    words = [word.lower() for word in _words(text)]
    return words[0] + "".join(word.capitalize() for word in words[1:]) if words else ""


def pascalcase(text: Any) -> str:
    return "".join(word.capitalize() for word in _words(text))


def snakecase(text: Any) -> str:
    return "_".join(word.lower() for word in _words(text))


def dashcase(text: Any) -> str:
    return "-".join(word.lower() for word in _words(text))


def dotcase(text: Any) -> str:
    return ".".join(word.lower() for word in _words(text))


def pathcase(text: Any) -> str:
    return "/".join(word.lower() for word in _words(text))


def hyphenate(text: Any) -> str:
    """Replace spaces with hyphens, leaving case alone."""
    return str(text or "").replace(" ", "-")


def capitalize(text: Any) -> str:
    value = str(text or "")
    return value[:1].upper() + value[1:]


def capitalize_all(text: Any) -> str:
    return " ".join(capitalize(word) for word in str(text or "").split(" "))


def titleize(text: Any) -> str:
    return " ".join(capitalize(word) for word in _words(text))


def sentence(text: Any) -> str:
    """Capitalize the first letter of each sentence and lowercase the rest."""
    return re.sub(
        r"(^|[.!?]\s+)([a-z])",
        lambda m: m.group(1) + m.group(2).upper(),
        str(text or "").lower(),
    )


def center(text: Any, width: int) -> str:
    return str(text or "").center(int(width))


def chop(text: Any) -> str:
    """Strip whitespace and non-word characters from both ends."""
    return re.sub(r"^[\W_]+|[\W_]+$", "", str(text or ""))


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def lowercase(text: Any) -> str:
    return str(text or "").lower()


def uppercase(text: Any) -> str:
    return str(text or "").upper()


def plusify(text: Any) -> str:
    return str(text or "").replace(" ", "+")


def reverse(text: Any) -> str:
    return str(text or "")[::-1]


def split(text: Any, separator: str = ",") -> list[str]:
    return str(text or "").split(separator)


def starts_with(prefix: str, text: Any) -> bool:
    return str(text or "").startswith(prefix)


def trim(text: Any) -> str:
    return str(text or "").strip()


def occurrences(text: Any, substring: str) -> int:
    return str(text or "").count(substring)
