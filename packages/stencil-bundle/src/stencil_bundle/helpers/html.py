"""HTML helpers. Markup-producing helpers escape every interpolated value."""

from __future__ import annotations

from typing import Any

import markupsafe


def ellipsis(text: Any, limit: int) -> str:
    """Strip tags from ``text`` and truncate it to ``limit`` characters plus an ellipsis."""
    plain = sanitize(text)
    if len(plain) <= limit:
        return plain
    return plain[:limit] + "…"


def sanitize(text: Any) -> str:
    """Remove HTML tags and unescape entities."""
    if text is None:
        return ""
    return markupsafe.Markup(str(text)).striptags()


def _list(tag: str, items: Any, css_class: str | None) -> markupsafe.Markup:
    attrs = markupsafe.Markup(' class="{}"').format(css_class) if css_class else ""
    rows = markupsafe.Markup("").join(
        markupsafe.Markup("<li>{}</li>").format(item) for item in items or []
    )
    return markupsafe.Markup(f"<{tag}{attrs}>{rows}</{tag}>")


def ul(items: Any, css_class: str | None = None) -> markupsafe.Markup:
    return _list("ul", items, css_class)


def ol(items: Any, css_class: str | None = None) -> markupsafe.Markup:
    return _list("ol", items, css_class)


def thumbnail_image(image: dict[str, Any], size: str = "thumbnail", alt: str | None = None) -> markupsafe.Markup:
    """Render an ``<img>`` for ``image["sizes"][size]``, falling back to ``image["src"]``."""
    sizes = image.get("sizes") or {}
    src = sizes.get(size) or image.get("src", "")
    if alt is None:
        alt = image.get("alt", "")
    return markupsafe.Markup('<img src="{}" alt="{}">').format(src, alt)


def css(value: Any) -> markupsafe.Markup:
    """Render a ``class`` attribute from a string or list."""
    names = value if isinstance(value, (list, tuple)) else [value]
    return markupsafe.Markup(' class="{}"').format(" ".join(str(n) for n in names if n))
