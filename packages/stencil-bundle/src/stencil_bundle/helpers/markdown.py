"""A small Markdown renderer for product and page descriptions.

Supports ATX headings, paragraphs, ``*emphasis*``, ``**strong**``, inline
code and ``[links](url)``. Input is escaped before conversion.
"""

from __future__ import annotations

import re
from typing import Any

import markupsafe

_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_INLINE = (
    (re.compile(r"`([^`]+)`"), r"<code>\1</code>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)"), r'<a href="\2">\1</a>'),
)


def _inline(text: str) -> str:
    for pattern, replacement in _INLINE:
        text = pattern.sub(replacement, text)
    return text


def markdown(text: Any) -> markupsafe.Markup:
    if not text:
        return markupsafe.Markup("")

    blocks: list[str] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append(f"<p>{_inline(' '.join(paragraph))}</p>")
            paragraph.clear()

    for line in str(markupsafe.escape(str(text))).splitlines():
        stripped = line.strip()
        heading = _HEADING.match(stripped)
        if not stripped:
            flush()
        elif heading:
            flush()
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        else:
            paragraph.append(stripped)
    flush()
    return markupsafe.Markup("\n".join(blocks))
