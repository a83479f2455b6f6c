"""URL helpers."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote, unquote, urljoin, urlparse


def encode_uri(value: Any) -> str:
    return quote(str(value), safe="~@#$&()*!+=:;,.?/'")


def decode_uri(value: Any) -> str:
    return unquote(str(value))


def url_encode(value: Any) -> str:
    return quote(str(value), safe="")


def url_resolve(base: str, href: str) -> str:
    return urljoin(base, href)


def url_parse(value: str) -> dict[str, Any]:
    """Split a URL into its parts."""
    parsed = urlparse(value)
    return {
        "protocol": f"{parsed.scheme}:" if parsed.scheme else "",
        "host": parsed.netloc,
        "hostname": parsed.hostname or "",
        "port": parsed.port,
        "pathname": parsed.path,
        "search": f"?{parsed.query}" if parsed.query else "",
        "hash": f"#{parsed.fragment}" if parsed.fragment else "",
        "href": value,
    }


def strip_protocol(value: Any) -> str:
    """Make a URL protocol-relative."""
    return re.sub(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:(?=//)", "", str(value))
