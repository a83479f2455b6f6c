"""CLI command modules.

Each module defines one click command; `stencil_cli.main` loads them lazily.
"""

from __future__ import annotations

__all__: list[str] = []
