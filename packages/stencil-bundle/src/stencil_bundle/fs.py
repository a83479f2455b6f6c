"""File-system primitives used across the build."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from typing import Any

TEMPLATE_SUFFIX = ".html"


def list_files(root: Path, suffix: str = TEMPLATE_SUFFIX) -> list[Path]:
    """Recursively list files under ``root`` ending in ``suffix``, sorted.

    Raises:
        FileNotFoundError: If ``root`` does not exist.
        NotADirectoryError: If ``root`` is not a directory.
        PermissionError: If ``root`` cannot be read.
    """
    if not root.exists():
        raise FileNotFoundError(f"Directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    # os.scandir surfaces permission problems that Path.rglob would skip
    with os.scandir(root):
        pass
    return sorted(p for p in root.rglob(f"*{suffix}") if p.is_file())


def identifier_for(path: Path, base: Path, prefix: str = "") -> str:
    """Return the partial identifier of ``path`` relative to ``base``.

    The extension is stripped and separators are always forward slashes.

    Example:
        >>> identifier_for(Path("/t/templates/pages/home.html"), Path("/t/templates"))
        'pages/home'
    """
    relative = path.relative_to(base).with_suffix("")
    return prefix + relative.as_posix()


def copy_tree(source: Path, target: Path) -> bool:
    """Copy ``source`` into ``target`` preserving structure.

    Returns:
        False when ``source`` does not exist (nothing copied), True otherwise.
    """
    if not source.is_dir():
        return False
    shutil.copytree(source, target, dirs_exist_ok=True)
    return True


def dump_json(data: Any) -> str:
    """Serialize JSON the same way everywhere an artifact is written."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_atomic(path: Path, content: str | bytes) -> None:
    """Write ``content`` to ``path`` through a sibling temp file and rename."""
    tmp = path.with_name(f".{path.name}.tmp")
    if isinstance(content, bytes):
        tmp.write_bytes(content)
    else:
        tmp.write_text(content, encoding="utf-8")
    os.replace(tmp, path)
