"""Partial dependency resolution.

Walks a theme's template root, finds every reference to a partial living in
an external template library, and returns the flattened set of identifiers
(external + internal) the build has to compile.
"""

from __future__ import annotations

import posixpath
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from stencil_bundle.errors import ResolutionError
from stencil_bundle.fs import identifier_for, list_files
from stencil_bundle.models import PartialSet

logger = structlog.get_logger(__name__)

EXTERNAL_MARKER = "external"

# {% include "x" %}, {% import 'x' as m %}, {% from "x" import y %}, {% extends "x" %}
PARTIAL_REFERENCE = re.compile(
    r"""\{%-?\s*(?:include|import|from|extends)\s+(["'])(?P<path>[^"']+)\1"""
)

_MAX_SCAN_WORKERS = 8


def find_references(source: str) -> list[str]:
    """Return every partial path referenced by ``source``, in order."""
    return [match.group("path") for match in PARTIAL_REFERENCE.finditer(source)]


def library_name(import_path: str) -> str:
    """Derive the library name from an external partial import path.

    Example:
        >>> library_name("external/@acme/widgets/templates/components/card")
        '@acme/widgets'

    Raises:
        ResolutionError: If the name does not stay inside the libraries root.
    """
    head = import_path.split("/templates/", 1)[0]
    name = posixpath.normpath(head[len(EXTERNAL_MARKER) + 1 :])
    if name == "." or name == ".." or name.startswith(("../", "/")):
        raise ResolutionError(f"External partial path escapes the library directory: {import_path}")
    return name


class PartialResolver:
    """Resolve the full set of partials a theme needs.

    Args:
        theme_path: Theme root directory.
        external_libraries_dir: Where external template libraries are
            installed, relative to the theme root.

    Example:
        >>> resolver = PartialResolver(Path("cornerstone"))
        >>> partials = resolver.resolve(Path("cornerstone/templates"))
        >>> partials.identifiers[:2]
        ['external/@acme/widgets/templates/components/card', 'components/header']
    """

    def __init__(
        self,
        theme_path: Path | str,
        external_libraries_dir: str = "node_modules",
    ) -> None:
        self.theme_path = Path(theme_path)
        self.libraries_root = self.theme_path / external_libraries_dir

    def resolve(self, templates_root: Path | str) -> PartialSet:
        """Resolve every partial identifier under ``templates_root``.

        Raises:
            ResolutionError: If the template root or a template file cannot be read.
        """
        templates_root = Path(templates_root)
        internal_files = self._list(templates_root)

        libraries = sorted(self._scan_libraries(internal_files))

        external: list[str] = []
        for library in libraries:
            external.extend(self._library_partials(library))

        internal = [identifier_for(path, templates_root) for path in internal_files]

        external_ids = tuple(dict.fromkeys(external))
        seen = set(external_ids)
        internal_ids = tuple(i for i in dict.fromkeys(internal) if i not in seen)

        logger.info(
            "partials_resolved",
            external=len(external_ids),
            internal=len(internal_ids),
            libraries=libraries,
        )
        return PartialSet(external=external_ids, internal=internal_ids, libraries=tuple(libraries))

    def _list(self, root: Path) -> list[Path]:
        try:
            return list_files(root)
        except OSError as e:
            raise ResolutionError(
                f"Cannot read template directory: {root.name}",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e

    def _scan_libraries(self, files: list[Path]) -> set[str]:
        with ThreadPoolExecutor(max_workers=_MAX_SCAN_WORKERS) as pool:
            results = list(pool.map(self._external_libraries_in, files))
        return set().union(*results)

    def _external_libraries_in(self, path: Path) -> set[str]:
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ResolutionError(
                f"Cannot read template: {path.name}",
                internal_details=f"{path}: {e}",
            ) from e
        return {
            library_name(ref)
            for ref in find_references(source)
            if ref.startswith(EXTERNAL_MARKER + "/")
        }

    def _library_partials(self, library: str) -> list[str]:
        templates_dir = self.libraries_root / library / "templates"
        if not templates_dir.is_dir():
            logger.warning("external_library_missing", library=library, path=str(templates_dir))
            return []
        return [
            identifier_for(path, self.libraries_root, prefix=f"{EXTERNAL_MARKER}/")
            for path in self._list(templates_dir)
        ]
