"""Template and translation assembly.

`TemplateAssembler.load` reads one partial and, recursively, every partial it
references through a literal include/import/from/extends target, returning
``{identifier: source}``. `assemble_translations` reads every ``lang/*.json``
file into one locale table.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from stencil_bundle.errors import ConfigError, ResolutionError
from stencil_bundle.fs import TEMPLATE_SUFFIX
from stencil_bundle.resolver import EXTERNAL_MARKER, find_references

logger = structlog.get_logger(__name__)


class TemplateAssembler:
    """Load partial sources together with their nested references.

    Args:
        theme_path: Theme root directory.
        external_libraries_dir: Install location of external template
            libraries, relative to the theme root.

    Example:
        >>> assembler = TemplateAssembler(Path("cornerstone"))
        >>> sources = assembler.load(Path("cornerstone/templates"), "pages/home")
        >>> sorted(sources)
        ['components/header', 'layout/base', 'pages/home']
    """

    def __init__(
        self,
        theme_path: Path | str,
        external_libraries_dir: str = "node_modules",
    ) -> None:
        self.theme_path = Path(theme_path)
        self.libraries_root = self.theme_path / external_libraries_dir

    def path_for(self, templates_root: Path, identifier: str) -> Path:
        """Return the file backing ``identifier``."""
        if identifier.startswith(EXTERNAL_MARKER + "/"):
            relative = identifier[len(EXTERNAL_MARKER) + 1 :]
            return self.libraries_root / f"{relative}{TEMPLATE_SUFFIX}"
        return templates_root / f"{identifier}{TEMPLATE_SUFFIX}"

    def load(self, templates_root: Path | str, partial: str) -> dict[str, str]:
        """Load ``partial`` and everything it references.

        References that do not exist on disk are skipped; the compiled
        template reports them when rendered.

        Raises:
            ResolutionError: If ``partial`` itself cannot be read.
        """
        templates_root = Path(templates_root)
        sources: dict[str, str] = {}
        pending = [partial]

        while pending:
            identifier = pending.pop()
            if identifier in sources:
                continue
            path = self.path_for(templates_root, identifier)
            try:
                source = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                if identifier == partial:
                    raise ResolutionError(f"Template not found: {partial}") from None
                logger.debug("partial_reference_missing", partial=partial, reference=identifier)
                continue
            except OSError as e:
                raise ResolutionError(
                    f"Cannot read template: {identifier}",
                    internal_details=f"{path}: {e}",
                ) from e

            sources[identifier] = source
            pending.extend(_strip_suffix(ref) for ref in find_references(source))

        return sources

    def load_all(self, templates_root: Path | str, partials: list[str]) -> dict[str, str]:
        """Load every partial in ``partials`` into one table."""
        merged: dict[str, str] = {}
        for partial in partials:
            merged.update(self.load(templates_root, partial))
        return merged


def _strip_suffix(reference: str) -> str:
    return reference[: -len(TEMPLATE_SUFFIX)] if reference.endswith(TEMPLATE_SUFFIX) else reference


def assemble_translations(lang_dir: Path | str) -> dict[str, Any]:
    """Read every ``*.json`` translation file in ``lang_dir``.

    Returns:
        Mapping of locale (file stem) to its parsed translation table. An
        absent directory yields an empty mapping.

    Raises:
        ConfigError: If a translation file is not valid JSON.
    """
    lang_dir = Path(lang_dir)
    if not lang_dir.is_dir():
        return {}

    translations: dict[str, Any] = {}
    for path in sorted(lang_dir.glob("*.json")):
        try:
            translations[path.stem] = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON at line {e.lineno}, column {e.colno}",
                file_path=f"lang/{path.name}",
            ) from e
    return translations
