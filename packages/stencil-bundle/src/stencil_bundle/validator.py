"""Structural validation of a theme before any build stage runs."""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from stencil_bundle.errors import ConfigError, ThemeValidationError
from stencil_bundle.theme import ThemeConfig

logger = structlog.get_logger(__name__)

REQUIRED_TEMPLATES: tuple[str, ...] = ("pages/home",)
DEFAULT_LOCALE = "en"


class ThemeValidator:
    """Check that a theme has everything a build needs.

    All problems are collected and reported together in one
    `ThemeValidationError`.

    Example:
        >>> ThemeValidator(theme_path, ThemeConfig(theme_path)).validate()
    """

    def __init__(self, theme_path: Path | str, theme_config: ThemeConfig) -> None:
        self.theme_path = Path(theme_path)
        self.theme_config = theme_config

    def validate(self) -> None:
        """Validate the theme.

        Raises:
            ThemeValidationError: If any check fails.
        """
        issues: list[str] = []
        issues.extend(self._check_config())
        issues.extend(self._check_templates())
        issues.extend(self._check_lang())

        if issues:
            raise ThemeValidationError(issues)
        logger.debug("theme_valid", theme_path=str(self.theme_path))

    def _check_config(self) -> list[str]:
        if not self.theme_config.config_exists():
            return ["config.json is missing from the theme root"]
        try:
            manifest = self.theme_config.get_manifest()
            self.theme_config.get_schema()
        except ConfigError as e:
            return [e.user_message]

        names = [variation.name for variation in manifest.variations]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            return [f"Duplicate variation names: {', '.join(duplicates)}"]
        return []

    def _check_templates(self) -> list[str]:
        templates = self.theme_path / "templates"
        if not templates.is_dir():
            return ["templates/ directory is missing"]
        return [
            f"Required template is missing: templates/{name}.html"
            for name in REQUIRED_TEMPLATES
            if not (templates / f"{name}.html").is_file()
        ]

    def _check_lang(self) -> list[str]:
        lang = self.theme_path / "lang"
        default = lang / f"{DEFAULT_LOCALE}.json"
        if not default.is_file():
            return [f"Default language file is missing: lang/{DEFAULT_LOCALE}.json"]

        issues = []
        for path in sorted(lang.glob("*.json")):
            try:
                json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                issues.append(f"lang/{path.name} is not valid JSON (line {e.lineno})")
        return issues
