"""Theme configuration loading.

`ThemeConfig` is the data source the build consumes for the raw theme
configuration, the settings schema and the resolved (variation-merged)
configuration.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from stencil_bundle.errors import ConfigError

CONFIG_FILENAME = "config.json"
SCHEMA_FILENAME = "schema.json"


class ThemeVariation(BaseModel):
    """A named preset of theme settings."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(..., min_length=1)
    id: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)


class ThemeManifest(BaseModel):
    """Validated shape of a theme's config.json.

    Unknown top-level keys (meta, css_compiler, ...) are preserved.

    Example:
        >>> manifest = ThemeManifest.model_validate(
        ...     {"name": "Cornerstone", "version": "6.1.0", "variations": [{"name": "Light"}]}
        ... )
        >>> manifest.variations[0].name
        'Light'
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(..., min_length=1, description="Theme display name")
    version: str = Field(..., min_length=1, description="Theme version")
    settings: dict[str, Any] = Field(default_factory=dict)
    variations: list[ThemeVariation] = Field(default_factory=list)


class ThemeConfig:
    """Read-only access to a theme's configuration files.

    Args:
        theme_path: Theme root directory.
        variation_index: Variation whose settings `get_config` merges in.
    """

    def __init__(self, theme_path: Path | str, variation_index: int = 0) -> None:
        self.theme_path = Path(theme_path)
        self.variation_index = variation_index
        self.config_path = self.theme_path / CONFIG_FILENAME
        self.schema_path = self.theme_path / SCHEMA_FILENAME

    def config_exists(self) -> bool:
        return self.config_path.is_file()

    def get_raw_config(self) -> dict[str, Any]:
        """Return config.json exactly as parsed.

        Raises:
            ConfigError: If the file is missing or not valid JSON.
        """
        return self._read_json(self.config_path)

    def get_manifest(self) -> ThemeManifest:
        """Return config.json validated as a `ThemeManifest`.

        Raises:
            ConfigError: If the file is missing, unparsable or invalid.
        """
        raw = self.get_raw_config()
        try:
            return ThemeManifest.model_validate(raw)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(
                f"Invalid theme configuration: {problems}",
                file_path=CONFIG_FILENAME,
            ) from e

    def get_schema(self) -> list[Any]:
        """Return the theme settings schema (an empty list when absent)."""
        if not self.schema_path.exists():
            return []
        schema = self._read_json(self.schema_path)
        if not isinstance(schema, list):
            raise ConfigError("Theme schema must be a JSON array", file_path=SCHEMA_FILENAME)
        return schema

    def get_config(self) -> dict[str, Any]:
        """Return the configuration resolved for the selected variation.

        The variation's settings are merged over the base settings; the
        variation list itself is dropped.
        """
        manifest = self.get_manifest()
        config = self.get_raw_config()
        config.pop("variations", None)

        settings = dict(manifest.settings)
        if manifest.variations:
            if not 0 <= self.variation_index < len(manifest.variations):
                raise ConfigError(
                    f"Variation index {self.variation_index} out of range "
                    f"(theme has {len(manifest.variations)} variations)",
                    file_path=CONFIG_FILENAME,
                )
            variation = manifest.variations[self.variation_index]
            settings.update(variation.settings)
            config["variationName"] = variation.name
        config["settings"] = settings
        return config

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigError("Configuration file not found", file_path=path.name) from None
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON at line {e.lineno}, column {e.colno}",
                file_path=path.name,
            ) from e
