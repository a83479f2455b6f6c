"""Unit tests for template and translation assembly."""

from __future__ import annotations

from pathlib import Path

import pytest

from stencil_bundle.assembler import TemplateAssembler, assemble_translations
from stencil_bundle.errors import ConfigError, ResolutionError


class TestTemplateAssembler:
    """Tests for TemplateAssembler.load."""

    def test_loads_nested_references(self, theme_path: Path, templates_root: Path) -> None:
        sources = TemplateAssembler(theme_path).load(templates_root, "pages/home")

        assert set(sources) == {
            "pages/home",
            "layout/base",
            "components/products/card",
            "external/stencil-payments/templates/components/button",
        }
        assert sources["components/products/card"].startswith('<div class="card">')

    def test_html_suffix_in_reference_is_stripped(self, theme_path: Path, templates_root: Path) -> None:
        (templates_root / "pages" / "about.html").write_text(
            '{% include "components/products/card.html" %}', encoding="utf-8"
        )

        sources = TemplateAssembler(theme_path).load(templates_root, "pages/about")

        assert "components/products/card" in sources

    def test_missing_nested_reference_is_skipped(self, theme_path: Path, templates_root: Path) -> None:
        (templates_root / "pages" / "broken.html").write_text(
            '{% include "components/nowhere" %}', encoding="utf-8"
        )

        sources = TemplateAssembler(theme_path).load(templates_root, "pages/broken")

        assert list(sources) == ["pages/broken"]

    def test_missing_partial_raises(self, theme_path: Path, templates_root: Path) -> None:
        with pytest.raises(ResolutionError, match="Template not found: pages/missing"):
            TemplateAssembler(theme_path).load(templates_root, "pages/missing")

    def test_load_all_merges(self, theme_path: Path, templates_root: Path) -> None:
        merged = TemplateAssembler(theme_path).load_all(
            templates_root, ["layout/base", "components/products/card"]
        )

        assert set(merged) == {"layout/base", "components/products/card"}


class TestAssembleTranslations:
    """Tests for assemble_translations."""

    def test_keyed_by_locale(self, theme_path: Path) -> None:
        translations = assemble_translations(theme_path / "lang")

        assert set(translations) == {"en", "fr"}
        assert translations["en"]["header"]["welcome"] == "Welcome, {name}!"

    def test_missing_dir_is_empty(self, tmp_path: Path) -> None:
        assert assemble_translations(tmp_path / "lang") == {}

    def test_invalid_json_raises(self, theme_path: Path) -> None:
        (theme_path / "lang" / "de.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="lang/de.json"):
            assemble_translations(theme_path / "lang")
