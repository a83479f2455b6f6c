"""Unit tests for the stencil-bundle exception hierarchy."""

from __future__ import annotations

import pytest

from stencil_bundle.errors import (
    BuildError,
    ConfigError,
    DependencyInstallError,
    LinkError,
    ResolutionError,
    StencilError,
    TemplateCompileError,
    ThemeValidationError,
)


class TestStencilError:
    def test_user_message_and_internal_details(self) -> None:
        error = StencilError("Theme could not be bundled", internal_details="EACCES")

        assert str(error) == "Theme could not be bundled"
        assert error.user_message == "Theme could not be bundled"
        assert error.internal_details == "EACCES"

    @pytest.mark.parametrize(
        "error_class",
        [ConfigError, ResolutionError, LinkError, BuildError, DependencyInstallError],
    )
    def test_subclasses_share_base(self, error_class: type[StencilError]) -> None:
        assert issubclass(error_class, StencilError)

    def test_dependency_install_is_build_error(self) -> None:
        assert issubclass(DependencyInstallError, BuildError)


class TestMessages:
    def test_config_error_names_file(self) -> None:
        error = ConfigError("Invalid JSON", file_path="config.json")

        assert error.user_message == "Invalid JSON (in config.json)"
        assert error.file_path == "config.json"

    def test_validation_error_lists_issues(self) -> None:
        error = ThemeValidationError(["a is missing", "b is missing"])

        assert error.issues == ["a is missing", "b is missing"]
        assert error.user_message == "Theme validation failed:\n  - a is missing\n  - b is missing"

    def test_compile_error_names_partial(self) -> None:
        error = TemplateCompileError("pages/home", "unexpected end of template")

        assert error.partial == "pages/home"
        assert "pages/home" in error.user_message

    def test_link_error_names_module(self) -> None:
        error = LinkError("Unresolved import 'requests'", module="<entry>")

        assert error.user_message == "Unresolved import 'requests' [<entry>]"
        assert error.module == "<entry>"
