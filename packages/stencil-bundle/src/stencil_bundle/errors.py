"""Custom exception hierarchy for stencil-bundle.

This module defines the exception classes raised while packaging a theme:
- StencilError: Base exception for all bundle-related errors
- ConfigError: Theme configuration missing or unreadable
- ThemeValidationError: Theme fails structural checks (pre-build, fatal)
- ResolutionError: File-system failure while scanning partial dependencies
- TemplateCompileError: A partial failed ahead-of-time compilation
- LinkError: Static linking failed (unresolved import, forbidden code)
- BuildError / DependencyInstallError: Output stage failures

User-facing messages are safe to display; technical details are logged
internally via structlog and never shown.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class StencilError(Exception):
    """Base exception for stencil-bundle.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging. This is
            logged internally but NEVER exposed to the user.

    Example:
        >>> raise StencilError(
        ...     "Theme could not be bundled",
        ...     internal_details="EACCES on /theme/templates/pages",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize StencilError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "stencil_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigError(StencilError):
    """Raised when the theme configuration is missing or unreadable.

    Attributes:
        file_path: Path to the configuration file (if known).

    Example:
        >>> raise ConfigError("config.json is not valid JSON", file_path="config.json")
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = f"{user_message} (in {file_path})" if file_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.file_path = file_path


class ThemeValidationError(StencilError):
    """Raised when a theme fails structural or schema checks.

    Validation is always the first build stage; this error is always fatal.

    Attributes:
        issues: Individual problems found, one line each.
    """

    def __init__(self, issues: list[str], *, internal_details: str | None = None) -> None:
        lines = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(f"Theme validation failed:\n{lines}", internal_details=internal_details)
        self.issues = issues


class ResolutionError(StencilError):
    """Raised when template files cannot be read during dependency scanning,
    or an external reference points outside the libraries root."""


class TemplateCompileError(StencilError):
    """Raised when a partial fails ahead-of-time compilation.

    Compile errors abort the build: a missing render function at serve time
    cannot be recovered.

    Attributes:
        partial: Identifier of the partial that failed.
    """

    def __init__(self, partial: str, reason: str) -> None:
        super().__init__(
            f"Template '{partial}' failed to compile: {reason}",
            internal_details=reason,
        )
        self.partial = partial
        self.reason = reason


class LinkError(StencilError):
    """Raised when the static link stage cannot produce a self-contained script.

    Attributes:
        module: Logical module name involved, when known.
    """

    def __init__(
        self,
        user_message: str,
        *,
        module: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = f"{user_message} [{module}]" if module else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.module = module


class BuildError(StencilError):
    """Raised when an output stage of the build fails."""


class DependencyInstallError(BuildError):
    """Raised when the edge bundle's runtime packages cannot be installed."""
