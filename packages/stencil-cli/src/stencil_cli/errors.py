"""CLI and deployment workflow errors for stencil-cli.

This module defines:
- CLIError: click exception carrying an exit code
- WorkflowError and its subclasses: one per push step, so callers can tell
  retryable conditions from fatal ones without matching on messages
- JobPendingSignal: internal retry signal of the job poll loop (not an error)
"""

from __future__ import annotations

from typing import NoReturn

import click

from stencil_bundle.errors import StencilError
from stencil_cli.output import failed

# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (validation, bad flag, remote rejection)
EXIT_SYSTEM_ERROR = 2  # System error (missing file, permissions)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        failed(self.format_message())


class WorkflowError(StencilError):
    """Base class for push workflow failures."""


class StencilConfigReadError(WorkflowError):
    """The local ``.stencil`` deployment config is missing or invalid."""


class BundleInitError(WorkflowError):
    """The theme archive could not be produced."""


class NetworkError(WorkflowError):
    """A remote API call failed.

    Attributes:
        status_code: HTTP status of the failed response, when there was one.
    """

    def __init__(
        self,
        user_message: str,
        *,
        status_code: int | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.status_code = status_code


class StoreHashReadError(NetworkError):
    """The store identity could not be resolved from the store URL."""


class ThemeUploadError(NetworkError):
    """The archive upload was rejected."""


class ThemeDeletionError(NetworkError):
    """Themes could not be selected for deletion or deleted."""


class JobFailedError(NetworkError):
    """The remote processing job finished unsuccessfully."""


class VariationActivationError(NetworkError):
    """The chosen variation could not be activated."""


class VariationActivationTimeoutError(VariationActivationError):
    """Activation timed out. Retried up to three attempts in total."""


class InvalidVariationError(WorkflowError):
    """The requested variation name does not exist on the uploaded theme.

    Attributes:
        requested: The name that was asked for.
        available: The names that do exist, in remote order.
    """

    def __init__(self, requested: str, available: list[str]) -> None:
        super().__init__(
            f"Variation '{requested}' not found. Available variations: {', '.join(available)}"
        )
        self.requested = requested
        self.available = available


class PromptCancelledError(WorkflowError):
    """The user dismissed an interactive prompt."""


class JobPendingSignal(Exception):  # noqa: N818
    """Raised by the poll step while the remote job is still running.

    Attributes:
        percent_complete: Progress reported by the remote job.
    """

    def __init__(self, percent_complete: int) -> None:
        super().__init__(f"Job pending ({percent_complete}%)")
        self.percent_complete = percent_complete


def exit_code_for(exc: BaseException) -> int:
    """Pick the exit code for an error that reached the command boundary."""
    if isinstance(exc, OSError) or isinstance(exc.__cause__, OSError):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


def fail(exc: BaseException) -> NoReturn:
    """Turn ``exc`` into a `CLIError` that click prints and exits with.

    Raises:
        CLIError: Always.
    """
    message = exc.user_message if isinstance(exc, StencilError) else str(exc)
    raise CLIError(message, exit_code=exit_code_for(exc)) from exc
