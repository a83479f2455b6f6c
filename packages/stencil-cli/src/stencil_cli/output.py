"""Terminal output for stencil commands.

Commands mark each reported step: ``✓`` done, ``⚠`` needs attention or is
being retried, ``✗`` failed. Only failures go to stderr, so
``stencil bundle > log`` still shows why a build stopped.

Rich already drops color when NO_COLOR is set; ``--no-color`` calls
`disable_color` for the same effect. Lines are soft-wrapped so long theme
paths stay on one line.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

DONE = "[green]✓[/green]"
CAUTION = "[yellow]⚠[/yellow]"
FAILED = "[red]✗[/red]"

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def disable_color() -> None:
    global console, err_console
    console = Console(highlight=False, no_color=True)
    err_console = Console(stderr=True, highlight=False, no_color=True)


def color_enabled() -> bool:
    return not console.no_color


def done(message: str) -> None:
    """Report a finished step.

    Example:
        >>> done("Theme Upload Finished")
        ✓ Theme Upload Finished
    """
    console.print(f"{DONE} {message}", soft_wrap=True)


def caution(message: str) -> None:
    console.print(f"{CAUTION} {message}", soft_wrap=True)


def failed(message: str) -> None:
    """Report a failure on stderr. ``message`` is printed as plain text."""
    err_console.print(f"{FAILED} {escape(message)}", soft_wrap=True)


def built(kind: str, path: Path, *, templates: int | None = None) -> None:
    """Report a finished build and where it was written.

    Example:
        >>> built("Worker bundle", Path("worker-bundle"), templates=12)
        ✓ Worker bundle written to worker-bundle (12 templates compiled)
    """
    detail = f" ({templates} templates compiled)" if templates is not None else ""
    done(f"{kind} written to {escape(str(path))}{detail}")
