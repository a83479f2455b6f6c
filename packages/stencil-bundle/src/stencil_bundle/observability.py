"""Structured logging and OpenTelemetry spans for stencil-bundle.

Build and push stages run inside `stage`, which opens a span and logs the
stage's start, completion or failure. `configure_logging` is called once by
the CLI; logs go to stderr because stdout carries the command's step lines.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer

TRACER_NAME = "stencil.bundle"

logger = structlog.get_logger(TRACER_NAME)

_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for stencil-bundle."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def configure_logging(level: int = logging.WARNING, *, colors: bool = True) -> None:
    """Render log events at ``level`` and above as console lines on stderr.

    Args:
        level: Minimum stdlib level number, e.g. ``logging.DEBUG``.
        colors: Colorize the rendered lines (off for ``--no-color``).
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@contextmanager
def stage(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Run one build stage inside a span, logging start, end and failure.

    The exception of a failing stage is re-raised unchanged.

    Args:
        name: Stage name (e.g., "validate", "link").
        kind: Span kind.
        attributes: Optional span attributes, also added to log events.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with stage("compile", attributes={"partials": 42}):
        ...     compiler.compile(partials, templates)
    """
    attrs = attributes or {}

    with get_tracer().start_as_current_span(f"stencil.{name}", kind=kind, attributes=attrs) as s:
        logger.debug(f"{name}_started", **attrs)
        try:
            yield s
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), **attrs)
            raise
        s.set_status(Status(StatusCode.OK))
        logger.info(f"{name}_completed", **attrs)


def log_retry_attempt(
    operation: str,
    attempt: int,
    max_attempts: int | None,
    wait_seconds: float,
    error: str,
) -> None:
    """Log a retry attempt for observability.

    Args:
        operation: Operation being retried.
        attempt: Current attempt number.
        max_attempts: Maximum attempts configured (None when unbounded).
        wait_seconds: Time waiting before retry.
        error: Error message that triggered retry.
    """
    logger.warning(
        "operation_retry",
        operation=operation,
        attempt=attempt,
        max_attempts=max_attempts,
        wait_seconds=wait_seconds,
        error=error,
    )
