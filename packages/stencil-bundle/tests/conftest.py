"""Shared pytest fixtures for stencil-bundle tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import structlog

from testing.fixtures.themes import make_theme


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def theme_path(tmp_path: Path) -> Path:
    """A complete theme with one external template library."""
    return make_theme(tmp_path)


@pytest.fixture
def templates_root(theme_path: Path) -> Path:
    return theme_path / "templates"
