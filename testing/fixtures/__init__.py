"""Shared test fixtures for stencil toolkit packages.

Exports:
    Theme fixtures:
        make_theme: Factory laying out a complete theme on disk
        DEFAULT_CONFIG, DEFAULT_TEMPLATES, DEFAULT_LANG: The factory's defaults

    Push workflow fixtures:
        FakeThemeApi: In-memory theme API recording every call
        FakePrompter: Preset answers for interactive prompts
        RecordingProgress, RecordingSleep: Progress and sleep stand-ins

Usage:
    ```python
    from testing.fixtures import make_theme

    theme = make_theme(tmp_path, lang={"en": {}})
    ```
"""

from __future__ import annotations

from testing.fixtures.push import (
    FakePrompter,
    FakeThemeApi,
    RecordingProgress,
    RecordingSleep,
)
from testing.fixtures.themes import (
    DEFAULT_CONFIG,
    DEFAULT_LANG,
    DEFAULT_TEMPLATES,
    make_theme,
)

__all__ = [
    # Theme fixtures
    "DEFAULT_CONFIG",
    "DEFAULT_LANG",
    "DEFAULT_TEMPLATES",
    "make_theme",
    # Push workflow fixtures
    "FakePrompter",
    "FakeThemeApi",
    "RecordingProgress",
    "RecordingSleep",
]
