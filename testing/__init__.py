"""Shared testing infrastructure for the stencil toolkit.

This package provides reusable theme factories and workflow fakes for
testing across the stencil-bundle and stencil-cli packages.

Modules:
    fixtures: Theme directory factories and push workflow collaborators

Usage:
    In your conftest.py:
        from testing.fixtures.themes import make_theme
        from testing.fixtures.push import FakeThemeApi
"""

from __future__ import annotations
