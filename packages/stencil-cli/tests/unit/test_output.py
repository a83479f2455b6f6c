"""Unit tests for stencil_cli.output, progress and prompt helpers."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.console import Console

from stencil_cli import output
from stencil_cli.errors import CLIError, PromptCancelledError
from stencil_cli.progress import RichJobProgress
from stencil_cli.prompts import _answered


@pytest.fixture
def plain_consoles() -> Iterator[None]:
    """Swap in colorless consoles for the duration of a test."""
    original = output.console, output.err_console
    output.disable_color()
    try:
        yield
    finally:
        output.console, output.err_console = original


@pytest.mark.usefixtures("plain_consoles")
class TestStepMarks:
    def test_done_goes_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.done("Theme Upload Finished")

        captured = capsys.readouterr()
        assert captured.out == "✓ Theme Upload Finished\n"
        assert captured.err == ""

    def test_caution_goes_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.caution("Theme Activation Timed Out; Retrying...")

        assert capsys.readouterr().out == "⚠ Theme Activation Timed Out; Retrying...\n"

    def test_failed_goes_to_stderr_as_plain_text(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.failed("Import name collision on 'x' [stencil_helpers]")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == "✗ Import name collision on 'x' [stencil_helpers]\n"

    def test_long_paths_are_not_wrapped(self, capsys: pytest.CaptureFixture[str]) -> None:
        path = Path("/tmp") / ("very-long-directory-name-" * 6) / "cornerstone-6.1.0.zip"

        output.built("Theme archive", path)

        assert capsys.readouterr().out == f"✓ Theme archive written to {path}\n"

    def test_built_reports_template_count(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.built("Worker bundle", Path("worker-bundle"), templates=12)

        assert capsys.readouterr().out == "✓ Worker bundle written to worker-bundle (12 templates compiled)\n"

    def test_cli_error_is_shown_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        CLIError("Theme upload failed (422)").show()

        assert capsys.readouterr().err == "✗ Theme upload failed (422)\n"


class TestColor:
    def test_disable_color_replaces_both_consoles(self) -> None:
        original = output.console, output.err_console
        try:
            output.disable_color()

            assert output.console.no_color is True
            assert output.err_console.no_color is True
            assert output.color_enabled() is False
        finally:
            output.console, output.err_console = original

    def test_no_color_environment_is_honoured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert Console().no_color is True


@pytest.mark.usefixtures("plain_consoles")
class TestRichJobProgress:
    def test_complete_fills_and_stops_the_bar(self) -> None:
        progress = RichJobProgress()

        progress.update(30)
        progress.complete()

        assert progress._progress is None

    def test_complete_without_updates(self) -> None:
        progress = RichJobProgress()

        progress.complete()

        assert progress._progress is None


class TestPrompts:
    def test_answer_passes_through(self) -> None:
        assert _answered(["t1"]) == ["t1"]
        assert _answered(False) is False

    def test_dismissed_prompt(self) -> None:
        with pytest.raises(PromptCancelledError):
            _answered(None)
