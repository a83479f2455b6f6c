"""Interactive prompts for the push workflow, backed by questionary."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Any

import questionary
from questionary import Choice, Style

from stencil_cli.errors import PromptCancelledError

prompt_style = Style(
    [
        ("qmark", "fg:#00ff00 bold"),
        ("question", "bold"),
        ("answer", "fg:#00ff00 bold"),
        ("pointer", "fg:#00ff00 bold"),
        ("highlighted", "fg:#00ff00 bold"),
        ("selected", "fg:#00ff00"),
    ]
)


def _answered(value: Any) -> Any:
    # questionary returns None on Ctrl-C
    if value is None:
        raise PromptCancelledError("Cancelled")
    return value


class QuestionaryPrompter:
    """Terminal prompts used by ``stencil push``.

    Each method awaits the answer without blocking the event loop.
    """

    async def confirm(self, message: str, *, default: bool = False) -> bool:
        answer = await questionary.confirm(message, default=default, style=prompt_style).ask_async()
        return bool(_answered(answer))

    async def select(self, message: str, choices: Sequence[tuple[str, str]]) -> str:
        """Ask for one of ``choices`` (``(value, title)`` pairs) and return its value."""
        answer = await questionary.select(
            message,
            choices=[Choice(title=title, value=value) for value, title in choices],
            style=prompt_style,
        ).ask_async()
        return str(_answered(answer))

    async def checkbox(
        self,
        message: str,
        choices: Sequence[tuple[str, str]],
        *,
        disabled: Collection[str] = (),
    ) -> list[str]:
        """Ask for one or more of ``choices`` (``(value, title)`` pairs).

        Values listed in ``disabled`` are shown but cannot be picked. At least
        one entry must be selected.
        """
        answer = await questionary.checkbox(
            message,
            choices=[
                Choice(title=title, value=value, disabled="in use" if value in disabled else None)
                for value, title in choices
            ],
            validate=lambda selected: bool(selected) or "You must select at least one theme",
            style=prompt_style,
        ).ask_async()
        return list(_answered(answer))
