"""CLI entry point for stencil.

``stencil --help`` lists the commands without importing them. A command
module, and the Jinja2, httpx and questionary imports behind it, loads the
first time that command is looked up.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import click
import rich_click as rclick

from stencil_cli import __version__
from stencil_cli.output import color_enabled, disable_color

rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

LAZY_COMMANDS: dict[str, tuple[str, str]] = {
    "bundle": ("stencil_cli.commands.bundle", "bundle"),
    "bundle-worker": ("stencil_cli.commands.bundle_worker", "bundle_worker"),
    "push": ("stencil_cli.commands.push", "push"),
}


class LazyGroup(rclick.RichGroup):
    """Group whose subcommands are imported on first lookup.

    A loaded command is registered on the group, so its module is imported
    once per process.

    Args:
        lazy_subcommands: Command name to ``(module, attribute)``.
    """

    def __init__(self, *args: Any, lazy_subcommands: Mapping[str, tuple[str, str]], **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_subcommands = dict(lazy_subcommands)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(self.lazy_subcommands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in self.commands and cmd_name in self.lazy_subcommands:
            module_name, attr_name = self.lazy_subcommands[cmd_name]
            command: click.Command = getattr(importlib.import_module(module_name), attr_name)
            self.add_command(command, cmd_name)
        return self.commands.get(cmd_name)


def _no_color(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if value:
        disable_color()


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="stencil")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=_no_color,
)
@click.option(
    "--theme-path",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Theme root directory.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Structured log level (logs go to stderr).",
)
@click.pass_context
def cli(ctx: click.Context, theme_path: Path, log_level: str) -> None:
    """Stencil - package and deploy storefront themes.

    **Getting Started:**

    - `stencil bundle` - Build a theme archive for upload
    - `stencil bundle-worker` - Build an edge worker bundle
    - `stencil push` - Upload a theme and optionally activate it
    """
    from stencil_bundle.observability import configure_logging

    configure_logging(getattr(logging, log_level.upper()), colors=color_enabled())
    ctx.obj = {"theme_path": theme_path}


if __name__ == "__main__":
    cli()
