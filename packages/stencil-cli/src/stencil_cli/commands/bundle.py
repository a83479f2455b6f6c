"""stencil bundle command - Build a theme archive."""

from __future__ import annotations

from pathlib import Path

import click

from stencil_cli.output import built


@click.command()
@click.option(
    "-d",
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory receiving the archive [default: theme directory]",
)
@click.option(
    "-n",
    "--name",
    type=str,
    default=None,
    help="Archive file name without .zip [default: <name>-<version>]",
)
@click.pass_obj
def bundle(obj: dict[str, Path], dest: Path | None, name: str | None) -> None:
    """Build a theme archive for upload.

    Validates the theme, resolves its partials and translations and zips
    them together with the parsed configuration.

    Examples:

        stencil bundle

        stencil bundle --dest dist --name my-theme
    """
    # Import here to avoid heavy imports at CLI startup
    from pydantic import ValidationError as PydanticValidationError

    from stencil_bundle import BuildOptions, BuildOrchestrator, StencilError

    from stencil_cli.errors import fail

    try:
        options = BuildOptions(dest=dest, name=name)
        artifact = BuildOrchestrator(obj["theme_path"], options=options).build()
    except (StencilError, OSError, PydanticValidationError) as e:
        fail(e)

    built("Theme archive", artifact)
