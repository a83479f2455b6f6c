"""stencil push command - Upload a theme to the store and activate it."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from stencil_cli.models import UploadSession


@click.command()
@click.option(
    "-f",
    "--file",
    "bundle_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Upload this archive instead of building one",
)
@click.option(
    "-s",
    "--save",
    "save_name",
    type=str,
    default=None,
    help="Keep the built archive in the theme directory under this name",
)
@click.option(
    "--host",
    "api_host",
    type=str,
    default=None,
    help="Theme API host [default: https://api.bigcommerce.com]",
)
@click.option(
    "-d",
    "--delete",
    "delete_oldest",
    is_flag=True,
    default=False,
    help="Delete the oldest private theme if the upload limit is reached",
)
@click.option(
    "-a",
    "--activate",
    is_flag=True,
    default=False,
    help="Activate the theme's first variation after upload",
)
@click.option(
    "--variation",
    "variation_name",
    type=str,
    default=None,
    help="Activate this variation after upload (exact name)",
)
@click.pass_obj
def push(
    obj: dict[str, Path],
    bundle_path: Path | None,
    save_name: str | None,
    api_host: str | None,
    delete_oldest: bool,
    activate: bool,
    variation_name: str | None,
) -> None:
    """Upload a theme to the store.

    Reads store credentials from `.stencil` in the theme directory, builds
    (or reuses) an archive, uploads it and waits for processing. Optionally
    frees a theme slot and activates a variation.

    Examples:

        stencil push

        stencil push --delete --activate

        stencil push --file cornerstone-6.1.0.zip --variation Bold
    """
    # Import here to avoid heavy imports at CLI startup
    from stencil_bundle.errors import StencilError

    from stencil_cli.config import DEFAULT_API_HOST, DOT_STENCIL_FILENAME
    from stencil_cli.errors import fail
    from stencil_cli.models import UploadSession

    theme_path: Path = obj["theme_path"]
    session = UploadSession(
        dot_stencil_path=theme_path / DOT_STENCIL_FILENAME,
        api_host=api_host or DEFAULT_API_HOST,
        bundle_path=bundle_path,
        save_bundle_name=save_name,
        delete_oldest=delete_oldest,
        activate=activate,
        variation_name=variation_name,
    )

    try:
        asyncio.run(_push(session, theme_path))
    except (StencilError, OSError) as e:
        fail(e)


async def _push(session: UploadSession, theme_path: Path) -> UploadSession:
    from stencil_cli.api_client import ThemeApiClient
    from stencil_cli.progress import RichJobProgress
    from stencil_cli.prompts import QuestionaryPrompter
    from stencil_cli.push import PushContext, run_push

    async with ThemeApiClient() as api_client:
        ctx = PushContext(
            api_client=api_client,
            prompter=QuestionaryPrompter(),
            progress=RichJobProgress(),
            theme_path=theme_path,
        )
        return await run_push(session, ctx)
