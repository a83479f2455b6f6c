"""stencil bundle-worker command - Build an edge worker bundle."""

from __future__ import annotations

from pathlib import Path

import click

from stencil_cli.output import built


@click.command("bundle-worker")
@click.option(
    "-d",
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Bundle directory [default: <theme>/worker-bundle]",
)
@click.option(
    "-t",
    "--timeout",
    type=click.IntRange(min=1),
    default=60,
    show_default=True,
    help="Seconds allowed for installing runtime packages",
)
@click.option(
    "--api-url",
    type=str,
    default=None,
    help="Upstream storefront API base URL baked into the worker",
)
@click.option(
    "--skip-install",
    is_flag=True,
    default=False,
    help="Write requirements.txt without installing the runtime packages",
)
@click.pass_obj
def bundle_worker(
    obj: dict[str, Path],
    dest: Path | None,
    timeout: int,
    api_url: str | None,
    skip_install: bool,
) -> None:
    """Build an edge worker bundle.

    Compiles every partial ahead of time, links a single worker script with
    the allowed helpers, copies static assets and writes the deployment
    descriptor.

    Examples:

        stencil bundle-worker

        stencil bundle-worker --api-url https://shop.example --skip-install
    """
    # Import here to avoid heavy imports at CLI startup
    from pydantic import ValidationError as PydanticValidationError

    from stencil_bundle import BuildOptions, BuildOrchestrator, BuildTarget, StencilError

    from stencil_cli.errors import fail

    overrides = {"api_url": api_url} if api_url else {}
    try:
        options = BuildOptions(
            target=BuildTarget.EDGE_BUNDLE,
            dest=dest,
            timeout=timeout,
            install_dependencies=not skip_install,
            **overrides,
        )
        orchestrator = BuildOrchestrator(obj["theme_path"], options=options)
        bundle_dir = orchestrator.build()
    except (StencilError, OSError, PydanticValidationError) as e:
        fail(e)

    manifest = orchestrator.manifest
    built("Worker bundle", bundle_dir, templates=len(manifest.templates) if manifest else None)
