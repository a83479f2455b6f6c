"""The ``stencil push`` workflow: upload, poll and activate a theme.

Each step takes the current `UploadSession` and returns a new one, or raises
the workflow error naming the step that failed. `run_push` threads a session
through `PUSH_STEPS` in order.

Collaborators (API client, prompts, progress display, sleep, archive build)
live on `PushContext` so tests can replace them.
"""

from __future__ import annotations

import asyncio
import tempfile
import uuid
from collections.abc import Awaitable, Callable, Collection, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)

from stencil_bundle.errors import StencilError
from stencil_bundle.models import BuildOptions
from stencil_bundle.observability import log_retry_attempt, stage
from stencil_cli import config as dot_stencil
from stencil_cli.api_client import ThemeApiClient
from stencil_cli.config import StencilConfig
from stencil_cli.errors import (
    BundleInitError,
    InvalidVariationError,
    JobFailedError,
    JobPendingSignal,
    ThemeDeletionError,
    ThemeUploadError,
    VariationActivationError,
    VariationActivationTimeoutError,
)
from stencil_cli.models import JobStatus, ThemeRecord, UploadResult, UploadSession, Variation
from stencil_cli.output import caution, done

logger = structlog.get_logger(__name__)

POLL_INTERVAL_SECONDS = 1
ACTIVATION_ATTEMPTS = 3
ACTIVATION_INTERVAL_SECONDS = 1


class Prompter(Protocol):
    async def confirm(self, message: str, *, default: bool = False) -> bool: ...

    async def select(self, message: str, choices: Sequence[tuple[str, str]]) -> str: ...

    async def checkbox(
        self,
        message: str,
        choices: Sequence[tuple[str, str]],
        *,
        disabled: Collection[str] = (),
    ) -> list[str]: ...


class JobProgress(Protocol):
    def update(self, percent: int) -> None: ...

    def complete(self) -> None: ...


ArchiveBuilder = Callable[[Path, BuildOptions], Path]
Sleep = Callable[[float], Awaitable[None]]


def build_archive(theme_path: Path, options: BuildOptions) -> Path:
    """Build a theme archive (runs in a worker thread)."""
    from stencil_bundle.builder import BuildOrchestrator

    return BuildOrchestrator(theme_path, options=options).build()


@dataclass
class PushContext:
    """Collaborators shared by every push step.

    Attributes:
        api_client: Theme API client.
        prompter: Interactive prompts.
        progress: Job progress display.
        theme_path: Theme root used when an archive must be built.
        sleep: Awaitable sleep used between poll and activation attempts.
        build_archive: Archive builder, called off the event loop.
        temp_dir: Where unsaved archives are written.
    """

    api_client: ThemeApiClient
    prompter: Prompter
    progress: JobProgress
    theme_path: Path = Path(".")
    sleep: Sleep = asyncio.sleep
    build_archive: ArchiveBuilder = build_archive
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))


def _config(session: UploadSession) -> StencilConfig:
    if session.config is None:
        msg = "Session has no stencil config yet"
        raise RuntimeError(msg)
    return session.config


def _store_hash(session: UploadSession) -> str:
    if session.store_hash is None:
        msg = "Session has no store hash yet"
        raise RuntimeError(msg)
    return session.store_hash


def _credentials(session: UploadSession) -> dict[str, str]:
    return {
        "access_token": session.access_token,
        "api_host": session.api_host,
        "store_hash": _store_hash(session),
    }


async def read_stencil_config(session: UploadSession, ctx: PushContext) -> UploadSession:
    config = dot_stencil.read_stencil_config(session.dot_stencil_path)
    return session.model_copy(update={"config": config})


async def get_store_hash(session: UploadSession, ctx: PushContext) -> UploadSession:
    store_hash = await ctx.api_client.get_store_hash(_config(session).normal_store_url)
    return session.model_copy(update={"store_hash": store_hash})


async def get_themes(session: UploadSession, ctx: PushContext) -> UploadSession:
    themes = await ctx.api_client.get_themes(**_credentials(session))
    return session.model_copy(update={"themes": tuple(themes)})


async def generate_bundle(session: UploadSession, ctx: PushContext) -> UploadSession:
    """Build the archive unless one was supplied.

    A saved bundle goes to the theme directory under ``save_bundle_name``;
    otherwise the archive lands in the temp directory under a random name.
    """
    if session.bundle_path is not None:
        return session

    if session.save_bundle_name:
        options = BuildOptions(dest=ctx.theme_path, name=session.save_bundle_name)
    else:
        options = BuildOptions(dest=ctx.temp_dir, name=str(uuid.uuid4()))

    try:
        bundle_path = await asyncio.to_thread(ctx.build_archive, ctx.theme_path, options)
    except StencilError as e:
        raise BundleInitError(
            f"Could not build the theme archive: {e.user_message}",
            internal_details=e.internal_details,
        ) from e
    except OSError as e:
        raise BundleInitError("Could not build the theme archive", internal_details=str(e)) from e

    return session.model_copy(update={"bundle_path": bundle_path})


async def upload_bundle(session: UploadSession, ctx: PushContext) -> UploadSession:
    if session.bundle_path is None:
        raise ThemeUploadError("No theme archive to upload")

    result: UploadResult = await ctx.api_client.post_theme(
        **_credentials(session),
        bundle_path=session.bundle_path,
    )
    if not result.theme_limit_reached:
        done("Theme Upload Finished")
    return session.model_copy(
        update={"job_id": result.job_id, "theme_limit_reached": result.theme_limit_reached}
    )


async def notify_theme_limit_reached(session: UploadSession, ctx: PushContext) -> UploadSession:
    if session.theme_limit_reached and not session.delete_oldest:
        caution(
            "You have reached your upload limit. "
            "In order to proceed, you'll need to delete at least one theme."
        )
    return session


def oldest_deletable_theme(themes: Sequence[ThemeRecord]) -> ThemeRecord:
    """Return the least recently updated private, inactive theme.

    Ties go to the theme listed first.

    Raises:
        ThemeDeletionError: If no theme is eligible.
    """
    eligible = [theme for theme in themes if theme.is_private and not theme.is_active]
    if not eligible:
        raise ThemeDeletionError("No private, inactive theme is available to delete")
    return min(eligible, key=lambda theme: theme.updated_at)


async def select_themes_to_delete(session: UploadSession, ctx: PushContext) -> UploadSession:
    if not session.theme_limit_reached:
        return session

    if session.delete_oldest:
        theme_ids = [oldest_deletable_theme(session.themes).id]
    else:
        theme_ids = await ctx.prompter.checkbox(
            "Which theme(s) would you like to delete?",
            [(theme.id, theme.name) for theme in session.themes],
            disabled={theme.id for theme in session.themes if theme.is_active or not theme.is_private},
        )

    logger.info("themes_selected_for_deletion", theme_ids=theme_ids)
    return session.model_copy(update={"theme_ids_to_delete": tuple(theme_ids)})


async def delete_themes(session: UploadSession, ctx: PushContext) -> UploadSession:
    """Delete the selected themes concurrently, reporting every failed id once all calls finish."""
    if not session.theme_limit_reached:
        return session

    credentials = _credentials(session)
    results = await asyncio.gather(
        *(
            ctx.api_client.delete_theme_by_id(**credentials, theme_id=theme_id)
            for theme_id in session.theme_ids_to_delete
        ),
        return_exceptions=True,
    )
    failed: dict[str, BaseException] = {}
    for theme_id, result in zip(session.theme_ids_to_delete, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("theme_delete_failed", theme_id=theme_id, error=str(result))
            failed[theme_id] = result
    if failed:
        raise ThemeDeletionError(
            f"Could not delete themes: {', '.join(failed)}",
            internal_details="; ".join(f"{theme_id}: {e}" for theme_id, e in failed.items()),
        ) from next(iter(failed.values()))
    return session


async def upload_bundle_again(session: UploadSession, ctx: PushContext) -> UploadSession:
    """Repeat the whole upload once deletions have freed a slot."""
    if not session.theme_limit_reached:
        return session

    session = await upload_bundle(session, ctx)
    if session.theme_limit_reached:
        raise ThemeUploadError("Theme limit still reached after deleting themes")
    return session


async def poll_for_job_completion(session: UploadSession, ctx: PushContext) -> UploadSession:
    """Query the processing job every second until it is no longer pending.

    Progress shown to the user never goes backwards.

    Raises:
        JobFailedError: If the job fails or completes without a theme id.
    """
    credentials = _credentials(session)
    job_id = session.job_id or ""
    percent = 0
    job: JobStatus | None = None

    async for attempt in AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(POLL_INTERVAL_SECONDS),
        retry=retry_if_exception_type(JobPendingSignal),
        sleep=ctx.sleep,
        reraise=True,
    ):
        with attempt:
            job = await ctx.api_client.get_job(**credentials, job_id=job_id)
            if job.pending:
                percent = max(percent, job.percent_complete)
                ctx.progress.update(percent)
                logger.debug("job_pending", job_id=job_id, percent_complete=job.percent_complete)
                raise JobPendingSignal(job.percent_complete)

    ctx.progress.complete()
    done("Theme Processing Finished")

    assert job is not None
    theme_id = job.result.get("theme_id")
    if not theme_id:
        raise JobFailedError("Theme processing finished without a theme id", internal_details=repr(job.result))
    return session.model_copy(update={"theme_id": str(theme_id)})


async def prompt_apply_theme(session: UploadSession, ctx: PushContext) -> UploadSession:
    if session.activate or session.variation_name is not None:
        return session.model_copy(update={"apply_theme": True})

    apply_theme = await ctx.prompter.confirm(
        f"Would you like to apply your theme to your store at {_config(session).normal_store_url}?",
        default=False,
    )
    return session.model_copy(update={"apply_theme": apply_theme})


async def get_variations(session: UploadSession, ctx: PushContext) -> UploadSession:
    if not session.apply_theme:
        return session

    variations = await ctx.api_client.get_variations_by_theme_id(
        **_credentials(session),
        theme_id=session.theme_id or "",
    )
    return session.model_copy(update={"variations": tuple(variations)})


def find_variation(variations: Sequence[Variation], name: str) -> Variation:
    """Return the variation called exactly ``name``.

    Raises:
        InvalidVariationError: Listing the available names.
    """
    for variation in variations:
        if variation.name == name:
            return variation
    raise InvalidVariationError(name, [variation.name for variation in variations])


async def select_variation(session: UploadSession, ctx: PushContext) -> UploadSession:
    if not session.apply_theme:
        return session

    if session.variation_name is not None:
        variation_id = find_variation(session.variations, session.variation_name).id
    elif not session.variations:
        raise VariationActivationError("The uploaded theme has no variations to activate")
    elif session.activate:
        variation_id = session.variations[0].id
    else:
        variation_id = await ctx.prompter.select(
            "Which variation would you like to apply?",
            [(variation.id, variation.name) for variation in session.variations],
        )
    return session.model_copy(update={"variation_id": variation_id})


def _warn_activation_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    caution("Theme Activation Timed Out; Retrying...")
    log_retry_attempt(
        operation="activate_variation",
        attempt=retry_state.attempt_number,
        max_attempts=ACTIVATION_ATTEMPTS,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0.0,
        error=str(exc),
    )


async def activate_variation(session: UploadSession, ctx: PushContext) -> UploadSession:
    """Activate the chosen variation, retrying timeouts only.

    Raises:
        VariationActivationTimeoutError: After the third timed-out attempt.
        VariationActivationError: On any other failure (not retried).
    """
    if not session.apply_theme:
        return session

    credentials = _credentials(session)
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(ACTIVATION_ATTEMPTS),
        wait=wait_fixed(ACTIVATION_INTERVAL_SECONDS),
        retry=retry_if_exception_type(VariationActivationTimeoutError),
        sleep=ctx.sleep,
        before_sleep=_warn_activation_retry,
        reraise=True,
    ):
        with attempt:
            await ctx.api_client.activate_theme_by_variation_id(
                **credentials,
                variation_id=session.variation_id or "",
            )
    return session


async def notify_completion(session: UploadSession, ctx: PushContext) -> UploadSession:
    done("Stencil Push Finished")
    return session


PushStep = Callable[[UploadSession, PushContext], Awaitable[UploadSession]]

PUSH_STEPS: tuple[PushStep, ...] = (
    read_stencil_config,
    get_store_hash,
    get_themes,
    generate_bundle,
    upload_bundle,
    notify_theme_limit_reached,
    select_themes_to_delete,
    delete_themes,
    upload_bundle_again,
    poll_for_job_completion,
    prompt_apply_theme,
    get_variations,
    select_variation,
    activate_variation,
    notify_completion,
)


async def run_push(
    session: UploadSession,
    ctx: PushContext,
    steps: Sequence[PushStep] = PUSH_STEPS,
) -> UploadSession:
    """Run ``steps`` in order and return the final session.

    The first failing step aborts the run; its error propagates unchanged.
    """
    for step in steps:
        with stage(step.__name__, attributes={"workflow": "push"}):
            session = await step(session, ctx)
    return session
