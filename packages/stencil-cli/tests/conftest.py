"""Shared test fixtures for stencil-cli tests.

Provides a CliRunner, a deployment config on disk and in-memory stand-ins
for the push workflow's collaborators (theme API, prompts, progress, sleep).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from stencil_cli.config import StencilConfig
from stencil_cli.models import UploadSession
from stencil_cli.push import PushContext
from testing.fixtures.push import (
    ACCESS_TOKEN,
    STORE_HASH,
    STORE_URL,
    FakePrompter,
    FakeThemeApi,
    RecordingProgress,
    RecordingSleep,
)


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
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def api() -> FakeThemeApi:
    return FakeThemeApi()


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def push_ctx(
    api: FakeThemeApi,
    prompter: FakePrompter,
    progress: RecordingProgress,
    sleep: RecordingSleep,
    tmp_path: Path,
) -> PushContext:
    """A push context wired to the in-memory collaborators."""
    return PushContext(
        api_client=api,  # type: ignore[arg-type]
        prompter=prompter,
        progress=progress,
        theme_path=tmp_path,
        sleep=sleep,
        temp_dir=tmp_path / "tmp",
    )


@pytest.fixture
def stencil_config() -> StencilConfig:
    return StencilConfig(normal_store_url=STORE_URL, access_token=ACCESS_TOKEN)


@pytest.fixture
def dot_stencil(tmp_path: Path) -> Path:
    """A valid ``.stencil`` file in ``tmp_path``."""
    path = tmp_path / ".stencil"
    path.write_text(
        json.dumps({"normalStoreUrl": STORE_URL, "accessToken": ACCESS_TOKEN, "port": 3000}),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def session(stencil_config: StencilConfig, tmp_path: Path) -> UploadSession:
    """A session that has read its config and store hash and holds an archive."""
    bundle = tmp_path / "theme.zip"
    bundle.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return UploadSession(
        dot_stencil_path=tmp_path / ".stencil",
        config=stencil_config,
        store_hash=STORE_HASH,
        bundle_path=bundle,
    )
