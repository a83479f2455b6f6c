"""Contract tests between stencil-bundle and stencil-cli.

These tests validate that the archive produced by the build orchestrator is
what the push workflow uploads, and that both build targets agree on the
set of templates a theme ships.
"""

from __future__ import annotations

import json
import zipfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from testing.fixtures.themes import make_theme


def _upload_handler(uploads: list[bytes]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        uploads.append(request.read())
        return httpx.Response(201, json={"data": {"job_id": "job-1"}})

    return handler


@pytest.mark.contract
class TestBundleToPushContract:
    """Contract tests between the archive build and the theme upload."""

    async def test_built_archive_is_uploaded_unchanged(self, tmp_path: Path) -> None:
        from stencil_cli.api_client import ThemeApiClient
        from stencil_cli.config import StencilConfig
        from stencil_cli.models import UploadSession
        from stencil_cli.push import PushContext, generate_bundle, upload_bundle

        theme = make_theme(tmp_path)
        uploads: list[bytes] = []
        client = httpx.AsyncClient(transport=httpx.MockTransport(_upload_handler(uploads)))

        async with ThemeApiClient(client) as api:
            ctx = PushContext(api_client=api, prompter=None, progress=None, theme_path=theme)  # type: ignore[arg-type]
            session = UploadSession(
                config=StencilConfig(normal_store_url="https://shop.example", access_token="t"),
                store_hash="s1",
                save_bundle_name="release",
            )
            session = await generate_bundle(session, ctx)
            session = await upload_bundle(session, ctx)

        assert session.bundle_path == theme / "release.zip"
        assert session.job_id == "job-1"
        assert (theme / "release.zip").read_bytes() in uploads[0]

    def test_archive_config_matches_theme_config(self, tmp_path: Path) -> None:
        from stencil_bundle import BuildOptions, BuildOrchestrator

        theme = make_theme(tmp_path)

        archive = BuildOrchestrator(theme, options=BuildOptions(dest=tmp_path / "out")).build()

        with zipfile.ZipFile(archive) as zf:
            config = json.loads(zf.read("config.json"))
        assert config == json.loads((theme / "config.json").read_text(encoding="utf-8"))


@pytest.mark.contract
class TestArchiveToEdgeBundleContract:
    """Both build targets ship the same partials."""

    def test_targets_agree_on_templates(self, tmp_path: Path) -> None:
        from stencil_bundle import BuildOptions, BuildOrchestrator, BuildTarget

        theme = make_theme(tmp_path)

        archive = BuildOrchestrator(theme, options=BuildOptions(dest=tmp_path / "archive")).build()
        edge = BuildOrchestrator(
            theme,
            options=BuildOptions(
                target=BuildTarget.EDGE_BUNDLE,
                dest=tmp_path / "edge",
                install_dependencies=False,
            ),
        )
        edge.build()

        with zipfile.ZipFile(archive) as zf:
            archived = json.loads(zf.read("manifest.json"))["templates"]
        assert edge.manifest is not None
        assert list(edge.manifest.templates) == archived
        assert archived[0].startswith("external/")


MALFORMED_RESPONSES = [
    pytest.param("get_themes", {}, {"data": [{"uuid": "t1", "name": "A"}]}, id="theme-without-updated-at"),
    pytest.param("get_job", {"job_id": "job-1"}, {"data": {"percent_complete": 150}}, id="progress-over-100"),
    pytest.param(
        "get_variations_by_theme_id",
        {"theme_id": "t1"},
        {"data": {"variations": [{"name": "Light"}]}},
        id="variation-without-uuid",
    ),
]


@pytest.mark.contract
class TestApiPayloadToCliErrorContract:
    """Malformed API payloads surface as the errors `stencil push` reports."""

    @pytest.mark.parametrize(("call", "arguments", "payload"), MALFORMED_RESPONSES)
    async def test_malformed_payload_becomes_cli_failure(
        self, call: str, arguments: dict[str, str], payload: dict[str, object]
    ) -> None:
        from stencil_bundle.errors import StencilError

        from stencil_cli.api_client import ThemeApiClient
        from stencil_cli.errors import EXIT_USER_ERROR, CLIError, NetworkError, fail

        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)))
        credentials = {"access_token": "t", "api_host": "https://api.example", "store_hash": "s1"}

        async with ThemeApiClient(client) as api:
            with pytest.raises(StencilError) as exc_info:
                await getattr(api, call)(**credentials, **arguments)

        assert isinstance(exc_info.value, NetworkError)
        with pytest.raises(CLIError) as cli_error:
            fail(exc_info.value)
        assert cli_error.value.exit_code == EXIT_USER_ERROR
        assert "Unexpected" in cli_error.value.format_message()
