"""Async client for the store theme API.

Every call takes the credentials and store coordinates as keyword arguments
(``access_token``, ``api_host``, ``store_hash``) and raises the workflow error
that names the failed call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlsplit

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from stencil_cli.errors import (
    JobFailedError,
    NetworkError,
    StoreHashReadError,
    ThemeDeletionError,
    ThemeUploadError,
    VariationActivationError,
    VariationActivationTimeoutError,
)
from stencil_cli.models import JobStatus, ThemeRecord, UploadResult, Variation

logger = structlog.get_logger(__name__)

AUTH_HEADER = "X-Auth-Token"
THEME_LIMIT_STATUS = 435
GATEWAY_TIMEOUT_STATUS = 504
JOB_COMPLETED = "COMPLETED"
JOB_FAILED = "FAILED"
DEFAULT_TIMEOUT = 30.0

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class ThemeApiClient:
    """Theme API calls used by ``stencil push``.

    Args:
        client: Preconfigured httpx client (tests pass one with a mock transport).
        timeout: Request timeout in seconds when no client is given.

    Example:
        >>> async with ThemeApiClient() as api:
        ...     themes = await api.get_themes(
        ...         access_token="abc", api_host="https://api.bigcommerce.com", store_hash="s1"
        ...     )
    """

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> ThemeApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_store_hash(self, store_url: str) -> str:
        """Resolve the store hash from the public store URL.

        Raises:
            StoreHashReadError: If the discovery call fails or returns no hash.
        """
        host = urlsplit(store_url).netloc
        try:
            response = await self._client.get(f"https://{host}/admin/oauth/info")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreHashReadError(
                f"Could not resolve the store hash for {host}",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e

        store_hash = payload.get("store_hash") if isinstance(payload, dict) else None
        if not store_hash:
            raise StoreHashReadError("Received empty store_hash value in the server response")
        return str(store_hash)

    async def get_themes(self, *, access_token: str, api_host: str, store_hash: str) -> list[ThemeRecord]:
        response = await self._request(
            "GET",
            _themes_url(api_host, store_hash),
            access_token=access_token,
            error=NetworkError,
            message="Could not list the store's themes",
        )
        message = "Unexpected theme list from the store"
        themes = _items(_data(response), message=message)
        return [_parse(ThemeRecord, theme, message=message) for theme in themes]

    async def post_theme(
        self,
        *,
        access_token: str,
        api_host: str,
        store_hash: str,
        bundle_path: Path,
    ) -> UploadResult:
        """Upload a theme archive.

        A ``435`` response means the store has no free theme slot; it is
        reported through ``theme_limit_reached`` rather than raised.

        Raises:
            ThemeUploadError: If the upload is rejected.
        """
        try:
            content = Path(bundle_path).read_bytes()
        except OSError as e:
            raise ThemeUploadError(f"Cannot read bundle {Path(bundle_path).name}", internal_details=str(e)) from e

        response = await self._request(
            "POST",
            _themes_url(api_host, store_hash),
            access_token=access_token,
            error=ThemeUploadError,
            message="Theme upload failed",
            accept=(THEME_LIMIT_STATUS,),
            files={"file": (Path(bundle_path).name, content, "application/zip")},
        )
        if response.status_code == THEME_LIMIT_STATUS:
            logger.info("theme_limit_reached", store_hash=store_hash)
            return UploadResult(job_id="", theme_limit_reached=True)

        job_id = _data(response).get("job_id")
        if not job_id:
            raise ThemeUploadError("Theme upload returned no job id")
        return UploadResult(job_id=str(job_id))

    async def get_job(self, *, access_token: str, api_host: str, store_hash: str, job_id: str) -> JobStatus:
        """Fetch the status of a theme-processing job.

        Raises:
            JobFailedError: If the job finished unsuccessfully.
            NetworkError: If the status cannot be read or is malformed.
        """
        response = await self._request(
            "GET",
            f"{_themes_url(api_host, store_hash)}/jobs/{job_id}",
            access_token=access_token,
            error=NetworkError,
            message="Could not read the theme processing status",
        )
        job = _data(response)
        if not isinstance(job, dict):
            raise NetworkError("Unexpected theme processing status", internal_details=repr(job))
        status = job.get("status")
        if status == JOB_FAILED:
            raise JobFailedError(
                "Theme processing failed",
                internal_details=repr(job.get("errors")),
            )
        return _parse(
            JobStatus,
            {
                "pending": status != JOB_COMPLETED,
                "percent_complete": job.get("percent_complete") or 0,
                "result": job.get("result") or {},
                "errors": job.get("errors") or [],
            },
            message="Unexpected theme processing status",
        )

    async def get_variations_by_theme_id(
        self,
        *,
        access_token: str,
        api_host: str,
        store_hash: str,
        theme_id: str,
    ) -> list[Variation]:
        response = await self._request(
            "GET",
            f"{_themes_url(api_host, store_hash)}/{theme_id}",
            access_token=access_token,
            error=NetworkError,
            message="Could not list the theme's variations",
        )
        theme = _data(response)
        message = "Unexpected variation list for the theme"
        variations = theme.get("variations", []) if isinstance(theme, dict) else theme
        return [_parse(Variation, v, message=message) for v in _items(variations, message=message)]

    async def activate_theme_by_variation_id(
        self,
        *,
        access_token: str,
        api_host: str,
        store_hash: str,
        variation_id: str,
    ) -> None:
        """Activate a variation.

        Raises:
            VariationActivationTimeoutError: On a gateway timeout or client timeout.
            VariationActivationError: On any other failure.
        """
        try:
            response = await self._client.post(
                f"{_themes_url(api_host, store_hash)}/actions/activate",
                headers={AUTH_HEADER: access_token},
                json={"variation_id": variation_id, "which": "original"},
            )
        except httpx.TimeoutException as e:
            raise VariationActivationTimeoutError("Theme activation timed out", internal_details=str(e)) from e
        except httpx.HTTPError as e:
            raise VariationActivationError("Theme activation failed", internal_details=str(e)) from e

        if response.status_code == GATEWAY_TIMEOUT_STATUS:
            raise VariationActivationTimeoutError(
                "Theme activation timed out",
                status_code=response.status_code,
            )
        if response.is_error:
            raise VariationActivationError(
                f"Theme activation failed ({response.status_code})",
                status_code=response.status_code,
                internal_details=response.text,
            )

    async def delete_theme_by_id(self, *, access_token: str, api_host: str, store_hash: str, theme_id: str) -> None:
        await self._request(
            "DELETE",
            f"{_themes_url(api_host, store_hash)}/{theme_id}",
            access_token=access_token,
            error=ThemeDeletionError,
            message=f"Could not delete theme {theme_id}",
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        access_token: str,
        error: type[NetworkError],
        message: str,
        accept: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, headers={AUTH_HEADER: access_token}, **kwargs)
        except httpx.HTTPError as e:
            raise error(message, internal_details=f"{type(e).__name__}: {e}") from e

        if response.is_error and response.status_code not in accept:
            raise error(
                f"{message} ({response.status_code})",
                status_code=response.status_code,
                internal_details=response.text,
            )
        logger.debug("api_response", method=method, url=url, status=response.status_code)
        return response


def _themes_url(api_host: str, store_hash: str) -> str:
    return f"{api_host.rstrip('/')}/stores/{store_hash}/v3/themes"


def _data(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload.get("data", {}) if isinstance(payload, dict) else {}


def _items(payload: Any, *, message: str) -> list[Any]:
    if not isinstance(payload, list):
        raise NetworkError(message, internal_details=f"expected a list, got {type(payload).__name__}")
    return payload


def _parse(model: type[_ModelT], payload: Any, *, message: str) -> _ModelT:
    """Validate one API payload, reporting a malformed response as a `NetworkError`."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise NetworkError(message, internal_details=str(e)) from e
