"""Records exchanged with the theme API and threaded through the push workflow.

This module defines:
- ThemeRecord, Variation: Remote theme and variation summaries
- UploadResult, JobStatus: Upload and job-poll responses
- UploadSession: The frozen state record each push step augments
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stencil_cli.config import DEFAULT_API_HOST, StencilConfig


class ThemeRecord(BaseModel):
    """A theme installed on the store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="uuid")
    name: str
    is_private: bool = False
    is_active: bool = False
    updated_at: datetime


class Variation(BaseModel):
    """One variation of a remote theme."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="uuid")
    name: str


class UploadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    theme_limit_reached: bool = False


class JobStatus(BaseModel):
    """State of a remote theme-processing job.

    Attributes:
        pending: True while the job is queued or running.
        percent_complete: Progress reported by the job (0-100).
        result: Job output once complete (holds ``theme_id``).
        errors: Errors reported by a failed job.
    """

    model_config = ConfigDict(frozen=True)

    pending: bool
    percent_complete: int = Field(default=0, ge=0, le=100)
    result: dict[str, Any] = Field(default_factory=dict)
    errors: list[Any] = Field(default_factory=list)


class UploadSession(BaseModel):
    """State of one ``stencil push`` run.

    Every step receives a session and returns a new one built with
    ``model_copy(update=...)``; nothing is mutated in place.

    Caller intent:
        bundle_path: Reuse this archive instead of building one.
        save_bundle_name: Keep the built archive in the theme directory under this name.
        delete_oldest: Delete the oldest private inactive theme when the slot limit is reached.
        activate: Activate the uploaded theme without asking.
        variation_name: Activate this variation (exact, case-sensitive match).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # caller intent
    dot_stencil_path: Path = Path(".stencil")
    api_host: str = DEFAULT_API_HOST
    bundle_path: Path | None = None
    save_bundle_name: str | None = None
    delete_oldest: bool = False
    activate: bool = False
    variation_name: str | None = None

    # gathered along the way
    config: StencilConfig | None = None
    store_hash: str | None = None
    themes: tuple[ThemeRecord, ...] = ()
    job_id: str | None = None
    theme_limit_reached: bool = False
    theme_ids_to_delete: tuple[str, ...] = ()
    theme_id: str | None = None
    apply_theme: bool = False
    variations: tuple[Variation, ...] = ()
    variation_id: str | None = None

    @property
    def access_token(self) -> str:
        if self.config is None:
            msg = "Session has no stencil config yet"
            raise RuntimeError(msg)
        return self.config.access_token
