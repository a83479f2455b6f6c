"""Build option and output contract models for stencil-bundle.

This module defines:
- BuildTarget: Archive vs EdgeBundle selection
- BuildOptions: Caller-supplied build configuration
- CompileOptions: Ahead-of-time compiler settings
- PartialSet: Resolved partial identifiers (external first)
- DependencyDescriptor / DeploymentDescriptor: Edge bundle descriptors
- OutputManifest: The write-once record of what a build emitted
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_API_URL = "https://stencil-on-workers.store"


class BuildTarget(str, Enum):
    """Deployable artifact kinds. Mutually exclusive."""

    ARCHIVE = "archive"
    EDGE_BUNDLE = "edge-bundle"


class BuildOptions(BaseModel):
    """Options controlling a single build.

    Attributes:
        target: Which artifact to produce.
        dest: Output location. For archives, the directory receiving the zip;
            for edge bundles, the bundle directory itself.
        name: Archive file name (without extension).
        api_url: Upstream storefront API base URL baked into the edge bundle.
        timeout: Seconds allowed for dependency installation.
        install_dependencies: Install runtime packages into the edge bundle.
        external_libraries_dir: Directory (relative to the theme) holding
            external template libraries.

    Example:
        >>> options = BuildOptions(target=BuildTarget.EDGE_BUNDLE, api_url="https://shop.example")
        >>> options.timeout
        60
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: BuildTarget = Field(
        default=BuildTarget.ARCHIVE,
        description="Artifact kind to build",
    )
    dest: Path | None = Field(
        default=None,
        description="Output directory",
    )
    name: str | None = Field(
        default=None,
        min_length=1,
        description="Archive name without extension",
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Upstream API base URL for the edge worker",
    )
    timeout: int = Field(
        default=60,
        ge=1,
        description="Timeout in seconds for dependency installation",
    )
    install_dependencies: bool = Field(
        default=True,
        description="Install runtime packages next to the edge worker",
    )
    external_libraries_dir: str = Field(
        default="node_modules",
        min_length=1,
        description="Install location of external template libraries",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate URL format (must be http:// or https://)."""
        if not v.startswith(("http://", "https://")):
            msg = f"API URL must start with http:// or https://, got: {v}"
            raise ValueError(msg)
        return v.rstrip("/")


class CompileOptions(BaseModel):
    """Ahead-of-time template compiler settings.

    Attributes:
        prevent_indentation: Strip whitespace around block tags so included
            partials are not re-indented.
        known_helpers: Helpers known at compile time. Initially empty.
        known_helpers_only: When False, calls to unknown helpers compile to
            late-bound lookups instead of failing.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    prevent_indentation: bool = True
    known_helpers: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    known_helpers_only: bool = False


class PartialSet(BaseModel):
    """Every partial identifier a build must compile.

    External identifiers always come first. No identifier appears twice.

    Attributes:
        external: Identifiers from external template libraries.
        internal: Identifiers from the theme's own template root.
        libraries: Distinct external library names referenced by the theme.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    external: tuple[str, ...] = ()
    internal: tuple[str, ...] = ()
    libraries: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.external) + len(self.internal)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.external or identifier in self.internal

    @property
    def identifiers(self) -> list[str]:
        """All identifiers, external first."""
        return [*self.external, *self.internal]


class DependencyDescriptor(BaseModel):
    """Runtime packages the edge worker needs at deploy time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    packages: dict[str, str] = Field(
        ...,
        description="Distribution name to version specifier",
    )

    def to_requirements(self) -> str:
        """Render as a requirements.txt document."""
        lines = [f"{name}{spec}" for name, spec in self.packages.items()]
        return "\n".join(lines) + "\n"


class DeploymentDescriptor(BaseModel):
    """How the edge runtime runs the emitted worker script."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "stencil-worker"
    main: str = "worker.py"
    compatibility_date: str = "2024-10-01"
    compatibility_flags: tuple[str, ...] = ("python_workers",)
    assets_directory: str = "./assets"
    vars: dict[str, str] = Field(default_factory=dict)
    logs_enabled: bool = True
    head_sampling_rate: float = Field(default=1, ge=0, le=1)
    invocation_logs: bool = True

    def to_toml(self) -> str:
        """Render as a wrangler.toml document."""

        def _str(value: str) -> str:
            return json.dumps(value)

        def _bool(value: bool) -> str:
            return "true" if value else "false"

        flags = ", ".join(_str(flag) for flag in self.compatibility_flags)
        rate = int(self.head_sampling_rate) if self.head_sampling_rate in (0, 1) else self.head_sampling_rate
        lines = [
            f"name = {_str(self.name)}",
            f"main = {_str(self.main)}",
            f"compatibility_date = {_str(self.compatibility_date)}",
            f"compatibility_flags = [{flags}]",
            "",
            "# Assets configuration for serving static files",
            "[assets]",
            f"directory = {_str(self.assets_directory)}",
            "",
            "# Environment variables",
            "[vars]",
            *(f"{key} = {_str(value)}" for key, value in self.vars.items()),
            "",
            "# Observability configuration",
            "[observability.logs]",
            f"enabled = {_bool(self.logs_enabled)}",
            f"head_sampling_rate = {rate}",
            f"invocation_logs = {_bool(self.invocation_logs)}",
        ]
        return "\n".join(lines) + "\n"


class OutputManifest(BaseModel):
    """Record of the artifact set emitted by one build.

    Attributes:
        target: Build target that produced the artifact.
        artifact_path: Zip file (archive) or bundle directory (edge bundle).
        entry_script: Worker script path (edge bundle only).
        asset_dir: Copied static asset tree (edge bundle only).
        templates: Partial identifiers included in the artifact.
        dependencies: Runtime package descriptor (edge bundle only).
        deployment: Edge deployment descriptor (edge bundle only).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: BuildTarget
    artifact_path: Path
    entry_script: Path | None = None
    asset_dir: Path | None = None
    templates: tuple[str, ...] = ()
    dependencies: DependencyDescriptor | None = None
    deployment: DeploymentDescriptor | None = None
