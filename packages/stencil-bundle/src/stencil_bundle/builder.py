"""Build orchestration for Stencil themes.

`BuildOrchestrator.build` runs the stages in a fixed order:

    validate -> assemble templates -> assemble translations
    -> fetch schema and config -> create output directory -> strategy

The strategy is picked by `BuildTarget`: `ArchiveStrategy` writes one zip
for server-side rendering, `EdgeBundleStrategy` writes a linked worker
script, its assets and descriptors. A failing stage re-raises its original
exception; later stages never run.
"""

from __future__ import annotations

import importlib.metadata
import os
import re
import subprocess
import sys
import zipfile
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from stencil_bundle.assembler import TemplateAssembler, assemble_translations
from stencil_bundle.compiler import TemplateCompiler
from stencil_bundle.errors import BuildError, DependencyInstallError
from stencil_bundle.fs import copy_tree, dump_json, write_atomic
from stencil_bundle.linker import ENTRY_TEMPLATE_PATH, StaticLinker, default_resolutions
from stencil_bundle.models import (
    BuildOptions,
    BuildTarget,
    CompileOptions,
    DependencyDescriptor,
    DeploymentDescriptor,
    OutputManifest,
    PartialSet,
)
from stencil_bundle.observability import stage
from stencil_bundle.resolver import PartialResolver
from stencil_bundle.theme import ThemeConfig
from stencil_bundle.validator import ThemeValidator

logger = structlog.get_logger(__name__)

EDGE_BUNDLE_DIRNAME = "worker-bundle"
ASSET_CATEGORIES: tuple[str, ...] = ("dist", "fonts", "img", "icons")
ARCHIVE_SOURCE_DIRS: tuple[str, ...] = ("templates", "lang", "assets", "meta")
PYTHON_MODULES_DIRNAME = "python_modules"

# Runtime packages the edge worker imports, with the specifier used when the
# package is not installed locally.
RUNTIME_PACKAGE_FALLBACKS: dict[str, str] = {
    "jinja2": ">=3.1",
    "markupsafe": ">=2.1",
}

_MAX_ASSEMBLY_WORKERS = 8


class AssembledTheme(BaseModel):
    """Everything the assembly stages gathered, handed to the strategy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    theme_path: Path
    partials: PartialSet
    templates: dict[str, dict[str, str]] = Field(
        ...,
        description="Per partial, the loader result (the partial plus its nested references)",
    )
    translations: dict[str, Any]
    settings_schema: list[Any]
    config: dict[str, Any]
    raw_config: dict[str, Any]

    def flat_templates(self) -> dict[str, str]:
        """Every loaded source in one mapping, in partial order."""
        merged: dict[str, str] = {}
        for sources in self.templates.values():
            for identifier, source in sources.items():
                merged.setdefault(identifier, source)
        return merged


def archive_name(name: str, version: str) -> str:
    """Default archive file name.

    Example:
        >>> archive_name("Cornerstone Light", "6.1.0")
        'cornerstone-light-6.1.0'
    """
    return re.sub(r"[^a-z0-9.]+", "-", f"{name}-{version}".lower()).strip("-")


def runtime_dependencies() -> DependencyDescriptor:
    """Pin the edge runtime packages to the locally installed versions."""
    packages: dict[str, str] = {}
    for package, fallback in RUNTIME_PACKAGE_FALLBACKS.items():
        try:
            packages[package] = f"=={importlib.metadata.version(package)}"
        except importlib.metadata.PackageNotFoundError:
            packages[package] = fallback
    return DependencyDescriptor(packages=packages)


class DependencyInstaller:
    """Install the edge runtime packages next to the worker with pip.

    Args:
        timeout: Seconds before the install is abandoned.
    """

    def __init__(self, timeout: int = 60) -> None:
        self.timeout = timeout

    def install(self, requirements: Path, target: Path) -> None:
        """Run ``pip install --target``.

        Raises:
            DependencyInstallError: If pip fails, cannot start or times out.
        """
        command = [
            sys.executable, "-m", "pip", "install",
            "--quiet", "--disable-pip-version-check",
            "--target", str(target),
            "-r", str(requirements),
        ]
        logger.info("dependency_install_started", target=str(target), timeout=self.timeout)
        try:
            subprocess.run(command, check=True, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise DependencyInstallError(
                f"Dependency installation timed out after {self.timeout}s",
                internal_details=str(e),
            ) from e
        except subprocess.CalledProcessError as e:
            raise DependencyInstallError(
                "Dependency installation failed",
                internal_details=e.stderr,
            ) from e
        except OSError as e:
            raise DependencyInstallError(
                "Dependency installer could not be started",
                internal_details=str(e),
            ) from e


class BuildStrategy(ABC):
    """Target-specific output stage."""

    target: BuildTarget

    def __init__(self, options: BuildOptions) -> None:
        self.options = options

    @abstractmethod
    def output_dir(self, theme_path: Path) -> Path:
        """Directory the strategy writes into."""

    @abstractmethod
    def emit(self, theme: AssembledTheme, output_dir: Path) -> OutputManifest:
        """Write the artifact and describe it."""


class ArchiveStrategy(BuildStrategy):
    """Zip the theme sources and parsed data for server-side rendering."""

    target = BuildTarget.ARCHIVE

    def output_dir(self, theme_path: Path) -> Path:
        return Path(self.options.dest) if self.options.dest else theme_path

    def emit(self, theme: AssembledTheme, output_dir: Path) -> OutputManifest:
        name = self.options.name or archive_name(
            str(theme.raw_config.get("name", theme.theme_path.name)),
            str(theme.raw_config.get("version", "0.0.0")),
        )
        archive_path = output_dir / f"{name}.zip"
        tmp_path = archive_path.with_name(f".{archive_path.name}.tmp")

        manifest = {
            "name": theme.raw_config.get("name"),
            "version": theme.raw_config.get("version"),
            "target": self.target.value,
            "templates": theme.partials.identifiers,
        }

        try:
            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for directory in ARCHIVE_SOURCE_DIRS:
                    self._add_tree(archive, theme.theme_path, directory)
                archive.writestr("config.json", dump_json(theme.raw_config))
                archive.writestr("schema.json", dump_json(theme.settings_schema))
                archive.writestr("parsed/templates.json", dump_json(theme.flat_templates()))
                archive.writestr("parsed/lang.json", dump_json(theme.translations))
                archive.writestr("manifest.json", dump_json(manifest))
            os.replace(tmp_path, archive_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise BuildError(f"Could not write archive {archive_path.name}", internal_details=str(e)) from e

        logger.info("archive_written", path=str(archive_path), templates=len(theme.partials))
        return OutputManifest(
            target=self.target,
            artifact_path=archive_path,
            templates=tuple(theme.partials.identifiers),
        )

    @staticmethod
    def _add_tree(archive: zipfile.ZipFile, theme_path: Path, directory: str) -> None:
        root = theme_path / directory
        if not root.is_dir():
            return
        for path in sorted(root.rglob("*")):
            if path.is_file():
                archive.write(path, path.relative_to(theme_path).as_posix())


class EdgeBundleStrategy(BuildStrategy):
    """Compile, link and package the theme as an edge worker."""

    target = BuildTarget.EDGE_BUNDLE

    def __init__(
        self,
        options: BuildOptions,
        *,
        installer: DependencyInstaller | None = None,
        linker: StaticLinker | None = None,
        entry_template: Path = ENTRY_TEMPLATE_PATH,
    ) -> None:
        super().__init__(options)
        self.installer = installer or DependencyInstaller(timeout=options.timeout)
        self.linker = linker or StaticLinker(default_resolutions())
        self.entry_template = entry_template

    def output_dir(self, theme_path: Path) -> Path:
        return Path(self.options.dest) if self.options.dest else theme_path / EDGE_BUNDLE_DIRNAME

    def emit(self, theme: AssembledTheme, output_dir: Path) -> OutputManifest:
        dependencies = runtime_dependencies()
        with stage("dependencies", attributes={"install": self.options.install_dependencies}):
            requirements = output_dir / "requirements.txt"
            write_atomic(requirements, dependencies.to_requirements())
            if self.options.install_dependencies:
                self.installer.install(requirements, output_dir / PYTHON_MODULES_DIRNAME)

        with stage("compile", attributes={"partials": len(theme.partials)}):
            artifact = TemplateCompiler(CompileOptions()).compile(theme.partials, theme.templates)

        with stage("link"):
            entry_script = self.linker.link_to(
                output_dir / "worker.py",
                self.entry_template.read_text(encoding="utf-8"),
                {
                    "__TRANSLATIONS_DATA__": theme.translations,
                    "__SCHEMA_DATA__": theme.settings_schema,
                    "__CONFIG_DATA__": theme.config,
                    "__API_URL__": self.options.api_url,
                },
                artifact,
            )

        with stage("copy_assets"):
            asset_dir = output_dir / "assets"
            asset_dir.mkdir(parents=True, exist_ok=True)
            copied = [
                category
                for category in ASSET_CATEGORIES
                if copy_tree(theme.theme_path / "assets" / category, asset_dir / category)
            ]
            logger.debug("assets_copied", categories=copied)

        with stage("deployment_descriptor"):
            deployment = DeploymentDescriptor(vars={"API_BASE_URL": self.options.api_url})
            write_atomic(output_dir / "wrangler.toml", deployment.to_toml())

        return OutputManifest(
            target=self.target,
            artifact_path=output_dir,
            entry_script=entry_script,
            asset_dir=asset_dir,
            templates=tuple(artifact.identifiers),
            dependencies=dependencies,
            deployment=deployment,
        )


STRATEGIES: dict[BuildTarget, type[BuildStrategy]] = {
    BuildTarget.ARCHIVE: ArchiveStrategy,
    BuildTarget.EDGE_BUNDLE: EdgeBundleStrategy,
}


class BuildOrchestrator:
    """Run a full theme build.

    Args:
        theme_path: Theme root directory.
        theme_config: Configuration source (defaults to `ThemeConfig(theme_path)`).
        options: Build options.
        strategy: Output strategy (defaults to the one registered for ``options.target``).

    Example:
        >>> orchestrator = BuildOrchestrator(Path("cornerstone"), options=BuildOptions())
        >>> orchestrator.build()
        PosixPath('cornerstone/cornerstone-6.1.0.zip')
    """

    def __init__(
        self,
        theme_path: Path | str,
        theme_config: ThemeConfig | None = None,
        options: BuildOptions | None = None,
        *,
        strategy: BuildStrategy | None = None,
    ) -> None:
        self.theme_path = Path(theme_path)
        self.theme_config = theme_config or ThemeConfig(self.theme_path)
        self.options = options or BuildOptions()
        self.strategy = strategy or STRATEGIES[self.options.target](self.options)
        self.manifest: OutputManifest | None = None

    def build(self) -> Path:
        """Build the artifact and return its path.

        Raises:
            ThemeValidationError: If the theme fails validation.
            StencilError: Whatever the failing stage raised.
        """
        attributes = {"target": self.options.target.value, "theme": str(self.theme_path)}
        templates_root = self.theme_path / "templates"

        with stage("validate", attributes=attributes):
            ThemeValidator(self.theme_path, self.theme_config).validate()

        with stage("assemble_templates") as span:
            resolver = PartialResolver(self.theme_path, self.options.external_libraries_dir)
            partials = resolver.resolve(templates_root)
            templates = self._load_templates(templates_root, partials)
            span.set_attribute("partials", len(partials))

        with stage("assemble_translations"):
            translations = assemble_translations(self.theme_path / "lang")

        with stage("fetch_config"):
            settings_schema = self.theme_config.get_schema()
            config = self.theme_config.get_config()
            raw_config = self.theme_config.get_raw_config()

        with stage("prepare_output"):
            output_dir = self.strategy.output_dir(self.theme_path)
            output_dir.mkdir(parents=True, exist_ok=True)

        theme = AssembledTheme(
            theme_path=self.theme_path,
            partials=partials,
            templates=templates,
            translations=translations,
            settings_schema=settings_schema,
            config=config,
            raw_config=raw_config,
        )
        with stage(f"emit_{self.strategy.target.name.lower()}", attributes=attributes):
            self.manifest = self.strategy.emit(theme, output_dir)

        return self.manifest.artifact_path

    def _load_templates(self, templates_root: Path, partials: PartialSet) -> dict[str, dict[str, str]]:
        assembler = TemplateAssembler(self.theme_path, self.options.external_libraries_dir)
        identifiers = partials.identifiers
        with ThreadPoolExecutor(max_workers=_MAX_ASSEMBLY_WORKERS) as pool:
            loaded = list(pool.map(lambda partial: assembler.load(templates_root, partial), identifiers))
        return dict(zip(identifiers, loaded))
