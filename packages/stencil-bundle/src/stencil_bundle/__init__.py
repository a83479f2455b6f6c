"""stencil-bundle: Stencil theme packaging for classic and edge rendering.

This package provides:
- PartialResolver: Find every partial a theme needs, external libraries included
- TemplateCompiler: Ahead-of-time Jinja2 compilation into one module
- StaticLinker: Link a self-contained edge worker script
- BuildOrchestrator: Validate, assemble and emit an archive or edge bundle
"""

from __future__ import annotations

__version__ = "0.1.0"

# Build orchestration
from stencil_bundle.builder import (
    ArchiveStrategy,
    BuildOrchestrator,
    DependencyInstaller,
    EdgeBundleStrategy,
)

# Compilation and linking
from stencil_bundle.compiler import CompiledTemplate, TemplateArtifact, TemplateCompiler

# Error types
from stencil_bundle.errors import (
    BuildError,
    ConfigError,
    DependencyInstallError,
    LinkError,
    ResolutionError,
    StencilError,
    TemplateCompileError,
    ThemeValidationError,
)
from stencil_bundle.linker import ResolvedModule, StaticLinker, default_resolutions

# Models
from stencil_bundle.models import (
    BuildOptions,
    BuildTarget,
    CompileOptions,
    DependencyDescriptor,
    DeploymentDescriptor,
    OutputManifest,
    PartialSet,
)
from stencil_bundle.resolver import PartialResolver

# Theme sources
from stencil_bundle.theme import ThemeConfig, ThemeManifest
from stencil_bundle.validator import ThemeValidator

__all__ = [
    "__version__",
    # Build
    "BuildOrchestrator",
    "ArchiveStrategy",
    "EdgeBundleStrategy",
    "DependencyInstaller",
    # Compile / link
    "TemplateCompiler",
    "TemplateArtifact",
    "CompiledTemplate",
    "StaticLinker",
    "ResolvedModule",
    "default_resolutions",
    "PartialResolver",
    # Errors
    "StencilError",
    "ConfigError",
    "ThemeValidationError",
    "ResolutionError",
    "TemplateCompileError",
    "LinkError",
    "BuildError",
    "DependencyInstallError",
    # Models
    "BuildOptions",
    "BuildTarget",
    "CompileOptions",
    "PartialSet",
    "DependencyDescriptor",
    "DeploymentDescriptor",
    "OutputManifest",
    # Theme
    "ThemeConfig",
    "ThemeManifest",
    "ThemeValidator",
]
