"""Ahead-of-time template compilation.

Every partial is compiled by Jinja2 to Python source (``raw=True``) with
deferred environment binding (``defer_init=True``). The compiled modules are
stitched into a single importable module: each becomes a class namespace and a
``TEMPLATES`` table maps the partial identifier to its namespace.

The generated module binds its environment late through ``bind_environment``,
so no template text is parsed at run time.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import structlog
from jinja2 import Environment, TemplateError, meta, nodes
from pydantic import BaseModel, ConfigDict, Field

from stencil_bundle.errors import TemplateCompileError
from stencil_bundle.models import CompileOptions, PartialSet

logger = structlog.get_logger(__name__)

FUNCTION_PREFIX = "template_"

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
_INDENT = "    "
_MAX_COMPILE_WORKERS = 8

TemplateSource = str | dict[str, str]


def function_name_for(identifier: str) -> str:
    """Sanitize a partial identifier into a Python name.

    Example:
        >>> function_name_for("components/products/card-v2")
        'template_components_products_card_v2'
    """
    return FUNCTION_PREFIX + _UNSAFE.sub("_", identifier)


class CompiledTemplate(BaseModel):
    """One partial compiled to Jinja2 module source."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., description="Partial identifier")
    function_name: str = Field(..., description="Unique sanitized namespace name")
    code: str = Field(..., description="Raw Jinja2 module source")


class TemplateArtifact(BaseModel):
    """Compiled partials keyed by identifier, in partial order."""

    model_config = ConfigDict(frozen=True)

    templates: dict[str, CompiledTemplate] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.templates)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.templates

    @property
    def identifiers(self) -> list[str]:
        return list(self.templates)

    def to_module_source(self) -> str:
        """Render the artifact as one Python module.

        The module exposes ``TEMPLATES`` (identifier to namespace class) and
        ``bind_environment(env)``.
        """
        imports: dict[str, None] = {}
        classes: list[str] = []

        for compiled in self.templates.values():
            body: list[str] = []
            for line in compiled.code.splitlines():
                if line.startswith(("from ", "import ")):
                    if not line.startswith("from __future__"):
                        imports[line] = None
                    continue
                body.append(f"{_INDENT}{line}" if line.strip() else "")
            classes.append(f"class {compiled.function_name}:\n" + "\n".join(body).rstrip())

        table = "\n".join(
            f"    {identifier!r}: {compiled.function_name},"
            for identifier, compiled in self.templates.items()
        )
        parts = [
            '"""Precompiled theme templates. Generated by stencil-bundle; do not edit."""',
            "\n".join(imports),
            "environment = None",
            "def bind_environment(env):\n"
            "    global environment\n"
            "    environment = env",
            *classes,
            f"TEMPLATES = {{\n{table}\n}}" if table else "TEMPLATES = {}",
        ]
        return "\n\n\n".join(part for part in parts if part) + "\n"


class TemplateCompiler:
    """Compile partials ahead of time.

    Args:
        options: Compile settings.

    Example:
        >>> compiler = TemplateCompiler(CompileOptions())
        >>> artifact = compiler.compile(partials, {"pages/home": "<h1>{{ title }}</h1>"})
        >>> artifact.templates["pages/home"].function_name
        'template_pages_home'
    """

    def __init__(self, options: CompileOptions | None = None) -> None:
        self.options = options or CompileOptions()
        self.environment = Environment(
            autoescape=True,
            trim_blocks=self.options.prevent_indentation,
            lstrip_blocks=self.options.prevent_indentation,
        )
        self.environment.globals.update(self.options.known_helpers)
        self.environment.filters.update(self.options.known_helpers)

    def compile(
        self,
        partials: PartialSet | list[str],
        templates: Mapping[str, TemplateSource],
    ) -> TemplateArtifact:
        """Compile every partial in ``partials``.

        Args:
            partials: Identifiers to compile, in order.
            templates: Source per identifier, either the flat source or a
                mapping whose value under the identifier's own key is the source.

        Returns:
            The artifact holding one entry per compiled partial.

        Raises:
            TemplateCompileError: On the first partial that fails to compile.
        """
        identifiers = partials.identifiers if isinstance(partials, PartialSet) else list(partials)

        jobs: list[tuple[str, str]] = []
        for identifier in identifiers:
            source = _flat_source(identifier, templates.get(identifier))
            if source is None:
                logger.warning("template_source_skipped", partial=identifier)
                continue
            jobs.append((identifier, source))

        names = _unique_names(identifier for identifier, _ in jobs)

        with ThreadPoolExecutor(max_workers=_MAX_COMPILE_WORKERS) as pool:
            codes = list(pool.map(lambda job: self.compile_one(*job), jobs))

        compiled = {
            identifier: CompiledTemplate(identifier=identifier, function_name=names[identifier], code=code)
            for (identifier, _), code in zip(jobs, codes)
        }
        logger.info("templates_compiled", count=len(compiled))
        return TemplateArtifact(templates=compiled)

    def compile_one(self, identifier: str, source: str) -> str:
        """Compile one partial to raw module source.

        Raises:
            TemplateCompileError: If the source does not compile.
        """
        try:
            tree = self.environment.parse(source, name=identifier)
            if self.options.known_helpers_only:
                self._check_known_helpers(identifier, tree)
            code = self.environment.compile(tree, name=identifier, raw=True, defer_init=True)
        except TemplateError as e:
            logger.error("template_compile_failed", partial=identifier, error=str(e))
            raise TemplateCompileError(identifier, str(e)) from e
        return str(code)

    def _check_known_helpers(self, identifier: str, tree: nodes.Template) -> None:
        undeclared = meta.find_undeclared_variables(tree)
        called = {
            call.node.name
            for call in tree.find_all(nodes.Call)
            if isinstance(call.node, nodes.Name)
        }
        unknown = sorted(
            name
            for name in called & undeclared
            if name not in self.options.known_helpers and name not in self.environment.globals
        )
        if unknown:
            raise TemplateCompileError(identifier, f"unknown helpers: {', '.join(unknown)}")


def _flat_source(identifier: str, value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get(identifier)
    return value if isinstance(value, str) else None


def _unique_names(identifiers: Any) -> dict[str, str]:
    names: dict[str, str] = {}
    taken: set[str] = set()
    for identifier in identifiers:
        base = candidate = function_name_for(identifier)
        suffix = 2
        while candidate in taken:
            candidate = f"{base}_{suffix}"
            suffix += 1
        taken.add(candidate)
        names[identifier] = candidate
    return names
