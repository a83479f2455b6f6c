"""Static link stage for edge bundles.

Produces one self-contained worker script from an entry template:

1. Data tokens in the entry are replaced by Python literals in one pass.
2. Every ``from <module> import ...`` in the entry whose module has an entry
   in the resolution table is inlined. A resolution is a small function of the
   template artifact returning the module source, either read from a
   redirected file or generated.
3. Inlined modules are scope-hoisted: their imports move to the top of the
   script, deduplicated, and their bodies share the script's namespace.

Every import left in the script must name a runtime package, an edge-provided
module or a standard library module that exists on the edge. Anything else
fails the link.

Only the module standing in for ``jinja2`` may reach the real package's
``Environment``, ``Template`` or ``from_string``.

Example:
    >>> linker = StaticLinker(default_resolutions())
    >>> script = linker.link(entry_template, substitutions, artifact)
"""

from __future__ import annotations

import ast
import pprint
import re
import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from stencil_bundle.compiler import TemplateArtifact
from stencil_bundle.errors import LinkError
from stencil_bundle.fs import write_atomic
from stencil_bundle.helpers.policy import HELPER_POLICY, build_helper_module

logger = structlog.get_logger(__name__)

PACKAGE_DIR = Path(__file__).parent
EDGE_RUNTIME_PATH = PACKAGE_DIR / "edge_runtime.py"
ENTRY_TEMPLATE_PATH = PACKAGE_DIR / "templates" / "worker_entry.py.tmpl"

SUBSTITUTION_TOKENS: tuple[str, ...] = (
    "__TRANSLATIONS_DATA__",
    "__SCHEMA_DATA__",
    "__CONFIG_DATA__",
    "__API_URL__",
)

RUNTIME_PACKAGES = frozenset({"jinja2", "markupsafe"})
EDGE_MODULES = frozenset({"workers", "js", "pyodide"})
HOST_ONLY_MODULES = frozenset(
    {
        "code",
        "codeop",
        "ctypes",
        "importlib",
        "marshal",
        "multiprocessing",
        "os",
        "pickle",
        "shutil",
        "socket",
        "subprocess",
        "tempfile",
    }
)
DYNAMIC_EVALUATION = frozenset({"eval", "exec", "compile", "__import__"})
RUNTIME_MODULE = "jinja2"
SOURCE_COMPILERS = frozenset({"Environment", "Template", "from_string"})

_TOKEN_PATTERN = re.compile("|".join(re.escape(token) for token in SUBSTITUTION_TOKENS))


class ResolvedModule(BaseModel):
    """Source of one module the linker inlines."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Python source of the module")
    origin: str = Field(..., description="Where the source came from (file name or 'generated')")


Resolution = Callable[[TemplateArtifact], ResolvedModule]


def redirect(path: Path) -> Resolution:
    """Resolve a module to the contents of ``path``."""

    def resolve(artifact: TemplateArtifact) -> ResolvedModule:
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LinkError(f"Redirect target cannot be read: {path.name}", internal_details=str(e)) from e
        return ResolvedModule(source=source, origin=path.name)

    return resolve


def generated(generate: Callable[[TemplateArtifact], str]) -> Resolution:
    """Resolve a module to source produced by ``generate``."""

    def resolve(artifact: TemplateArtifact) -> ResolvedModule:
        return ResolvedModule(source=generate(artifact), origin="generated")

    return resolve


def default_resolutions(
    policy: Mapping[str, tuple[str, ...]] = HELPER_POLICY,
) -> dict[str, Resolution]:
    """The resolution table used for edge bundles.

    - ``jinja2``: the runtime-only environment (`stencil_bundle.edge_runtime`)
    - ``stencil_helpers``: the allow-listed helper module built from ``policy``
    - ``stencil_templates``: the compiled template artifact
    """
    return {
        "jinja2": redirect(EDGE_RUNTIME_PATH),
        "stencil_helpers": generated(lambda artifact: build_helper_module(policy)),
        "stencil_templates": generated(lambda artifact: artifact.to_module_source()),
    }


def substitute(template: str, substitutions: Mapping[str, Any]) -> str:
    """Replace every data token with the Python literal of its value.

    Raises:
        LinkError: If a token is missing from ``template`` or ``substitutions``,
            or appears more than once.
    """
    for token in SUBSTITUTION_TOKENS:
        count = template.count(token)
        if count != 1:
            raise LinkError(f"Entry template must contain {token} exactly once (found {count})")
        if token not in substitutions:
            raise LinkError(f"No value supplied for {token}")

    literals = {token: pprint.pformat(substitutions[token], sort_dicts=False) for token in SUBSTITUTION_TOKENS}
    return _TOKEN_PATTERN.sub(lambda m: literals[m.group(0)], template)


class _Unit:
    """One source file taking part in the link (the entry or an inlined module)."""

    def __init__(self, name: str, source: str, origin: str) -> None:
        self.name = name
        self.origin = origin
        self.lines = source.splitlines()
        try:
            self.tree = ast.parse(source, filename=name)
        except SyntaxError as e:
            raise LinkError(f"Module does not parse: {e.msg} (line {e.lineno})", module=name) from e

        self.docstring: str | None = None
        self.imports: list[ast.Import | ast.ImportFrom] = []
        self.statements: list[ast.stmt] = []
        for index, node in enumerate(self.tree.body):
            if isinstance(node, (ast.Import, ast.ImportFrom)):
                self.imports.append(node)
            elif index == 0 and ast.get_docstring(self.tree) is not None:
                self.docstring = self._segment(node)
            else:
                self.statements.append(node)

        self.defined = _defined_names(self.statements)

    def _segment(self, node: ast.stmt) -> str:
        start = min([node.lineno, *(d.lineno for d in getattr(node, "decorator_list", []))])
        return "\n".join(self.lines[start - 1 : node.end_lineno])

    def body(self) -> str:
        return "\n\n".join(self._segment(node) for node in self.statements)


class _Imports:
    """Hoisted imports of the linked script, deduplicated by binding."""

    def __init__(self) -> None:
        self.future: dict[str, None] = {}
        self.plain: dict[str, None] = {}
        self.named: dict[str, tuple[str, str | None]] = {}

    @property
    def bound(self) -> set[str]:
        return {module.split(".")[0] for module in self.plain} | set(self.named)

    def add_plain(self, module: str, unit: str) -> None:
        if module.split(".")[0] in self.named:
            raise LinkError(f"Import name collision on '{module}'", module=unit)
        self.plain[module] = None

    def add_named(self, bound: str, origin: tuple[str, str | None], unit: str) -> None:
        existing = self.named.get(bound)
        if (existing is not None and existing != origin) or bound in {m.split(".")[0] for m in self.plain}:
            raise LinkError(f"Import name collision on '{bound}'", module=unit)
        self.named[bound] = origin

    def render(self) -> str:
        lines: list[str] = []
        if self.future:
            lines.append(f"from __future__ import {', '.join(self.future)}\n")
        lines.extend(f"import {module}" for module in sorted(self.plain))
        grouped: dict[str, list[str]] = {}
        for bound, (module, name) in self.named.items():
            if name is None:
                lines.append(f"import {module} as {bound}")
            else:
                grouped.setdefault(module, []).append(name if name == bound else f"{name} as {bound}")
        lines.extend(f"from {module} import {', '.join(names)}" for module, names in grouped.items())
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.plain) + len(self.named)


class StaticLinker:
    """Link an entry template and its inlined modules into one script.

    Args:
        resolutions: Logical module name to resolution function. Applied to
            the entry's imports.
        external_modules: Third-party or edge-provided top-level modules the
            script may import as-is. The standard library (minus host-only
            modules) is always allowed.
    """

    def __init__(
        self,
        resolutions: Mapping[str, Resolution] | None = None,
        external_modules: frozenset[str] = RUNTIME_PACKAGES | EDGE_MODULES,
    ) -> None:
        self.resolutions = dict(default_resolutions() if resolutions is None else resolutions)
        self.external_modules = external_modules

    def link(
        self,
        entry_template: str,
        substitutions: Mapping[str, Any],
        artifact: TemplateArtifact,
    ) -> str:
        """Return the linked script.

        Raises:
            LinkError: On any unresolved or forbidden import, forbidden call,
                name collision or substitution error.
        """
        entry = _Unit("<entry>", substitute(entry_template, substitutions), "entry")

        inlined: dict[str, _Unit] = {}
        aliases: list[str] = []
        imports = _Imports()

        for node in entry.imports:
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.name in self.resolutions:
                        raise LinkError(
                            "Inlined modules must be imported with 'from ... import'",
                            module=alias.name,
                        )
            elif node.module in self.resolutions and node.level == 0:
                unit = inlined.get(node.module)
                if unit is None:
                    unit = self._inline(node.module, artifact)
                    inlined[node.module] = unit
                for alias in node.names:
                    if alias.name not in unit.defined:
                        raise LinkError(f"Module does not define '{alias.name}'", module=node.module)
                    if alias.asname and alias.asname != alias.name:
                        aliases.append(f"{alias.asname} = {alias.name}")
                continue

            self._hoist(node, entry.name, imports)

        for unit in inlined.values():
            for node in unit.imports:
                self._hoist(node, unit.name, imports)

        for unit in (entry, *inlined.values()):
            self._check_nested_imports(unit)
            self._check_calls(unit)

        runtime = inlined.get(RUNTIME_MODULE)
        bindings = _package_bindings(imports, RUNTIME_MODULE)
        for unit in (entry, *inlined.values()):
            if unit is not runtime:
                self._check_source_compilers(unit, bindings)

        self._check_collisions([*inlined.values(), entry], imports.bound, aliases)

        sections = [
            entry.docstring or "",
            imports.render(),
            *(f"# ---- {unit.name} ({unit.origin}) ----\n\n{unit.body()}" for unit in inlined.values()),
            "\n".join(aliases),
            entry.body(),
        ]
        script = "\n\n\n".join(section for section in sections if section) + "\n"
        try:
            ast.parse(script)
        except SyntaxError as e:
            raise LinkError(f"Linked script does not parse: {e.msg} (line {e.lineno})") from e

        logger.info("worker_linked", modules=list(inlined), imports=len(imports))
        return script

    def link_to(
        self,
        output_path: Path,
        entry_template: str,
        substitutions: Mapping[str, Any],
        artifact: TemplateArtifact,
    ) -> Path:
        """Link and write the script atomically; nothing is written on failure."""
        script = self.link(entry_template, substitutions, artifact)
        write_atomic(output_path, script)
        return output_path

    def _inline(self, module: str, artifact: TemplateArtifact) -> _Unit:
        resolved = self.resolutions[module](artifact)
        logger.debug("module_inlined", module=module, origin=resolved.origin)
        return _Unit(module, resolved.source, resolved.origin)

    def _allowed(self, module: str) -> bool:
        top = module.split(".")[0]
        if top in self.external_modules:
            return True
        return top in sys.stdlib_module_names and top not in HOST_ONLY_MODULES

    def _hoist(self, node: ast.Import | ast.ImportFrom, unit: str, imports: _Imports) -> None:
        if isinstance(node, ast.ImportFrom):
            if node.level:
                raise LinkError("Relative imports cannot be linked", module=unit)
            module = node.module or ""
            if module == "__future__":
                imports.future.update(dict.fromkeys(alias.name for alias in node.names))
                return
            if not self._allowed(module):
                raise LinkError(f"Unresolved import '{module}'", module=unit)
            for alias in node.names:
                if alias.name == "*":
                    raise LinkError(f"Star import from '{module}' cannot be linked", module=unit)
                imports.add_named(alias.asname or alias.name, (module, alias.name), unit)
            return

        for alias in node.names:
            if not self._allowed(alias.name):
                raise LinkError(f"Unresolved import '{alias.name}'", module=unit)
            if alias.asname:
                imports.add_named(alias.asname, (alias.name, None), unit)
            else:
                imports.add_plain(alias.name, unit)

    def _check_nested_imports(self, unit: _Unit) -> None:
        top_level = {id(node) for node in unit.imports}
        for node in ast.walk(unit.tree):
            if not isinstance(node, (ast.Import, ast.ImportFrom)) or id(node) in top_level:
                continue
            names = [node.module or ""] if isinstance(node, ast.ImportFrom) else [a.name for a in node.names]
            for name in names:
                if name in self.resolutions or not self._allowed(name):
                    raise LinkError(f"Unresolved import '{name}'", module=unit.name)

    @staticmethod
    def _check_calls(unit: _Unit) -> None:
        for node in ast.walk(unit.tree):
            if not isinstance(node, ast.Call):
                continue
            func = node.func
            if isinstance(func, ast.Name) and func.id in DYNAMIC_EVALUATION:
                raise LinkError(f"Dynamic evaluation is not allowed: {func.id}()", module=unit.name)
            if (
                isinstance(func, ast.Attribute)
                and isinstance(func.value, ast.Name)
                and func.value.id == "builtins"
                and func.attr in DYNAMIC_EVALUATION
            ):
                raise LinkError(f"Dynamic evaluation is not allowed: builtins.{func.attr}()", module=unit.name)

    def _check_source_compilers(self, unit: _Unit, bindings: set[str]) -> None:
        """Reject any route to the real package's template compiler."""
        for node in ast.walk(unit.tree):
            if isinstance(node, ast.ImportFrom):
                module = node.module or ""
                if module in self.resolutions or module.split(".")[0] != RUNTIME_MODULE:
                    continue
                for alias in node.names:
                    if alias.name in SOURCE_COMPILERS:
                        raise LinkError(
                            f"Runtime template compilation is not allowed: {module}.{alias.name}",
                            module=unit.name,
                        )
            elif isinstance(node, ast.Attribute) and node.attr in SOURCE_COMPILERS:
                root = node.value
                while isinstance(root, ast.Attribute):
                    root = root.value
                if isinstance(root, ast.Name) and root.id in bindings:
                    raise LinkError(
                        f"Runtime template compilation is not allowed: {ast.unparse(node)}",
                        module=unit.name,
                    )

    @staticmethod
    def _check_collisions(units: list[_Unit], bound: set[str], aliases: list[str]) -> None:
        owners: dict[str, str] = {}
        for unit in units:
            for name in unit.defined:
                if name in owners:
                    raise LinkError(
                        f"Top-level name '{name}' is defined by both {owners[name]} and {unit.name}",
                        module=unit.name,
                    )
                if name in bound:
                    raise LinkError(f"Top-level name '{name}' shadows an import", module=unit.name)
                owners[name] = unit.name
        for alias in aliases:
            name = alias.split(" = ", 1)[0]
            if name in owners or name in bound:
                raise LinkError(f"Import alias '{name}' collides with an existing name")


def _defined_names(statements: list[ast.stmt]) -> set[str]:
    names: set[str] = set()
    for node in statements:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            for target in node.targets:
                names.update(_target_names(target))
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
            names.update(_target_names(node.target))
    return names


def _target_names(target: ast.expr) -> set[str]:
    if isinstance(target, ast.Name):
        return {target.id}
    if isinstance(target, (ast.Tuple, ast.List)):
        return set().union(*(_target_names(elt) for elt in target.elts))
    return set()


def _package_bindings(imports: _Imports, package: str) -> set[str]:
    bindings = {module.split(".")[0] for module in imports.plain if module.split(".")[0] == package}
    bindings.update(bound for bound, (module, _) in imports.named.items() if module.split(".")[0] == package)
    return bindings | {package}
