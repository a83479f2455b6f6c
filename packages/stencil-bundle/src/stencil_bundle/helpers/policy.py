"""Helper allow-list policy for edge bundles.

`HELPER_POLICY` is the auditable table of every helper an edge bundle may
expose, grouped by the module that implements it. A helper a group module
defines but the table does not name is never shipped.

Block helpers are not in the table and have no implementation here:
``forEach``, ``forIn``, ``forOwn``, ``iterate``, the ``unless*`` family and
the ``with*`` family. A helper is a plain function called from an expression,
so anything that needs a template body goes through Jinja's own ``{% for %}``,
``{% if %}`` or ``{% with %}`` tags instead.

`build_helper_module` turns the table into one self-contained Python module by
extracting the named functions (and the private module-level names they
depend on) from each group's source with `ast`.
"""

from __future__ import annotations

import ast
import copy
import importlib
import keyword
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import structlog

from stencil_bundle.errors import LinkError

logger = structlog.get_logger(__name__)

HELPERS_DIR = Path(__file__).parent

HELPER_POLICY: Mapping[str, tuple[str, ...]] = {
    "array": (
        "after", "arrayify", "before", "filter", "first", "inArray", "isArray",
        "last", "lengthEqual", "map", "some", "sort", "sortBy",
    ),
    "collection": ("isEmpty", "length"),
    "comparison": (
        "and", "gt", "gte", "has", "eq", "ifEven", "ifNth", "ifOdd", "is",
        "isnt", "lt", "lte", "neither",
    ),
    "html": ("ellipsis", "sanitize", "ul", "ol", "thumbnailImage"),
    "inflection": ("inflect", "ordinalize"),
    "markdown": ("markdown",),
    "math": ("add", "subtract", "divide", "multiply", "floor", "ceil", "round", "sum", "avg"),
    "number": (
        "addCommas", "phoneNumber", "random", "toAbbr", "toExponential",
        "toFixed", "toFloat", "toInt", "toPrecision",
    ),
    "object": ("extend", "toPath", "hasOwn", "isObject", "merge", "JSONparse", "JSONstringify"),
    "string": (
        "camelcase", "capitalize", "capitalizeAll", "center", "chop", "dashcase",
        "dotcase", "hyphenate", "isString", "lowercase", "pascalcase", "pathcase",
        "plusify", "reverse", "sentence", "snakecase", "split", "startsWith",
        "titleize", "trim", "uppercase",
    ),
    "url": ("encodeURI", "decodeURI", "urlResolve", "urlParse", "stripProtocol"),
}

HELPERS_EXPORT = "HELPERS"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def python_name(helper: str) -> str:
    """Map a template-facing helper name to its Python function name.

    Example:
        >>> python_name("addCommas")
        'add_commas'
        >>> python_name("and")
        'and_'
    """
    name = _CAMEL_BOUNDARY.sub("_", helper).lower()
    return f"{name}_" if keyword.iskeyword(name) else name


def resolve_helpers(policy: Mapping[str, tuple[str, ...]] = HELPER_POLICY) -> dict[str, Callable[..., Any]]:
    """Import the allow-listed helpers directly (local rendering, tests)."""
    helpers: dict[str, Callable[..., Any]] = {}
    for group, names in policy.items():
        module = importlib.import_module(f"{__package__}.{group}")
        for name in names:
            helpers[name] = getattr(module, python_name(name))
    return helpers


def build_helper_module(
    policy: Mapping[str, tuple[str, ...]] = HELPER_POLICY,
    helpers_dir: Path = HELPERS_DIR,
) -> str:
    """Generate the source of the allow-listed helper module.

    Args:
        policy: Group name to the helper names it may export.
        helpers_dir: Directory holding one ``<group>.py`` per group.

    Returns:
        Module source defining a ``HELPERS`` table of template name to function.

    Raises:
        LinkError: If a group module is missing or lacks a listed helper.
    """
    imports: dict[str, None] = {}
    definitions: list[str] = []
    exports: list[tuple[str, str]] = []

    for group, names in policy.items():
        extracted = _GroupExtractor(group, helpers_dir / f"{group}.py")
        group_imports, group_defs, renamed = extracted.extract([python_name(n) for n in names])
        imports.update(dict.fromkeys(group_imports))
        definitions.extend(group_defs)
        exports.extend((name, renamed[python_name(name)]) for name in names)
        logger.debug("helper_group_extracted", group=group, helpers=len(names))

    table = "\n".join(f"    {name!r}: {target}," for name, target in exports)
    parts = [
        '"""Allow-listed template helpers. Generated by stencil-bundle; do not edit."""',
        "\n".join(sorted(imports)),
        *definitions,
        f"{HELPERS_EXPORT} = {{\n{table}\n}}",
    ]
    return "\n\n\n".join(part for part in parts if part) + "\n"


class _Renamer(ast.NodeTransformer):
    def __init__(self, mapping: dict[str, str]) -> None:
        self.mapping = mapping

    def visit_Name(self, node: ast.Name) -> ast.Name:
        if node.id in self.mapping:
            node.id = self.mapping[node.id]
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.FunctionDef:
        if node.name in self.mapping:
            node.name = self.mapping[node.name]
        self.generic_visit(node)
        return node

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.ClassDef:
        if node.name in self.mapping:
            node.name = self.mapping[node.name]
        self.generic_visit(node)
        return node


class _GroupExtractor:
    """Pull named top-level functions, and what they use, out of one module."""

    def __init__(self, group: str, path: Path) -> None:
        self.group = group
        try:
            self.tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        except FileNotFoundError:
            raise LinkError(f"Helper group module not found: {group}", module="stencil_helpers") from None

        self.definitions: dict[str, ast.stmt] = {}
        self.imports: dict[str, ast.stmt] = {}
        for node in self.tree.body:
            if isinstance(node, (ast.FunctionDef, ast.ClassDef)):
                self.definitions[node.name] = node
            elif isinstance(node, (ast.Assign, ast.AnnAssign)):
                targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                for target in targets:
                    if isinstance(target, ast.Name):
                        self.definitions[target.id] = node
            elif isinstance(node, (ast.Import, ast.ImportFrom)):
                if isinstance(node, ast.ImportFrom) and node.module == "__future__":
                    continue
                for alias in node.names:
                    bound = alias.asname or alias.name.split(".")[0]
                    self.imports[bound] = node

    def extract(self, names: list[str]) -> tuple[list[str], list[str], dict[str, str]]:
        missing = [name for name in names if not isinstance(self.definitions.get(name), ast.FunctionDef)]
        if missing:
            raise LinkError(
                f"Helper group '{self.group}' does not define: {', '.join(missing)}",
                module="stencil_helpers",
            )

        needed: list[str] = []
        used_imports: set[str] = set()
        pending = list(names)
        while pending:
            name = pending.pop(0)
            if name in needed:
                continue
            needed.append(name)
            for ref in _names_in(self.definitions[name]):
                if ref in self.definitions and ref not in needed:
                    pending.append(ref)
                elif ref in self.imports:
                    used_imports.add(ref)

        mapping = {name: f"_{self.group}_{name.lstrip('_')}" for name in needed}
        renamer = _Renamer(mapping)

        wanted = [self.definitions[name] for name in needed]
        definitions = [
            ast.unparse(renamer.visit(copy.deepcopy(node)))
            for node in self.tree.body
            if any(node is w for w in wanted)
        ]

        return self._import_lines(used_imports), definitions, mapping

    def _import_lines(self, used: set[str]) -> list[str]:
        lines = []
        for node in dict.fromkeys(self.imports[name] for name in used):
            aliases = [
                alias
                for alias in node.names
                if (alias.asname or alias.name.split(".")[0]) in used
            ]
            if isinstance(node, ast.ImportFrom):
                lines.append(ast.unparse(ast.ImportFrom(module=node.module, names=aliases, level=0)))
            else:
                lines.extend(ast.unparse(ast.Import(names=[alias])) for alias in aliases)
        return lines


def _names_in(node: ast.AST) -> set[str]:
    return {child.id for child in ast.walk(node) if isinstance(child, ast.Name)}
