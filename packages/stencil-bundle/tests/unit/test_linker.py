"""Unit tests for the static link stage."""

from __future__ import annotations

import ast
import re
from pathlib import Path

import pytest

from stencil_bundle.compiler import TemplateArtifact, TemplateCompiler
from stencil_bundle.errors import LinkError
from stencil_bundle.linker import (
    ENTRY_TEMPLATE_PATH,
    ResolvedModule,
    StaticLinker,
    default_resolutions,
    generated,
    redirect,
    substitute,
)

SUBSTITUTIONS = {
    "__TRANSLATIONS_DATA__": {"en": {"hello": "Hello"}},
    "__SCHEMA_DATA__": [{"name": "Colors"}],
    "__CONFIG_DATA__": {"name": "Cornerstone", "settings": {"show_logo": True}},
    "__API_URL__": "https://shop.example",
}

TOKENS = "A = __TRANSLATIONS_DATA__\nB = __SCHEMA_DATA__\nC = __CONFIG_DATA__\nD = __API_URL__\n"


def _entry(body: str) -> str:
    return TOKENS + body


def _artifact() -> TemplateArtifact:
    return TemplateCompiler().compile(["pages/home"], {"pages/home": "<h1>{{ add(1, 2) }}</h1>"})


def _module(source: str) -> ResolvedModule:
    return ResolvedModule(source=source, origin="test")


class TestSubstitute:
    """Tests for data token substitution."""

    def test_tokens_become_literals(self) -> None:
        script = substitute(TOKENS, SUBSTITUTIONS)
        namespace: dict[str, object] = {}
        exec(script, namespace)  # noqa: S102

        assert namespace["A"] == {"en": {"hello": "Hello"}}
        assert namespace["C"] == SUBSTITUTIONS["__CONFIG_DATA__"]
        assert namespace["D"] == "https://shop.example"

    def test_values_are_not_rescanned(self) -> None:
        """A value containing another token is inserted verbatim."""
        values = {**SUBSTITUTIONS, "__API_URL__": "__CONFIG_DATA__"}

        script = substitute(TOKENS, values)

        assert "D = '__CONFIG_DATA__'" in script

    def test_missing_token_in_template(self) -> None:
        with pytest.raises(LinkError, match="__API_URL__ exactly once"):
            substitute(TOKENS.replace("D = __API_URL__\n", ""), SUBSTITUTIONS)

    def test_duplicate_token_in_template(self) -> None:
        with pytest.raises(LinkError, match="found 2"):
            substitute(TOKENS + "E = __API_URL__\n", SUBSTITUTIONS)

    def test_missing_value(self) -> None:
        values = {k: v for k, v in SUBSTITUTIONS.items() if k != "__SCHEMA_DATA__"}

        with pytest.raises(LinkError, match="No value supplied for __SCHEMA_DATA__"):
            substitute(TOKENS, values)


class TestStaticLinker:
    """Tests for StaticLinker.link."""

    def test_links_the_shipped_entry(self) -> None:
        """The packaged worker entry links into one parseable script."""
        script = StaticLinker(default_resolutions()).link(
            ENTRY_TEMPLATE_PATH.read_text(encoding="utf-8"), SUBSTITUTIONS, _artifact()
        )

        tree = ast.parse(script)
        top_level = {
            node.name for node in tree.body if isinstance(node, (ast.ClassDef, ast.FunctionDef))
        }
        assert {"Environment", "Renderer", "Default", "bind_environment", "template_pages_home"} <= top_level
        assert "from stencil_helpers" not in script
        assert "from stencil_templates" not in script
        assert "from jinja2 import Environment" not in script
        assert "import jinja2" in script
        assert "from workers import Response, WorkerEntrypoint, fetch as fetch_upstream" in script
        assert "def _math_add(" in script
        assert "def _math_modulo(" not in script
        assert "API_BASE_URL = 'https://shop.example'" in script

    def test_inlined_modules_follow_hoisted_imports(self) -> None:
        resolutions = {"lib": lambda artifact: _module("import json\n\nVALUE = json.dumps(1)\n")}
        script = StaticLinker(resolutions).link(
            _entry("from lib import VALUE\n\nprint(VALUE)\n"), SUBSTITUTIONS, _artifact()
        )

        lines = script.splitlines()
        assert lines.index("import json") < lines.index("VALUE = json.dumps(1)")
        assert lines.index("VALUE = json.dumps(1)") < lines.index("print(VALUE)")
        assert "# ---- lib (test) ----" in script

    def test_import_alias_is_bound(self) -> None:
        resolutions = {"lib": lambda artifact: _module("VALUE = 1\n")}
        script = StaticLinker(resolutions).link(
            _entry("from lib import VALUE as other\n"), SUBSTITUTIONS, _artifact()
        )

        assert "other = VALUE" in script

    def test_redirect_reads_file(self, tmp_path: Path) -> None:
        target = tmp_path / "replacement.py"
        target.write_text("X = 1\n", encoding="utf-8")

        resolved = redirect(target)(_artifact())

        assert resolved == ResolvedModule(source="X = 1\n", origin="replacement.py")

    def test_generated_calls_function(self) -> None:
        resolved = generated(lambda artifact: f"N = {len(artifact)}\n")(_artifact())

        assert resolved.source == "N = 1\n"
        assert resolved.origin == "generated"

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ("import requests\n", "Unresolved import 'requests'"),
            ("import subprocess\n", "Unresolved import 'subprocess'"),
            ("from os import path\n", "Unresolved import 'os'"),
            ("from . import sibling\n", "Relative imports"),
            ("from json import *\n", "Star import"),
            ("def f():\n    import pickle\n", "Unresolved import 'pickle'"),
        ],
    )
    def test_forbidden_imports(self, body: str, message: str) -> None:
        with pytest.raises(LinkError, match=message):
            StaticLinker({}).link(_entry(body), SUBSTITUTIONS, _artifact())

    def test_plain_import_of_inlined_module(self) -> None:
        resolutions = {"lib": lambda artifact: _module("VALUE = 1\n")}

        with pytest.raises(LinkError, match="must be imported with 'from ... import'"):
            StaticLinker(resolutions).link(_entry("import lib\n"), SUBSTITUTIONS, _artifact())

    def test_missing_name_in_inlined_module(self) -> None:
        resolutions = {"lib": lambda artifact: _module("VALUE = 1\n")}

        with pytest.raises(LinkError, match="does not define 'OTHER'"):
            StaticLinker(resolutions).link(_entry("from lib import OTHER\n"), SUBSTITUTIONS, _artifact())

    @pytest.mark.parametrize(
        "body",
        [
            "eval('1 + 1')\n",
            "exec('x = 1')\n",
            "compile('1', 'x', 'eval')\n",
            "__import__('json')\n",
            "import builtins\nbuiltins.eval('1')\n",
        ],
    )
    def test_dynamic_evaluation_is_rejected(self, body: str) -> None:
        with pytest.raises(LinkError, match="Dynamic evaluation is not allowed"):
            StaticLinker({}).link(_entry(body), SUBSTITUTIONS, _artifact())

    def test_dynamic_evaluation_in_inlined_module(self) -> None:
        resolutions = {"lib": lambda artifact: _module("def run(s):\n    return eval(s)\n")}

        with pytest.raises(LinkError, match=r"Dynamic evaluation is not allowed: eval\(\) \[lib\]"):
            StaticLinker(resolutions).link(_entry("from lib import run\n"), SUBSTITUTIONS, _artifact())

    @pytest.mark.parametrize(
        ("body", "reference"),
        [
            ("import jinja2\n\nT = jinja2.Template('{{ 1 }}')\n", "jinja2.Template"),
            ("import jinja2 as j\n\nenv = j.Environment()\n", "j.Environment"),
            ("from jinja2 import Template\n", "jinja2.Template"),
            ("from jinja2.environment import Environment as Env\n", "jinja2.environment.Environment"),
            (
                "import jinja2\n\nrender = jinja2.environment.Environment.from_string\n",
                "jinja2.environment.Environment.from_string",
            ),
        ],
    )
    def test_runtime_compilation_is_rejected(self, body: str, reference: str) -> None:
        with pytest.raises(LinkError, match=f"Runtime template compilation is not allowed: {re.escape(reference)}"):
            StaticLinker({}).link(_entry(body), SUBSTITUTIONS, _artifact())

    def test_runtime_compilation_in_inlined_module(self) -> None:
        source = "import jinja2\n\ndef build(text):\n    return jinja2.Environment().from_string(text)\n"
        resolutions = {"lib": lambda artifact: _module(source)}

        with pytest.raises(LinkError, match=r"jinja2.Environment \[lib\]"):
            StaticLinker(resolutions).link(_entry("from lib import build\n"), SUBSTITUTIONS, _artifact())

    def test_entry_cannot_reach_jinja2_through_the_runtime(self) -> None:
        """The runtime's own ``import jinja2`` is hoisted, but only the runtime may use it."""
        body = "from jinja2 import Environment\n\nTemplateClass = jinja2.Template\n"

        with pytest.raises(LinkError, match=r"jinja2.Template \[<entry>\]"):
            StaticLinker(default_resolutions()).link(_entry(body), SUBSTITUTIONS, _artifact())

    def test_top_level_collision(self) -> None:
        resolutions = {"lib": lambda artifact: _module("def render():\n    return 1\n")}

        with pytest.raises(LinkError, match="Top-level name 'render' is defined by both"):
            StaticLinker(resolutions).link(
                _entry("from lib import render\n\ndef render():\n    return 2\n"),
                SUBSTITUTIONS,
                _artifact(),
            )

    def test_import_binding_collision(self) -> None:
        resolutions = {"lib": lambda artifact: _module("from json import dumps as encode\n\nX = encode(1)\n")}

        with pytest.raises(LinkError, match="Import name collision on 'encode'"):
            StaticLinker(resolutions).link(
                _entry("from lib import X\nfrom pprint import pformat as encode\n"),
                SUBSTITUTIONS,
                _artifact(),
            )

    def test_definition_shadowing_import(self) -> None:
        resolutions = {"lib": lambda artifact: _module("json = None\n")}

        with pytest.raises(LinkError, match="shadows an import"):
            StaticLinker(resolutions).link(
                _entry("import json\nfrom lib import json as other\n"),
                SUBSTITUTIONS,
                _artifact(),
            )

    def test_link_to_writes_nothing_on_failure(self, tmp_path: Path) -> None:
        output = tmp_path / "worker.py"

        with pytest.raises(LinkError):
            StaticLinker({}).link_to(output, _entry("import requests\n"), SUBSTITUTIONS, _artifact())

        assert not output.exists()
