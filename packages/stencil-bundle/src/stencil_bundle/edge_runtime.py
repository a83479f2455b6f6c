"""Runtime-only Jinja2 environment for edge workers.

Edge bundles import this module in place of ``jinja2``. It renders templates
that stencil-bundle compiled ahead of time and has no way to turn template
text into code: there is no source loader, and every entry point that would
lex, parse or compile template source raises `jinja2.TemplateRuntimeError`,
including constructing a template class from text.
"""

import re

import jinja2

TEMPLATE_EXTENSION = ".html"
FALLBACK_LOCALE = "en"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PrecompiledLoader(jinja2.BaseLoader):
    """Serve templates from precompiled namespaces.

    Args:
        namespaces: Partial identifier to the namespace class emitted by the
            compiler (holding ``name``, ``root``, ``blocks`` and ``debug_info``).
    """

    has_source_access = False

    def __init__(self, namespaces):
        self.namespaces = dict(namespaces)

    def get_source(self, environment, template):
        raise jinja2.TemplateNotFound(template)

    def list_templates(self):
        return sorted(self.namespaces)

    def load(self, environment, name, globals=None):
        identifier = name[: -len(TEMPLATE_EXTENSION)] if name.endswith(TEMPLATE_EXTENSION) else name
        namespace = self.namespaces.get(identifier)
        if namespace is None:
            raise jinja2.TemplateNotFound(name)
        module = {
            "name": namespace.name,
            "__file__": None,
            "root": namespace.root,
            "blocks": namespace.blocks,
            "debug_info": namespace.debug_info,
        }
        if globals is None:
            globals = environment.make_globals(None)
        return environment.template_class.from_module_dict(environment, module, globals)


def _refuse(self, *args, **kwargs):
    raise jinja2.TemplateRuntimeError("Template source cannot be compiled at run time")


class PrecompiledTemplate(jinja2.Template):
    """A template that can only be built from a compiled namespace.

    `from_module_dict` and `from_code` bypass ``__new__``; calling the class
    with template text raises instead of creating a fallback environment.
    """

    def __new__(cls, *args, **kwargs):
        _refuse(cls)


class Environment(jinja2.Environment):
    """A Jinja2 environment that only renders precompiled templates.

    Args:
        templates: Identifier to compiled namespace table.
        helpers: Template helpers, exposed as globals.
        translations: Locale to translation table.
        locale: Active locale for the ``lang`` global.
        **options: Further `jinja2.Environment` options.

    Example:
        >>> env = Environment(TEMPLATES, helpers=HELPERS, translations={"en": {"hi": "Hello {name}"}})
        >>> env.renderer().render("pages/home", {"title": "Shop"})
    """

    compile = _refuse
    parse = _refuse
    lex = _refuse
    preprocess = _refuse
    from_string = _refuse
    compile_expression = _refuse
    compile_templates = _refuse

    template_class = PrecompiledTemplate

    def __init__(self, templates, helpers=None, translations=None, locale=FALLBACK_LOCALE, **options):
        options.setdefault("autoescape", True)
        super().__init__(loader=PrecompiledLoader(templates), **options)
        self.translations = translations or {}
        self.locale = locale
        self.globals.update(helpers or {})
        self.globals["lang"] = self.lang

    def lang(self, key, **params):
        """Translate a dotted ``key``, substituting ``{placeholders}`` from ``params``."""
        for locale in (self.locale, FALLBACK_LOCALE):
            value = self.translations.get(locale)
            for part in key.split("."):
                value = value.get(part) if isinstance(value, dict) else None
            if isinstance(value, str):
                return _PLACEHOLDER.sub(lambda m: str(params.get(m.group(1), m.group(0))), value)
        return key

    def renderer(self):
        return Renderer(self)


class Renderer:
    """The whole surface a worker needs: render a named template."""

    __slots__ = ("_environment",)

    def __init__(self, environment):
        self._environment = environment

    @property
    def template_names(self):
        return self._environment.list_templates()

    def render(self, name, context=None):
        return self._environment.get_template(name).render(context or {})
