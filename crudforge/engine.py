"""
Crudforge Template Engine - Jinja2 rendering

Every ``*.j2`` file under ``crudforge/templates`` is compiled once when the
engine is built. After that the engine is read-only and can be shared.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    select_autoescape,
)

from crudforge.errors import TemplateRenderError
from crudforge.fields import base_type, sql_column, ts_type
from crudforge.naming import (
    camel_case,
    humanize,
    kebab_case,
    pascal_case,
    pluralize,
    snake_case,
)

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".j2"

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


def _trim_prefix(s: str, prefix: str) -> str:
    return s[len(prefix):] if prefix and s.startswith(prefix) else s


def _trim_suffix(s: str, suffix: str) -> str:
    return s[: -len(suffix)] if suffix and s.endswith(suffix) else s


# Exposed to templates both as filters and as globals
FUNCTIONS: dict[str, Any] = {
    "pascal_case": pascal_case,
    "camel_case": camel_case,
    "snake_case": snake_case,
    "kebab_case": kebab_case,
    "pluralize": pluralize,
    "humanize": humanize,
    "has_prefix": lambda s, prefix: s.startswith(prefix),
    "has_suffix": lambda s, suffix: s.endswith(suffix),
    "trim_prefix": _trim_prefix,
    "trim_suffix": _trim_suffix,
    "contains": lambda s, sub: sub in s,
    "quote": lambda x: f"'{x}'",
    "dquote": lambda x: f'"{x}"',
    "to_json": lambda x: json.dumps(x, ensure_ascii=False),
    "sql_column": sql_column,
    "base_type": base_type,
    "ts_type": ts_type,
}


def create_jinja_env(templates_dir: Path) -> Environment:
    """Create Jinja2 environment with the crudforge function library."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters.update(FUNCTIONS)
    env.globals.update(FUNCTIONS)
    return env


class TemplateEngine:
    """
    Named-template renderer.

    Template names drop the ``.j2`` suffix: ``model.py.j2`` renders as
    ``model.py``.
    """

    def __init__(self, templates_dir: Path | None = None):
        """
        Compile every template in ``templates_dir``.

        Args:
            templates_dir: Directory of ``.j2`` files. Defaults to package templates.

        Raises:
            TemplateRenderError: A template does not compile
        """
        self.templates_dir = templates_dir or DEFAULT_TEMPLATES_DIR
        self.env = create_jinja_env(self.templates_dir)
        self._templates: dict[str, Template] = {}

        for filename in self.env.list_templates(extensions=[TEMPLATE_SUFFIX.lstrip(".")]):
            name = filename[: -len(TEMPLATE_SUFFIX)]
            try:
                template = self.env.get_template(filename)
            except TemplateError as e:
                raise TemplateRenderError(name, f"template does not compile ({e})") from e
            # Partials are only reachable through include
            if not name.startswith("_"):
                self._templates[name] = template

        logger.debug("Loaded %d templates from %s", len(self._templates), self.templates_dir)

    def names(self) -> list[str]:
        return sorted(self._templates)

    def has_template(self, name: str) -> bool:
        return name in self._templates

    def render(self, name: str, data: dict[str, Any]) -> str:
        """Render ``name`` against ``data``."""
        template = self._templates.get(name)
        if template is None:
            raise TemplateRenderError(name, "unknown template")
        try:
            return template.render(**data)
        except (TemplateError, TypeError, ValueError, AttributeError, KeyError) as e:
            raise TemplateRenderError(name, f"render failed ({e})") from e
