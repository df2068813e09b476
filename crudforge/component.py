"""
Crudforge Component - Shared base for every layer generator

Holds what all generators need: the project config, the template engine, the
file writer, the field parser/reflector and a clock.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from crudforge.config import ProjectConfig
from crudforge.engine import TemplateEngine
from crudforge.errors import GeneratorError
from crudforge.fields import WIDTH_ALIASES, FieldParser, base_type, is_nullable_type, python_annotation
from crudforge.naming import NamingSet
from crudforge.reflector import ModelReflector
from crudforge.spec import EntityField
from crudforge.writer import FileWriter, GeneratedFile, GenerationResult

logger = logging.getLogger(__name__)

# Width aliases only exist in the generated models/base.py
_SCHEMA_BUILTINS: dict[str, str] = {alias: "int" for alias in WIDTH_ALIASES if alias != "Float32"}
_SCHEMA_BUILTINS["Float32"] = "float"

_SCHEMA_IMPORTS: dict[str, str] = {
    "datetime": "from datetime import datetime",
    "date": "from datetime import date",
    "Decimal": "from decimal import Decimal",
    "Any": "from typing import Any",
    "Optional": "from typing import Optional",
}


def schema_type(type_name: str) -> str:
    """Type used in request schemas: wrappers stripped, width aliases widened."""
    inner = base_type(type_name)
    return _SCHEMA_BUILTINS.get(inner, inner)


def schema_fields(fields: Iterable[EntityField]) -> list[dict[str, Any]]:
    """Field-derived service context, identical for DSL and reflected fields."""
    result = []
    for field in fields:
        inner = schema_type(field.type)
        result.append({
            "name": field.serialized_name,
            "type": field.type,
            "annotation": python_annotation(inner, optional=not field.required),
            "update_annotation": python_annotation(inner, optional=True),
            "read_annotation": python_annotation(inner, optional=is_nullable_type(field.type) or not field.required),
            "required": field.required,
            "comment": field.comment,
        })
    return result


def schema_imports(fields: Iterable[dict[str, Any]]) -> list[str]:
    lines = set()
    for field in fields:
        for token in re.findall(r"[A-Za-z_][A-Za-z0-9_]*", field["annotation"]):
            if token in _SCHEMA_IMPORTS:
                lines.add(_SCHEMA_IMPORTS[token])
    return sorted(lines)


def module_path(directory: str) -> str:
    """``app/models`` -> ``app.models``"""
    return directory.strip("/").replace("/", ".")


class ComponentGenerator:
    """Base class for the layer generators."""

    def __init__(
        self,
        root: str | Path,
        config: ProjectConfig | None = None,
        engine: TemplateEngine | None = None,
        writer: FileWriter | None = None,
        clock: Callable[[], datetime] | None = None,
        dry_run: bool = False,
    ):
        """
        Args:
            root: Project root every output path is relative to
            config: Project configuration. Defaults to built-in defaults.
            engine: Shared template engine. Built on demand when omitted.
            writer: Shared file writer, so several generators share one manifest
            clock: Returns "now"; injectable for deterministic timestamps
            dry_run: Plan files without writing (ignored when ``writer`` is given)
        """
        self.root = Path(root)
        self.config = config or ProjectConfig()
        self.engine = engine or TemplateEngine()
        self.writer = writer or FileWriter(self.root, dry_run=dry_run)
        self.clock = clock or datetime.now
        self.layout = self.config.layout
        self.parser = FieldParser()
        self.reflector = ModelReflector(self.writer.resolve(self.layout.models_dir), self.writer)

    @property
    def result(self) -> GenerationResult:
        return self.writer.result

    def base_context(self, naming: NamingSet) -> dict[str, Any]:
        """Naming variants plus the module paths of every layer."""
        return {
            **naming.as_context(),
            "package": self.layout.package,
            "models_module": module_path(self.layout.models_dir),
            "repositories_module": module_path(self.layout.repositories_dir),
            "services_module": module_path(self.layout.services_dir),
            "handlers_module": module_path(self.layout.handlers_dir),
            "server_module": module_path(self.layout.server_dir),
            "year": self.clock().year,
        }

    def render(self, template: str, context: dict[str, Any], entity: str | None = None) -> str:
        try:
            return self.engine.render(template, context)
        except GeneratorError as e:
            if e.entity is None:
                e.entity = entity
            raise

    def _since(self, start: int) -> GenerationResult:
        """Files recorded after manifest position ``start``."""
        return GenerationResult(files=list(self.writer.result.files[start:]))

    def _create(self, path: Path, template: str, context: dict[str, Any], entity: str) -> GeneratedFile:
        content = self.render(template, context, entity)
        try:
            return self.writer.create(path, content, template)
        except GeneratorError as e:
            e.entity = e.entity or entity
            raise
