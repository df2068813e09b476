"""
Crudforge Reflector - Recover the field list of an existing model

Two sources, tried in order:

1. ``<models_dir>/<snake>.fields.yaml``, the manifest written next to every
   generated model.
2. The model source itself, read with ``ast``. Best effort: handles the
   annotation shapes crudforge emits plus plain names, dotted names,
   ``Optional``, ``list`` and ``dict``.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from crudforge.errors import ReflectionError
from crudforge.fields import FieldParser
from crudforge.naming import NamingSet, pascal_case, snake_case
from crudforge.spec import EntityField
from crudforge.writer import FileWriter

logger = logging.getLogger(__name__)

SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at", "deleted_at"})

MANIFEST_SUFFIX = ".fields.yaml"


def dump_manifest(naming: NamingSet, fields: list[EntityField], table: str | None = None) -> str:
    """Serialize a field list into manifest YAML."""
    data = {
        "model": naming.name,
        "table": table or naming.table,
        "fields": [f.model_dump(by_alias=True) for f in fields],
    }
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


class ModelReflector:
    """Reads field metadata back from a models directory."""

    def __init__(self, models_dir: str | Path, writer: FileWriter | None = None):
        """
        Args:
            models_dir: Directory holding model sources and manifests
            writer: When given, files planned by a dry run are visible too
        """
        self.models_dir = Path(models_dir)
        self.writer = writer
        self.parser = FieldParser()

    def _exists(self, path: Path) -> bool:
        return self.writer.exists(path) if self.writer else path.exists()

    def _read(self, path: Path) -> str:
        return self.writer.read_text(path) if self.writer else path.read_text(encoding="utf-8")

    def manifest_path(self, model: str) -> Path:
        return self.models_dir / f"{snake_case(model)}{MANIFEST_SUFFIX}"

    def source_path(self, model: str) -> Path:
        return self.models_dir / f"{snake_case(model)}.py"

    def reflect(self, model: str) -> list[EntityField]:
        """
        Recover the fields of ``model``.

        Raises:
            ReflectionError: Neither the manifest nor the source yields fields
        """
        manifest = self.manifest_path(model)
        if self._exists(manifest):
            try:
                return self.reflect_manifest(model)
            except ReflectionError as e:
                logger.warning("Ignoring unreadable field manifest: %s", e)
        return self.reflect_source(model)

    def fields_or_fallback(self, model: str, dsl: str | None) -> list[EntityField]:
        """Reflected fields, else the parsed DSL, else an empty list."""
        try:
            return self.reflect(model)
        except ReflectionError as e:
            logger.warning("Could not reflect %s, using field definitions instead: %s", model, e)
        if dsl:
            return self.parser.parse(dsl)
        return []

    # ═══════════════════════════════════════════════════════════════════════
    # MANIFEST
    # ═══════════════════════════════════════════════════════════════════════

    def reflect_manifest(self, model: str) -> list[EntityField]:
        path = self.manifest_path(model)
        try:
            data = yaml.safe_load(self._read(path)) or {}
            raw_fields = data.get("fields") or []
            fields = [EntityField.model_validate(item) for item in raw_fields]
        except (OSError, yaml.YAMLError, ValidationError, AttributeError) as e:
            raise ReflectionError(f"invalid field manifest: {e}", entity=model, path=path) from e

        if not fields:
            raise ReflectionError("field manifest lists no fields", entity=model, path=path)
        return fields

    # ═══════════════════════════════════════════════════════════════════════
    # SOURCE
    # ═══════════════════════════════════════════════════════════════════════

    def reflect_source(self, model: str) -> list[EntityField]:
        path = self.source_path(model)
        class_name = pascal_case(model)

        try:
            tree = ast.parse(self._read(path), filename=str(path))
        except OSError as e:
            raise ReflectionError("model file not readable", entity=model, path=path) from e
        except SyntaxError as e:
            raise ReflectionError(f"model file does not parse: {e.msg}", entity=model, path=path) from e

        node = self._find_declaration(tree, class_name)
        if node is None:
            raise ReflectionError(f"class {class_name} not found", entity=model, path=path)
        if not isinstance(node, ast.ClassDef):
            raise ReflectionError(f"{class_name} is not a class", entity=model, path=path)

        fields = []
        for stmt in node.body:
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            field = self._member_field(stmt.target.id, stmt.annotation, stmt.value)
            if field is not None:
                fields.append(field)

        if not fields:
            raise ReflectionError(f"class {class_name} declares no eligible fields", entity=model, path=path)
        return fields

    @staticmethod
    def _find_declaration(tree: ast.Module, name: str) -> ast.stmt | None:
        for stmt in tree.body:
            if isinstance(stmt, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)) and stmt.name == name:
                return stmt
            if isinstance(stmt, ast.Assign) and any(
                isinstance(t, ast.Name) and t.id == name for t in stmt.targets
            ):
                return stmt
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and stmt.target.id == name:
                return stmt
        return None

    def _member_field(self, member: str, annotation: ast.expr, value: ast.expr | None) -> EntityField | None:
        if member.startswith("_"):
            return None

        type_name = resolve_annotation(unwrap_mapped(annotation))
        if type_name == "datetime":
            return None

        options = mapped_column_options(value)
        serialized = options.get("json") or snake_case(member)
        if serialized in SYSTEM_FIELDS or snake_case(member) in SYSTEM_FIELDS:
            return None

        return self.parser.build_field(serialized, type_name, options.get("nullable") is False)


# ═══════════════════════════════════════════════════════════════════════════
# ANNOTATION HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def unwrap_mapped(annotation: ast.expr) -> ast.expr:
    """``Mapped[X]`` -> ``X``; anything else is returned unchanged."""
    if isinstance(annotation, ast.Subscript) and resolve_annotation(annotation.value) in (
        "Mapped", "orm.Mapped", "sqlalchemy.orm.Mapped",
    ):
        return annotation.slice
    return annotation


def resolve_annotation(node: ast.expr) -> str:
    """Render an annotation back to type text; unknown shapes become ``Any``."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{resolve_annotation(node.value)}.{node.attr}"
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        # String forward reference
        try:
            return resolve_annotation(ast.parse(node.value, mode="eval").body)
        except SyntaxError:
            return "Any"
    if isinstance(node, ast.Subscript):
        container = resolve_annotation(node.value)
        args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        if container in ("Optional", "typing.Optional") and len(args) == 1:
            return f"Optional[{resolve_annotation(args[0])}]"
        if container in ("list", "List", "typing.List") and len(args) == 1:
            return f"list[{resolve_annotation(args[0])}]"
        if container in ("dict", "Dict", "typing.Dict") and len(args) == 2:
            return f"dict[{resolve_annotation(args[0])}, {resolve_annotation(args[1])}]"
        if container in ("Mapped", "orm.Mapped"):
            return resolve_annotation(args[0])
        return "Any"
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        # X | None
        if isinstance(node.right, ast.Constant) and node.right.value is None:
            return f"Optional[{resolve_annotation(node.left)}]"
        if isinstance(node.left, ast.Constant) and node.left.value is None:
            return f"Optional[{resolve_annotation(node.right)}]"
    return "Any"


def mapped_column_options(value: ast.expr | None) -> dict[str, Any]:
    """
    Pull the reflection-relevant keywords out of a ``mapped_column(...)`` call.

    Returns:
        ``{"json": <serialized name>, "nullable": <bool>}`` where present
    """
    if not isinstance(value, ast.Call):
        return {}
    if resolve_annotation(value.func) not in ("mapped_column", "orm.mapped_column", "Column"):
        return {}

    options: dict[str, Any] = {}
    for keyword in value.keywords:
        if keyword.arg == "nullable" and isinstance(keyword.value, ast.Constant):
            options["nullable"] = keyword.value.value
        elif keyword.arg == "info" and isinstance(keyword.value, ast.Dict):
            for key, item in zip(keyword.value.keys, keyword.value.values):
                if (
                    isinstance(key, ast.Constant) and key.value == "json"
                    and isinstance(item, ast.Constant) and isinstance(item.value, str)
                ):
                    # Drop trailing options: "name,omitempty" -> "name"
                    name = item.value.split(",", 1)[0].strip()
                    if name:
                        options["json"] = name
    return options
