"""
Crudforge Field Parser - Field DSL parsing and type helpers

Input format: ``"name:string!,description:text,price:float64!,active:bool"``.
A trailing ``!`` marks the field required.
"""

from __future__ import annotations

import re
from typing import Iterable

from crudforge.errors import FieldParseError
from crudforge.naming import pascal_case, snake_case
from crudforge.spec import EntityField

# DSL type token -> Python type
LOGICAL_TYPES: dict[str, str] = {
    "string": "str",
    "str": "str",
    "text": "str",
    "int": "int",
    "int8": "Int8",
    "int16": "Int16",
    "int32": "Int32",
    "int64": "Int64",
    "uint": "UInt32",
    "uint8": "UInt8",
    "uint16": "UInt16",
    "uint32": "UInt32",
    "uint64": "UInt64",
    "float": "float",
    "float32": "Float32",
    "float64": "float",
    "double": "float",
    "decimal": "Decimal",
    "bool": "bool",
    "boolean": "bool",
    "time": "datetime",
    "datetime": "datetime",
    "timestamp": "datetime",
    "date": "date",
    "json": "dict",
}

# Nullable wrapper alias -> wrapped type
NULL_WRAPPERS: dict[str, str] = {
    "NullStr": "str",
    "NullInt32": "Int32",
    "NullInt64": "Int64",
    "NullFloat": "float",
    "NullBool": "bool",
    "NullDatetime": "datetime",
}

# Aliases exported by the generated models/base.py
WIDTH_ALIASES = (
    "Int8", "Int16", "Int32", "Int64",
    "UInt8", "UInt16", "UInt32", "UInt64",
    "Float32",
)

INTEGER_TYPES = frozenset({"int", *WIDTH_ALIASES[:-1]})
FLOAT_TYPES = frozenset({"float", "Float32", "Decimal"})

_OPTIONAL_RE = re.compile(r"^Optional\[(.+)\]$")


def base_type(type_name: str) -> str:
    """Strip a nullable wrapper: ``NullInt64`` -> ``Int64``, ``Optional[X]`` -> ``X``."""
    if type_name in NULL_WRAPPERS:
        return NULL_WRAPPERS[type_name]
    match = _OPTIONAL_RE.match(type_name)
    if match:
        return match.group(1)
    return type_name


def is_nullable_type(type_name: str) -> bool:
    return type_name in NULL_WRAPPERS or bool(_OPTIONAL_RE.match(type_name))


def type_label(type_name: str) -> str:
    """Human readable category of a Python type, used in field comments."""
    if is_nullable_type(type_name):
        return f"nullable {type_label(base_type(type_name))}"
    labels = {
        "str": "string",
        "int": "integer",
        "Int8": "8-bit integer",
        "Int16": "16-bit integer",
        "Int32": "32-bit integer",
        "Int64": "64-bit integer",
        "UInt8": "8-bit unsigned integer",
        "UInt16": "16-bit unsigned integer",
        "UInt32": "32-bit unsigned integer",
        "UInt64": "64-bit unsigned integer",
        "Float32": "32-bit float",
        "float": "64-bit float",
        "Decimal": "decimal",
        "bool": "boolean",
        "datetime": "datetime",
        "date": "date",
        "bytes": "byte sequence",
        "dict": "json object",
    }
    return labels.get(type_name, "custom type")


# ═══════════════════════════════════════════════════════════════════════════
# STORAGE ANNOTATIONS
# ═══════════════════════════════════════════════════════════════════════════


def storage_for_type(column: str, type_name: str, required: bool) -> str:
    """``mapped_column`` arguments for a field declared through the DSL."""
    sa_types = {
        "str": "String(255)",
        "int": "Integer",
        "Int8": "SmallInteger",
        "Int16": "SmallInteger",
        "Int32": "Integer",
        "Int64": "BigInteger",
        "UInt8": "SmallInteger",
        "UInt16": "Integer",
        "UInt32": "Integer",
        "UInt64": "BigInteger",
        "Float32": "Float",
        "float": "Numeric(10, 2)",
        "Decimal": "Numeric(10, 2)",
        "bool": 'Boolean, server_default=text("0")',
        "datetime": "DateTime",
        "date": "Date",
        "dict": "JSON",
        "bytes": "LargeBinary",
    }
    args = [f'"{column}"', sa_types.get(base_type(type_name), "Text")]
    if required:
        args.append("nullable=False")
    elif not is_nullable_type(type_name):
        # Mapped[X] alone would make the column NOT NULL
        args.append("nullable=True")
    return ", ".join(args)


SQLALCHEMY_TYPES = frozenset({
    "String", "CHAR", "Text", "Integer", "SmallInteger", "BigInteger",
    "Numeric", "Float", "Double", "Boolean", "DateTime", "Date", "Time",
    "TIMESTAMP", "JSON", "LargeBinary",
})


def sqlalchemy_names(storage: str) -> set[str]:
    """SQLAlchemy names referenced by a storage annotation."""
    # Strip the comment so its words are not mistaken for types
    storage = re.sub(r'comment="(?:[^"\\]|\\.)*"', "", storage)
    names = set(re.findall(r"\b[A-Za-z]+\b", storage)) & SQLALCHEMY_TYPES
    if "server_default=text(" in storage:
        names.add("text")
    return names


# ═══════════════════════════════════════════════════════════════════════════
# FIELD PARSER
# ═══════════════════════════════════════════════════════════════════════════


class FieldParser:
    """Parses the field DSL into EntityField sequences."""

    def parse(self, fields: str | None) -> list[EntityField]:
        """
        Parse a field definition string.

        Args:
            fields: ``name:type[!]`` tokens separated by commas

        Returns:
            One EntityField per token, in input order
        """
        if not fields or not fields.strip():
            return []

        result: list[EntityField] = []
        for token in self._split(fields):
            token = token.strip()
            if not token:
                continue
            result.append(self.parse_token(token))
        return result

    def parse_token(self, token: str) -> EntityField:
        if token.count(":") != 1:
            raise FieldParseError(token)

        raw_name, raw_type = (part.strip() for part in token.split(":", 1))
        if not raw_name or not raw_type:
            raise FieldParseError(token)

        required = raw_type.endswith("!")
        if required:
            raw_type = raw_type[:-1].strip()
            if not raw_type:
                raise FieldParseError(token)

        return self.build_field(raw_name, LOGICAL_TYPES.get(raw_type, raw_type), required)

    def build_field(self, raw_name: str, type_name: str, required: bool) -> EntityField:
        """Build a field from a name and an already-resolved Python type."""
        name = pascal_case(raw_name)
        return EntityField(
            name=name,
            type=type_name,
            storage=storage_for_type(snake_case(name), type_name, required),
            comment=f"{name} {type_label(type_name)}",
            required=required,
        )

    @staticmethod
    def _split(fields: str) -> Iterable[str]:
        """Split on commas that are not nested inside brackets."""
        depth = 0
        current: list[str] = []
        for ch in fields:
            if ch in "[(":
                depth += 1
            elif ch in "])":
                depth = max(depth - 1, 0)
            if ch == "," and depth == 0:
                yield "".join(current)
                current = []
                continue
            current.append(ch)
        yield "".join(current)


# ═══════════════════════════════════════════════════════════════════════════
# TEMPLATE HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def required_imports(fields: Iterable[EntityField]) -> dict[str, list[str]]:
    """
    Collect the imports a model file needs for its fields.

    Returns:
        ``{"sqlalchemy": [...], "base": [...], "stdlib": [...]}``
    """
    sqlalchemy: set[str] = set()
    base: set[str] = set()
    stdlib: set[str] = set()

    for field in fields:
        sqlalchemy |= sqlalchemy_names(field.storage)
        for token in re.findall(r"[A-Za-z_][A-Za-z0-9_]*", field.type):
            if token in NULL_WRAPPERS or token in WIDTH_ALIASES:
                base.add(token)
            elif token == "Optional":
                stdlib.add("from typing import Optional")
            elif token == "Any":
                stdlib.add("from typing import Any")
            elif token == "Decimal":
                stdlib.add("from decimal import Decimal")
            elif token in ("datetime", "date"):
                stdlib.add(f"from datetime import {token}")

    return {
        "sqlalchemy": sorted(sqlalchemy),
        "base": sorted(base),
        "stdlib": sorted(stdlib),
    }


def python_annotation(type_name: str, optional: bool = False) -> str:
    """Annotation used in request schemas; wrappers collapse to ``X | None``."""
    inner = base_type(type_name)
    if optional or is_nullable_type(type_name):
        return f"{inner} | None"
    return inner


def ts_type(type_name: str) -> str:
    """Python type -> TypeScript type."""
    inner = base_type(type_name)
    if inner in INTEGER_TYPES or inner in FLOAT_TYPES:
        return "number"
    if inner == "bool":
        return "boolean"
    if inner == "dict":
        return "Record<string, unknown>"
    return "string"


def form_type(type_name: str, field_name: str) -> str:
    """Form control for a field, by name first, then by type."""
    lowered = field_name.lower()
    if "password" in lowered:
        return "password"
    if "email" in lowered:
        return "email"
    if "description" in lowered or "content" in lowered:
        return "textarea"
    if "active" in lowered or "enabled" in lowered:
        return "switch"

    inner = base_type(type_name)
    if inner == "bool":
        return "switch"
    if inner in INTEGER_TYPES or inner in FLOAT_TYPES:
        return "number"
    if inner in ("datetime", "date"):
        return "datetime"
    return "input"


# ═══════════════════════════════════════════════════════════════════════════
# SQL COLUMNS
# ═══════════════════════════════════════════════════════════════════════════

_SQL_TYPES: dict[str, dict[str, str]] = {
    "mysql": {
        "str": "VARCHAR(255)",
        "int": "INT",
        "Int8": "TINYINT",
        "Int16": "SMALLINT",
        "Int32": "INT",
        "Int64": "BIGINT",
        "UInt8": "TINYINT UNSIGNED",
        "UInt16": "SMALLINT UNSIGNED",
        "UInt32": "INT UNSIGNED",
        "UInt64": "BIGINT UNSIGNED",
        "Float32": "FLOAT",
        "float": "DECIMAL(10,2)",
        "Decimal": "DECIMAL(10,2)",
        "bool": "TINYINT(1)",
        "datetime": "DATETIME",
        "date": "DATE",
        "dict": "JSON",
        "bytes": "BLOB",
    },
    "postgres": {
        "str": "VARCHAR(255)",
        "int": "INTEGER",
        "Int8": "SMALLINT",
        "Int16": "SMALLINT",
        "Int32": "INTEGER",
        "Int64": "BIGINT",
        "UInt8": "SMALLINT",
        "UInt16": "INTEGER",
        "UInt32": "BIGINT",
        "UInt64": "NUMERIC(20)",
        "Float32": "REAL",
        "float": "DECIMAL(10,2)",
        "Decimal": "DECIMAL(10,2)",
        "bool": "BOOLEAN",
        "datetime": "TIMESTAMP",
        "date": "DATE",
        "dict": "JSONB",
        "bytes": "BYTEA",
    },
    "sqlite": {
        "str": "VARCHAR(255)",
        "int": "INTEGER",
        "Int8": "INTEGER",
        "Int16": "INTEGER",
        "Int32": "INTEGER",
        "Int64": "INTEGER",
        "UInt8": "INTEGER",
        "UInt16": "INTEGER",
        "UInt32": "INTEGER",
        "UInt64": "INTEGER",
        "Float32": "REAL",
        "float": "DECIMAL(10,2)",
        "Decimal": "DECIMAL(10,2)",
        "bool": "BOOLEAN",
        "datetime": "DATETIME",
        "date": "DATE",
        "dict": "TEXT",
        "bytes": "BLOB",
    },
}


def sql_type(type_name: str, database_type: str = "mysql") -> str:
    types = _SQL_TYPES.get(database_type, _SQL_TYPES["mysql"])
    return types.get(base_type(type_name), "TEXT")


def sql_column(field: EntityField, database_type: str = "mysql") -> str:
    """Column definition for CREATE/ALTER TABLE: ``price DECIMAL(10,2) NOT NULL``."""
    parts = [field.serialized_name, sql_type(field.type, database_type)]
    if field.required:
        parts.append("NOT NULL")
    if base_type(field.type) == "bool":
        parts.append("DEFAULT 0" if database_type == "sqlite" else "DEFAULT FALSE")
    return " ".join(parts)
