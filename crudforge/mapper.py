"""
Crudforge Type Mapper - Relational column types to Python types

Nullability is kept visible in the type itself: a nullable column always
maps to a wrapper, a NOT NULL column never does.
"""

from __future__ import annotations

import json
import re

from crudforge.fields import type_label
from crudforge.spec import ColumnDescriptor

# Base type -> nullable wrapper alias
_WRAPPERS: dict[str, str] = {
    "str": "NullStr",
    "int": "NullInt32",
    "Int32": "NullInt32",
    "Int64": "NullInt64",
    "float": "NullFloat",
    "bool": "NullBool",
    "datetime": "NullDatetime",
}

_UNSIGNED_WIDTHS: dict[str, str] = {
    "tinyint": "UInt8",
    "smallint": "UInt16",
    "mediumint": "UInt32",
    "int": "UInt32",
    "integer": "UInt32",
    "bigint": "UInt64",
}

_STRING_FAMILIES = ("char", "text")


class TypeMapper:
    """Maps ColumnDescriptors to Python types and storage annotations."""

    def map_type(self, column: ColumnDescriptor) -> str:
        base = self.base_type(column)
        if column.nullable and not column.primary_key:
            return _WRAPPERS.get(base, f"Optional[{base}]")
        return base

    def base_type(self, column: ColumnDescriptor) -> str:
        native = column.data_type.lower().strip()
        full = (column.full_type or native).lower()

        if any(family in native for family in _STRING_FAMILIES):
            return "str"
        if native == "json":
            return "dict"

        if native in _UNSIGNED_WIDTHS and "unsigned" in full:
            return _UNSIGNED_WIDTHS[native]
        if native == "tinyint":
            # tinyint(1) is the conventional boolean column
            if re.search(r"tinyint\(1\)", full):
                return "bool"
            return "Int8"
        if native == "smallint":
            return "Int16"
        if native in ("mediumint", "int", "integer"):
            return "Int32"
        if native == "bigint":
            return "Int64"

        if native in ("float", "real"):
            return "Float32"
        if native in ("double", "double precision") or "decimal" in native or "numeric" in native:
            return "float"

        if native in ("boolean", "bool"):
            return "bool"

        if native in ("date", "datetime", "timestamp"):
            return "datetime"
        if native == "time":
            return "str"

        if "binary" in native or "blob" in native:
            return "bytes"

        return "str"

    # ═══════════════════════════════════════════════════════════════════════
    # STORAGE ANNOTATION
    # ═══════════════════════════════════════════════════════════════════════

    def storage_annotation(self, column: ColumnDescriptor) -> str:
        """``mapped_column`` arguments re-derived from the catalog facts."""
        args = [f'"{column.name}"', self.sqlalchemy_type(column)]

        if column.primary_key:
            args.append("primary_key=True")
        if column.auto_increment:
            args.append("autoincrement=True")
        if not column.nullable and not column.primary_key:
            args.append("nullable=False")

        if column.default is not None and column.default != "":
            default = column.default
            # String defaults are re-quoted, numeric ones stay bare
            if self.is_string_type(column.data_type) and not default.startswith("'"):
                default = f"'{default}'"
            args.append(f"server_default=text({json.dumps(default)})")

        if column.comment:
            args.append(f"comment={json.dumps(column.comment, ensure_ascii=False)}")

        return ", ".join(args)

    def sqlalchemy_type(self, column: ColumnDescriptor) -> str:
        native = column.data_type.lower().strip()

        if "varchar" in native:
            return f"String({column.max_length or 255})"
        if "char" in native:
            return f"CHAR({column.max_length or 255})"
        if "text" in native:
            return "Text"
        if "decimal" in native or "numeric" in native:
            if column.max_length is not None and column.numeric_scale is not None:
                return f"Numeric({column.max_length}, {column.numeric_scale})"
            return "Numeric(10, 2)"

        simple = {
            "int": "Integer",
            "integer": "Integer",
            "mediumint": "Integer",
            "bigint": "BigInteger",
            "tinyint": "SmallInteger",
            "smallint": "SmallInteger",
            "float": "Float",
            "real": "Float",
            "double": "Double",
            "datetime": "DateTime",
            "timestamp": "TIMESTAMP",
            "date": "Date",
            "time": "Time",
            "json": "JSON",
            "boolean": "Boolean",
            "bool": "Boolean",
        }
        if native in simple:
            return simple[native]
        if "binary" in native or "blob" in native:
            return "LargeBinary"
        return "Text"

    @staticmethod
    def is_string_type(native: str) -> bool:
        native = native.lower()
        return any(family in native for family in _STRING_FAMILIES) or native == "json"

    @staticmethod
    def type_comment(type_name: str) -> str:
        return type_label(type_name)
