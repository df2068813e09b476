"""
Crudforge Introspector - Read table structure from a live database

Opens one connection per call and always releases it. MySQL is read through
INFORMATION_SCHEMA, SQLite through PRAGMA table_info.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from crudforge.errors import IntrospectionError
from crudforge.mapper import TypeMapper
from crudforge.naming import pascal_case
from crudforge.spec import ColumnDescriptor, EntityField, TableInfo

logger = logging.getLogger(__name__)

# Supplied by the shared base model, never re-declared
BASE_COLUMNS = frozenset({"created_at", "updated_at", "deleted_at"})

_MYSQL_TABLE_COMMENT = """
    SELECT TABLE_COMMENT
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table
"""

_MYSQL_COLUMNS = """
    SELECT
        COLUMN_NAME,
        DATA_TYPE,
        COLUMN_TYPE,
        IS_NULLABLE,
        COLUMN_DEFAULT,
        COLUMN_KEY,
        EXTRA,
        COLUMN_COMMENT,
        CHARACTER_MAXIMUM_LENGTH,
        NUMERIC_PRECISION,
        NUMERIC_SCALE
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table
    ORDER BY ORDINAL_POSITION
"""

_MYSQL_TABLES = """
    SELECT TABLE_NAME
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE'
    ORDER BY TABLE_NAME
"""

_SQLITE_TABLES = """
    SELECT name FROM sqlite_master
    WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
    ORDER BY name
"""

_TYPE_ARGS_RE = re.compile(r"^\s*([a-zA-Z ]+?)\s*(?:\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\))?(\s+unsigned)?\s*$", re.I)


def should_skip_column(column: ColumnDescriptor) -> bool:
    """Primary key ``id`` and timestamp columns come from the base model."""
    name = column.name.lower()
    if column.primary_key and name == "id":
        return True
    return name in BASE_COLUMNS


class SchemaIntrospector:
    """Reads catalog metadata through SQLAlchemy."""

    def __init__(self, url: str):
        self.url = url

    @property
    def safe_url(self) -> str:
        try:
            return make_url(self.url).render_as_string(hide_password=True)
        except ArgumentError:
            return "<invalid url>"

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Scoped connection; the engine is disposed on every exit path."""
        try:
            engine = create_engine(self.url)
        except (SQLAlchemyError, ImportError) as exc:
            raise IntrospectionError(f"failed to connect to {self.safe_url}") from exc

        try:
            with engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise IntrospectionError(f"catalog query failed on {self.safe_url}") from exc
        finally:
            engine.dispose()

    def get_table_info(self, table: str, exclude_base_columns: bool = True) -> TableInfo:
        """
        Read the comment and columns of one table.

        Args:
            table: Table name
            exclude_base_columns: Drop ``id``/timestamp columns owned by the base model

        Returns:
            TableInfo with columns in catalog order
        """
        with self.connect() as conn:
            dialect = conn.dialect.name
            if dialect == "mysql":
                info = self._mysql_table_info(conn, table)
            elif dialect == "sqlite":
                info = self._sqlite_table_info(conn, table)
            else:
                raise IntrospectionError(f"unsupported database dialect: {dialect}")

        if exclude_base_columns:
            info = info.model_copy(
                update={"columns": [c for c in info.columns if not should_skip_column(c)]}
            )
        logger.debug("Read %d columns from table %s", len(info.columns), table)
        return info

    def list_tables(self) -> list[str]:
        with self.connect() as conn:
            dialect = conn.dialect.name
            if dialect == "mysql":
                rows = conn.execute(text(_MYSQL_TABLES))
            elif dialect == "sqlite":
                rows = conn.execute(text(_SQLITE_TABLES))
            else:
                raise IntrospectionError(f"unsupported database dialect: {dialect}")
            return [row[0] for row in rows]

    # ═══════════════════════════════════════════════════════════════════════
    # MYSQL
    # ═══════════════════════════════════════════════════════════════════════

    def _mysql_table_info(self, conn: Connection, table: str) -> TableInfo:
        comment_row = conn.execute(text(_MYSQL_TABLE_COMMENT), {"table": table}).first()
        if comment_row is None:
            raise IntrospectionError(f"table not found: {table}")

        columns = []
        for row in conn.execute(text(_MYSQL_COLUMNS), {"table": table}).mappings():
            max_length = row["CHARACTER_MAXIMUM_LENGTH"]
            if max_length is None:
                max_length = row["NUMERIC_PRECISION"]
            columns.append(ColumnDescriptor(
                name=row["COLUMN_NAME"],
                data_type=row["DATA_TYPE"],
                full_type=row["COLUMN_TYPE"],
                nullable=row["IS_NULLABLE"] == "YES",
                default=row["COLUMN_DEFAULT"],
                primary_key=row["COLUMN_KEY"] == "PRI",
                auto_increment="auto_increment" in (row["EXTRA"] or ""),
                comment=row["COLUMN_COMMENT"] or "",
                max_length=max_length,
                numeric_scale=row["NUMERIC_SCALE"],
            ))

        return TableInfo(name=table, comment=comment_row[0] or "", columns=columns)

    # ═══════════════════════════════════════════════════════════════════════
    # SQLITE
    # ═══════════════════════════════════════════════════════════════════════

    def _sqlite_table_info(self, conn: Connection, table: str) -> TableInfo:
        exists = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'table' AND name = :table"),
            {"table": table},
        ).first()
        if exists is None:
            raise IntrospectionError(f"table not found: {table}")

        quoted = conn.dialect.identifier_preparer.quote(table)
        columns = [
            self._sqlite_column(row)
            for row in conn.execute(text(f"PRAGMA table_info({quoted})")).mappings()
        ]
        return TableInfo(name=table, comment="", columns=columns)

    @staticmethod
    def _sqlite_column(row: Any) -> ColumnDescriptor:
        declared = (row["type"] or "text").strip()
        match = _TYPE_ARGS_RE.match(declared)
        if match:
            data_type = match.group(1).lower()
            length = int(match.group(2)) if match.group(2) else None
            scale = int(match.group(3)) if match.group(3) else None
        else:
            data_type, length, scale = declared.lower(), None, None

        primary_key = bool(row["pk"])
        return ColumnDescriptor(
            name=row["name"],
            data_type=data_type,
            full_type=declared.lower(),
            nullable=not row["notnull"] and not primary_key,
            default=row["dflt_value"],
            primary_key=primary_key,
            # INTEGER PRIMARY KEY aliases the rowid
            auto_increment=primary_key and data_type == "integer",
            max_length=length,
            numeric_scale=scale,
        )


# ═══════════════════════════════════════════════════════════════════════════
# TABLE READER
# ═══════════════════════════════════════════════════════════════════════════


class TableReader:
    """Turns table columns into EntityFields."""

    def __init__(self, introspector: SchemaIntrospector, mapper: TypeMapper | None = None):
        self.introspector = introspector
        self.mapper = mapper or TypeMapper()

    def read_fields(self, table: str) -> tuple[str, list[EntityField]]:
        """
        Read one table as generator fields.

        Returns:
            ``(table comment, fields)``
        """
        info = self.introspector.get_table_info(table)
        return info.comment, [self.convert_column(column) for column in info.columns]

    def convert_column(self, column: ColumnDescriptor) -> EntityField:
        type_name = self.mapper.map_type(column)
        description = column.comment or pascal_case(column.name)
        return EntityField(
            name=pascal_case(column.name),
            type=type_name,
            storage=self.mapper.storage_annotation(column),
            comment=f"{description} {self.mapper.type_comment(type_name)}",
            required=not column.nullable and not column.primary_key,
        )

    def list_tables(self) -> list[str]:
        return self.introspector.list_tables()
