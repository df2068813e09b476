"""
Crudforge Migration - Paired up/down SQL migrations

Every forward migration gets a rollback that undoes it:

    create -> migration_create + rollback_drop
    alter  -> migration_alter  + rollback_alter
    drop   -> migration_drop   + rollback_create

Both files share a timestamp prefix:
``<migrations>/<driver>/<YYYYmmddHHMMSS>_<name>.up.sql`` and ``.down.sql``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from crudforge.component import ComponentGenerator
from crudforge.errors import SpecError
from crudforge.naming import pluralize, snake_case
from crudforge.spec import MigrationAction, MigrationRequest
from crudforge.writer import GenerationResult

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

TEMPLATES: dict[MigrationAction, tuple[str, str]] = {
    MigrationAction.CREATE: ("migration_create.sql", "rollback_drop.sql"),
    MigrationAction.ALTER: ("migration_alter.sql", "rollback_alter.sql"),
    MigrationAction.DROP: ("migration_drop.sql", "rollback_create.sql"),
}

_NAME_PREFIXES = ("create_", "add_", "drop_", "alter_", "modify_")
_NAME_SUFFIXES = ("_table", "_column", "_index", "_constraint")
_SINGULAR_S_ENDINGS = ("ss", "us", "is")


def infer_table_name(migration_name: str) -> str:
    """
    Table name from a migration name.

    ``create_product_category_table`` -> ``product_categories``;
    ``add_invoices_column`` -> ``invoices`` (already plural names are kept);
    ``create_bus_table`` -> ``buses`` (``ss``, ``us`` and ``is`` endings are singular).
    """
    name = snake_case(migration_name)
    for prefix in _NAME_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    for suffix in _NAME_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    if name.endswith("s") and not name.endswith(_SINGULAR_S_ENDINGS):
        return name
    return pluralize(name)


class MigrationGenerator(ComponentGenerator):
    """Generates migration/rollback SQL pairs."""

    def generate(self, request: MigrationRequest) -> GenerationResult:
        try:
            action = MigrationAction(request.action)
        except ValueError as e:
            raise SpecError(f"unsupported migration action: {request.action}", entity=request.name) from e

        start = len(self.writer.result.files)
        forward, rollback = TEMPLATES[action]
        table = request.table or infer_table_name(request.name)
        fields = self.parser.parse(request.fields)

        now = self.clock()
        stamp = now.strftime(TIMESTAMP_FORMAT)
        name = snake_case(request.name)
        context = {
            "migration_name": name,
            "table_name": table,
            "action": action.value,
            "fields": fields,
            "database_type": self.config.database_type,
            "with_timestamps": request.with_timestamps,
            "with_soft_delete": request.with_soft_delete,
            "timestamp": stamp,
            "created_at": now.strftime("%Y-%m-%d %H:%M:%S"),
            "year": now.year,
        }

        base = Path(self.config.migration_dir) / f"{stamp}_{name}"
        self._create(base.with_name(base.name + ".up.sql"), forward, context, table)
        self._create(base.with_name(base.name + ".down.sql"), rollback, context, table)

        logger.info("Generated %s migration %s_%s for table %s", action.value, stamp, name, table)
        return self._since(start)
