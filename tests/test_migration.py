"""Tests for paired up/down migrations."""

import pytest
from pydantic import ValidationError

from crudforge.config import ProjectConfig
from crudforge.errors import FileExistsConflict
from crudforge.migration import MigrationGenerator, infer_table_name
from crudforge.naming import NamingSet
from crudforge.spec import MigrationAction, MigrationRequest

STAMP = "20240102030405"


def read(root, path):
    return (root / path).read_text(encoding="utf-8")


@pytest.mark.parametrize("name, table", [
    ("create_products_table", "products"),
    ("create_product_category_table", "product_categories"),
    ("add_invoices_column", "invoices"),
    ("drop_user", "users"),
    ("create_box_table", "boxes"),
    ("create_bus_table", "buses"),
    ("add_address_column", "addresses"),
    ("CreateOrderItemTable", "order_items"),
])
def test_infer_table_name(name, table):
    assert infer_table_name(name) == table


@pytest.mark.parametrize("entity", ["Bus", "Address", "Status", "Invoice", "Category", "OrderItem"])
def test_inferred_table_matches_model_table(entity):
    naming = NamingSet.derive(entity)
    assert infer_table_name(f"create_{naming.snake}_table") == naming.table


class TestMigrationGenerator:
    def test_create(self, project, engine, clock):
        result = MigrationGenerator(project, engine=engine, clock=clock).generate(
            MigrationRequest(name="create_invoices_table", fields="number:string!,amount:float64!,paid:bool")
        )

        up = f"migrations/mysql/{STAMP}_create_invoices_table.up.sql"
        down = f"migrations/mysql/{STAMP}_create_invoices_table.down.sql"
        assert result.paths == [up, down]

        forward = read(project, up)
        assert "-- Created at: 2024-01-02 03:04:05" in forward
        assert "CREATE TABLE IF NOT EXISTS invoices (" in forward
        assert "    number VARCHAR(255) NOT NULL," in forward
        assert "    amount DECIMAL(10,2) NOT NULL," in forward
        assert "    paid TINYINT(1) DEFAULT FALSE," in forward
        assert "ENGINE=InnoDB" in forward
        assert "DROP TABLE IF EXISTS invoices;" in read(project, down)

    def test_alter(self, project, engine, clock):
        result = MigrationGenerator(project, engine=engine, clock=clock).generate(MigrationRequest(
            name="add_note_to_invoices",
            table="invoices",
            action=MigrationAction.ALTER,
            fields="note:text,due:date",
        ))
        up, down = (read(project, path) for path in result.paths)

        assert "ALTER TABLE invoices ADD COLUMN note VARCHAR(255);" in up
        assert "ALTER TABLE invoices ADD COLUMN due DATE;" in up
        assert down.index("DROP COLUMN due;") < down.index("DROP COLUMN note;")

    def test_drop_rolls_back_to_create(self, project, engine, clock):
        result = MigrationGenerator(project, engine=engine, clock=clock).generate(
            MigrationRequest(name="drop_tags_table", action="drop", fields="label:string!")
        )
        up, down = (read(project, path) for path in result.paths)

        assert "DROP TABLE IF EXISTS tags;" in up
        assert "CREATE TABLE IF NOT EXISTS tags (" in down
        assert "label VARCHAR(255) NOT NULL" in down

    @pytest.mark.parametrize("driver, directory, primary_key", [
        ("sqlite", "sqlite", "id INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("postgresql", "postgres", "id BIGSERIAL PRIMARY KEY"),
    ])
    def test_dialects(self, project, engine, clock, driver, directory, primary_key):
        config = ProjectConfig.model_validate({"database": {"driver": driver}})
        result = MigrationGenerator(project, config=config, engine=engine, clock=clock).generate(
            MigrationRequest(name="create_tags_table", fields="label:string!")
        )

        assert result.paths[0] == f"migrations/{directory}/{STAMP}_create_tags_table.up.sql"
        assert primary_key in read(project, result.paths[0])

    def test_system_columns_follow_flags(self, project, engine, clock):
        generator = MigrationGenerator(project, engine=engine, clock=clock)
        plain = generator.generate(MigrationRequest(name="create_tags_table", fields="label:string!"))
        soft = generator.generate(MigrationRequest(
            name="create_notes_table", fields="body:text", with_timestamps=False, with_soft_delete=True,
        ))

        tags = read(project, plain.paths[0])
        assert "    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP," in tags
        assert "deleted_at" not in tags

        notes = read(project, soft.paths[0])
        assert "created_at" not in notes
        assert "    deleted_at DATETIME NULL,\n    INDEX idx_notes_deleted_at (deleted_at),\n    PRIMARY KEY (id)\n" in notes

    @pytest.mark.parametrize("driver", ["sqlite", "postgresql"])
    def test_column_list_without_timestamps(self, project, engine, clock, driver):
        config = ProjectConfig.model_validate({"database": {"driver": driver}})
        result = MigrationGenerator(project, config=config, engine=engine, clock=clock).generate(
            MigrationRequest(name="create_tags_table", fields="label:string!", with_timestamps=False)
        )
        up = read(project, result.paths[0])

        assert "    label VARCHAR(255) NOT NULL\n);" in up
        assert "deleted_at" not in up

    def test_same_timestamp_twice(self, project, engine, clock):
        generator = MigrationGenerator(project, engine=engine, clock=clock)
        generator.generate(MigrationRequest(name="create_tags_table"))

        with pytest.raises(FileExistsConflict) as exc:
            generator.generate(MigrationRequest(name="create_tags_table"))
        assert exc.value.entity == "tags"

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            MigrationRequest(name="rename_tags", action="rename")
