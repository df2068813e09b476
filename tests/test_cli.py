"""Tests for the crudforge command line."""

import pytest
from typer.testing import CliRunner

from crudforge import __version__
from crudforge.cli import app

runner = CliRunner()


def invoke(root, *args):
    return runner.invoke(app, ["--root", str(root), *args])


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"crudforge {__version__}" in result.output

    def test_model(self, project):
        result = invoke(project, "model", "Product", "--fields", "name:string!,price:float64!")

        assert result.exit_code == 0, result.output
        assert "✓" in result.output
        assert (project / "app/models/product.py").exists()
        assert (project / "app/models/product.fields.yaml").exists()

    def test_module(self, project):
        result = invoke(project, "module", "Product", "--fields", "name:string!", "--auth", "--cache")

        assert result.exit_code == 0, result.output
        assert "Module Product generated" in result.output
        assert (project / "app/server/auth.py").exists()
        assert list((project / "migrations/mysql").glob("*_create_products_table.up.sql"))

    def test_module_from_spec_file(self, project, tmp_path):
        spec = tmp_path / "tag.yaml"
        spec.write_text("name: Tag\nfields: \"label:string!\"\nwithSoftDelete: true\n", encoding="utf-8")

        result = invoke(project, "module", "--spec", str(spec))

        assert result.exit_code == 0, result.output
        assert "SoftDeleteMixin" in (project / "app/models/tag.py").read_text(encoding="utf-8")

    def test_module_dry_run(self, project):
        result = invoke(project, "module", "Product", "--fields", "name:string!", "--dry-run")

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert list(project.iterdir()) == []

    def test_module_without_name(self, project):
        result = invoke(project, "module")
        assert result.exit_code == 1
        assert "give an entity name" in result.output

    def test_layers_one_by_one(self, project):
        for args in (
            ["model", "Tag", "--fields", "label:string!"],
            ["repository", "Tag"],
            ["service", "Tag"],
            ["handler", "Tag", "--no-validation"],
            ["migration", "create_tags_table", "--fields", "label:string!"],
        ):
            result = invoke(project, *args)
            assert result.exit_code == 0, result.output

        assert "label: str" in (project / "app/services/tag.py").read_text(encoding="utf-8")

    def test_migration_action_is_validated(self, project):
        result = invoke(project, "migration", "rename_tags", "--action", "rename")
        assert result.exit_code == 2

    def test_frontend(self, project, frontend_project):
        result = invoke(
            project, "frontend", "Product",
            "--output-dir", str(frontend_project),
            "--fields", "name:string!",
            "--module-type", "public",
        )
        assert result.exit_code == 0, result.output
        assert (frontend_project / "src/pages/product/index.tsx").exists()


class TestErrors:
    def test_conflict_exits_with_error(self, project):
        invoke(project, "model", "Product", "--fields", "name:string!")
        result = invoke(project, "model", "Product", "--fields", "name:string!")

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "file already exists" in result.output

    def test_bad_field_definition(self, project):
        result = invoke(project, "model", "Product", "--fields", "name")
        assert result.exit_code == 1
        assert "invalid field format" in result.output

    def test_failed_module_lists_written_files(self, project):
        handler = project / "app/handlers/product.py"
        handler.parent.mkdir(parents=True)
        handler.write_text("# hand written\n", encoding="utf-8")

        result = invoke(project, "module", "Product", "--fields", "name:string!")

        assert result.exit_code == 1
        assert "handler step failed" in result.output
        assert "app/models/product.py" in result.output

    def test_table_needs_a_name(self, project):
        result = invoke(project, "table")
        assert result.exit_code == 1
        assert "--all" in result.output


class TestDatabaseCommands:
    @pytest.fixture()
    def configured(self, project, sqlite_path):
        (project / "configs").mkdir()
        (project / "configs/config.yaml").write_text(
            f"database:\n  driver: sqlite\n  database: {sqlite_path}\n",
            encoding="utf-8",
        )
        return project

    def test_tables(self, configured):
        result = invoke(configured, "tables")

        assert result.exit_code == 0, result.output
        assert "products" in result.output
        assert "tb_order_items" in result.output

    def test_table(self, configured):
        result = invoke(configured, "table", "products", "--model", "Item")

        assert result.exit_code == 0, result.output
        assert '__tablename__ = "products"' in (configured / "app/models/item.py").read_text(encoding="utf-8")

    def test_all_tables(self, configured):
        result = invoke(configured, "table", "--all")

        assert result.exit_code == 0, result.output
        assert (configured / "app/models/product.py").exists()
        assert (configured / "app/models/order_item.py").exists()
