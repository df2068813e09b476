"""Tests for the create/ensure/register write disciplines."""

import pytest

from crudforge.errors import AnchorNotFoundError, EntryExistsError, FileExistsConflict
from crudforge.writer import FileWriter, Splice, marker

SEED = '__all__ = [\n    # crudforge:items\n]\n'


def item(name):
    return [Splice(marker("items"), f'    "{name}",')]


class TestCreate:
    def test_create_writes_and_records(self, project):
        writer = FileWriter(project)
        generated = writer.create("app/models/tag.py", "x = 1\n", "model.py")

        assert (project / "app/models/tag.py").read_text(encoding="utf-8") == "x = 1\n"
        assert generated.path == "app/models/tag.py"
        assert generated.action == "create"
        assert writer.written == ["app/models/tag.py"]

    def test_existing_file_is_a_conflict(self, project):
        writer = FileWriter(project)
        writer.create("tag.py", "original\n")

        with pytest.raises(FileExistsConflict) as exc:
            writer.create("tag.py", "replacement\n")

        assert exc.value.path.endswith("tag.py")
        assert (project / "tag.py").read_text(encoding="utf-8") == "original\n"
        assert len(writer.result.files) == 1

    def test_ensure_keeps_existing(self, project):
        (project / "base.py").write_text("edited\n", encoding="utf-8")
        writer = FileWriter(project)

        assert writer.ensure("base.py", "fresh\n") is None
        assert (project / "base.py").read_text(encoding="utf-8") == "edited\n"
        assert writer.ensure("other.py", "fresh\n").action == "ensure"


class TestRegister:
    def test_missing_registry_is_seeded(self, project):
        writer = FileWriter(project)
        generated = writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)

        assert generated.action == "create"
        assert (project / "registry.py").read_text(encoding="utf-8") == (
            '__all__ = [\n    # crudforge:items\n    "Tag",\n]\n'
        )

    def test_entry_goes_right_after_the_marker(self, project):
        writer = FileWriter(project)
        writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)
        generated = writer.register("registry.py", item("Post"), fragment='"Post"', seed=SEED)

        assert generated.action == "register"
        assert (project / "registry.py").read_text(encoding="utf-8") == (
            '__all__ = [\n    # crudforge:items\n    "Post",\n    "Tag",\n]\n'
        )

    def test_duplicate_entry(self, project):
        writer = FileWriter(project)
        writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)

        with pytest.raises(EntryExistsError):
            writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)

    def test_missing_marker_leaves_file_untouched(self, project):
        (project / "registry.py").write_text("__all__ = []\n", encoding="utf-8")
        writer = FileWriter(project)

        with pytest.raises(AnchorNotFoundError) as exc:
            writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)

        assert exc.value.marker == "# crudforge:items"
        assert (project / "registry.py").read_text(encoding="utf-8") == "__all__ = []\n"

    def test_several_markers_in_one_file(self, project):
        seed = "# crudforge:imports\n\nroutes = [\n    // crudforge:routes\n]\n"
        writer = FileWriter(project)
        writer.register(
            "routes.ts",
            [
                Splice(marker("imports"), "import tag"),
                Splice(marker("routes", "//"), "    tag,"),
            ],
            fragment="import tag",
            seed=seed,
        )
        content = (project / "routes.ts").read_text(encoding="utf-8")
        assert content == "# crudforge:imports\nimport tag\n\nroutes = [\n    // crudforge:routes\n    tag,\n]\n"


class TestDryRun:
    def test_nothing_touches_disk(self, project):
        writer = FileWriter(project, dry_run=True)
        writer.create("app/models/tag.py", "x = 1\n")
        writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)

        assert not (project / "app").exists()
        assert not (project / "registry.py").exists()
        assert writer.written == ["app/models/tag.py", "registry.py"]

    def test_planned_files_are_visible(self, project):
        writer = FileWriter(project, dry_run=True)
        writer.create("tag.py", "x = 1\n")

        assert writer.exists("tag.py")
        assert writer.read_text("tag.py") == "x = 1\n"
        with pytest.raises(FileExistsConflict):
            writer.create("tag.py", "x = 2\n")

    def test_planned_registry_accumulates(self, project):
        writer = FileWriter(project, dry_run=True)
        writer.register("registry.py", item("Tag"), fragment='"Tag"', seed=SEED)
        writer.register("registry.py", item("Post"), fragment='"Post"', seed=SEED)

        assert '"Post",\n    "Tag",' in writer.read_text("registry.py")


def test_marker_text():
    assert marker("imports") == "# crudforge:imports"
    assert marker("routes", "//") == "// crudforge:routes"
