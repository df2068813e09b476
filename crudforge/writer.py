"""
Crudforge Writer - Output file disciplines and the generated-file manifest

Three ways to put a file on disk:

- ``create``: create-only, an existing file is a conflict
- ``ensure``: shared scaffolding, written once and then left alone
- ``register``: append an entry into a shared registry file right after a
  ``crudforge:<slot>`` marker comment

In dry-run mode nothing touches disk; planned contents are kept in memory so
later steps of the same run see what earlier steps would have written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from crudforge.errors import AnchorNotFoundError, EntryExistsError, FileExistsConflict

logger = logging.getLogger(__name__)

MARKER_PREFIX = "crudforge:"


def marker(slot: str, comment: str = "#") -> str:
    """Marker line text: ``marker("imports")`` -> ``# crudforge:imports``."""
    return f"{comment} {MARKER_PREFIX}{slot}"


# ═══════════════════════════════════════════════════════════════════════════
# GENERATED FILE TRACKING
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class GeneratedFile:
    """Represents a generated file."""

    path: str  # Relative path from project root
    content: str
    template: str | None = None  # Source template name
    action: str = "create"  # create | ensure | register


@dataclass
class GenerationResult:
    """Manifest of one generation run."""

    files: list[GeneratedFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def extend(self, other: "GenerationResult") -> None:
        self.files.extend(other.files)
        self.errors.extend(other.errors)


@dataclass(frozen=True)
class Splice:
    """Text inserted on the line right after ``marker``."""

    marker: str
    text: str


# ═══════════════════════════════════════════════════════════════════════════
# FILE WRITER
# ═══════════════════════════════════════════════════════════════════════════


class FileWriter:
    """Writes generated files under ``root`` and records them."""

    def __init__(self, root: str | Path, dry_run: bool = False):
        self.root = Path(root)
        self.dry_run = dry_run
        self.result = GenerationResult()
        self._planned: dict[Path, str] = {}

    def resolve(self, path: str | Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root / path

    def relative(self, path: str | Path) -> str:
        full = self.resolve(path)
        try:
            return full.relative_to(self.root).as_posix()
        except ValueError:
            return full.as_posix()

    def exists(self, path: str | Path) -> bool:
        full = self.resolve(path)
        return full in self._planned or full.exists()

    def read_text(self, path: str | Path) -> str:
        full = self.resolve(path)
        if full in self._planned:
            return self._planned[full]
        return full.read_text(encoding="utf-8")

    @property
    def written(self) -> list[str]:
        return self.result.paths

    # ═══════════════════════════════════════════════════════════════════════
    # WRITE DISCIPLINES
    # ═══════════════════════════════════════════════════════════════════════

    def create(self, path: str | Path, content: str, template: str | None = None) -> GeneratedFile:
        """
        Write a new file.

        Raises:
            FileExistsConflict: The path already exists; it is left untouched
        """
        if self.exists(path):
            raise FileExistsConflict(self.resolve(path))
        return self._store(path, content, template, "create")

    def ensure(self, path: str | Path, content: str, template: str | None = None) -> GeneratedFile | None:
        """Write ``content`` only when the file is missing."""
        if self.exists(path):
            logger.debug("Keeping existing %s", self.relative(path))
            return None
        return self._store(path, content, template, "ensure")

    def register(
        self,
        path: str | Path,
        splices: Sequence[Splice],
        fragment: str,
        seed: str,
        template: str | None = None,
    ) -> GeneratedFile:
        """
        Add an entry to a shared registry file.

        Args:
            path: Registry file
            splices: Entry text per marker
            fragment: Text whose presence means the entry is already registered
            seed: Initial registry content, used when the file does not exist

        Raises:
            EntryExistsError: ``fragment`` already appears in the file
            AnchorNotFoundError: A marker is missing from the file
        """
        full = self.resolve(path)
        if not self.exists(full):
            content = self.splice(full, seed, splices)
            return self._store(full, content, template, "create")

        current = self.read_text(full)
        if fragment in current:
            raise EntryExistsError(full, fragment)
        return self._store(full, self.splice(full, current, splices), template, "register")

    @staticmethod
    def splice(path: Path, content: str, splices: Sequence[Splice]) -> str:
        lines = content.splitlines(keepends=True)
        for item in splices:
            index = next(
                (i for i, line in enumerate(lines) if line.strip() == item.marker),
                None,
            )
            if index is None:
                raise AnchorNotFoundError(path, item.marker)
            if not lines[index].endswith("\n"):
                lines[index] += "\n"
            text = item.text if item.text.endswith("\n") else item.text + "\n"
            lines.insert(index + 1, text)
        return "".join(lines)

    def _store(self, path: str | Path, content: str, template: str | None, action: str) -> GeneratedFile:
        full = self.resolve(path)
        if self.dry_run:
            self._planned[full] = content
        else:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(content, encoding="utf-8")

        generated = GeneratedFile(
            path=self.relative(full),
            content=content,
            template=template,
            action=action,
        )
        self.result.files.append(generated)
        verb = "Planned" if self.dry_run else ("Updated" if action == "register" else "Created")
        logger.info("%s %s", verb, generated.path)
        return generated
