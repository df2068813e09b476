"""
Crudforge Errors - Exception taxonomy for the generation pipeline

Every error aborts at the generator boundary; nothing here is retried.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class GeneratorError(Exception):
    """Base error carrying the entity and file path it concerns."""

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        path: str | Path | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        parts = [self.message]
        if self.entity:
            parts.append(f"entity={self.entity}")
        if self.path:
            parts.append(f"path={self.path}")
        if self.__cause__ is not None:
            parts.append(f"cause={self.__cause__}")
        return " | ".join(parts)


# ═══════════════════════════════════════════════════════════════════════════
# SPEC ERRORS
# ═══════════════════════════════════════════════════════════════════════════


class SpecError(GeneratorError):
    """The generation request itself is malformed."""


class FieldParseError(SpecError):
    """A field DSL token could not be parsed."""

    def __init__(self, token: str, reason: str = "expected format: name:type") -> None:
        super().__init__(f"invalid field format: {token!r}, {reason}")
        self.token = token


class ReflectionError(SpecError):
    """Field metadata could not be recovered from an existing model."""


# ═══════════════════════════════════════════════════════════════════════════
# RUNTIME ERRORS
# ═══════════════════════════════════════════════════════════════════════════


class IntrospectionError(GeneratorError):
    """Connecting to or querying the database catalog failed."""


class TemplateRenderError(GeneratorError):
    """Unknown template name or a template/context mismatch."""

    def __init__(self, template: str, message: str) -> None:
        super().__init__(f"{message}: {template}")
        self.template = template


class WriteConflictError(GeneratorError):
    """An output file cannot be written without clobbering existing content."""


class FileExistsConflict(WriteConflictError):
    def __init__(self, path: str | Path) -> None:
        super().__init__("file already exists", path=path)


class AnchorNotFoundError(WriteConflictError):
    def __init__(self, path: str | Path, marker: str) -> None:
        super().__init__(f"insertion marker {marker!r} not found", path=path)
        self.marker = marker


class EntryExistsError(WriteConflictError):
    def __init__(self, path: str | Path, fragment: str) -> None:
        super().__init__(f"entry {fragment!r} already registered", path=path)
        self.fragment = fragment


class ModuleGenerationError(GeneratorError):
    """A module run stopped part-way; ``written`` lists files left on disk."""

    def __init__(self, step: str, cause: GeneratorError, written: Sequence[str]) -> None:
        super().__init__(f"{step} step failed: {cause.message}", entity=cause.entity, path=cause.path)
        self.step = step
        self.cause = cause
        self.written = list(written)
