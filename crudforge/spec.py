"""
Crudforge Spec Models - Pydantic models for fields, columns and requests

Defines what a generator is asked to do and the field metadata it works on.
Pydantic handles validation, defaults, and serialization.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from crudforge.naming import snake_case


# ═══════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════


class MigrationAction(str, Enum):
    CREATE = "create"
    ALTER = "alter"
    DROP = "drop"


class DatabaseDriver(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"


class FrontendFramework(str, Enum):
    ANTD = "antd"


class ModuleType(str, Enum):
    """Frontend module placement"""
    ADMIN = "admin"    # Admin console pages
    PUBLIC = "public"  # End-user pages


# ═══════════════════════════════════════════════════════════════════════════
# FIELD MODELS
# ═══════════════════════════════════════════════════════════════════════════


class EntityField(BaseModel):
    """One generated data attribute.

    ``serialized_name`` is always ``snake_case(name)``, whichever way the
    field was produced (DSL, database table or an existing model).
    """

    name: str
    type: str
    serialized_name: str = Field("", alias="serializedName")
    storage: str = ""
    comment: str = ""
    required: bool = False

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def derive_serialized_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and "name" in data:
            expected = snake_case(data["name"])
            given = data.get("serialized_name") or data.get("serializedName")
            if given and given != expected:
                raise ValueError(
                    f"serialized name {given!r} does not match {expected!r} for field {data['name']!r}"
                )
            data = {k: v for k, v in data.items() if k != "serializedName"}
            data["serialized_name"] = expected
        return data


class ColumnDescriptor(BaseModel):
    """Raw catalog facts for one table column"""

    name: str
    data_type: str
    full_type: str = ""
    nullable: bool = False
    default: str | None = None
    primary_key: bool = False
    auto_increment: bool = False
    comment: str = ""
    max_length: int | None = None
    numeric_scale: int | None = None


class TableInfo(BaseModel):
    """Table comment plus columns in catalog order"""

    name: str
    comment: str = ""
    columns: list[ColumnDescriptor] = []


# ═══════════════════════════════════════════════════════════════════════════
# GENERATION REQUESTS
# ═══════════════════════════════════════════════════════════════════════════

_REQUEST_CONFIG = {"populate_by_name": True, "frozen": True}


class ModelRequest(BaseModel):
    name: str
    fields: str = ""
    with_timestamps: bool = Field(True, alias="withTimestamps")
    with_soft_delete: bool = Field(False, alias="withSoftDelete")

    model_config = _REQUEST_CONFIG


class TableModelRequest(BaseModel):
    table: str
    model: str | None = None
    with_timestamps: bool = Field(True, alias="withTimestamps")
    with_soft_delete: bool = Field(False, alias="withSoftDelete")

    model_config = _REQUEST_CONFIG


class RepositoryRequest(BaseModel):
    name: str
    model: str | None = None

    model_config = _REQUEST_CONFIG


class ServiceRequest(BaseModel):
    name: str
    model: str | None = None
    fields: str = ""
    with_cache: bool = Field(False, alias="withCache")

    model_config = _REQUEST_CONFIG


class HandlerRequest(BaseModel):
    model: str
    with_auth: bool = Field(False, alias="withAuth")
    with_validation: bool = Field(True, alias="withValidation")

    model_config = _REQUEST_CONFIG


class MigrationRequest(BaseModel):
    name: str
    table: str | None = None
    action: MigrationAction = MigrationAction.CREATE
    fields: str = ""
    with_timestamps: bool = Field(True, alias="withTimestamps")
    with_soft_delete: bool = Field(False, alias="withSoftDelete")

    model_config = _REQUEST_CONFIG


class FrontendRequest(BaseModel):
    """Frontend scaffold configuration"""

    model: str
    output_dir: Path = Field(..., alias="outputDir")
    fields: str = ""
    framework: FrontendFramework = FrontendFramework.ANTD
    module_type: ModuleType = Field(ModuleType.ADMIN, alias="moduleType")
    module_name: str | None = Field(None, alias="moduleName")
    api_prefix: str = Field("/api/v1", alias="apiPrefix")
    with_auth: bool = Field(False, alias="withAuth")
    with_search: bool = Field(True, alias="withSearch")
    with_export: bool = Field(False, alias="withExport")
    with_batch: bool = Field(False, alias="withBatch")
    smart_search: bool = Field(True, alias="smartSearch")
    labels_zh: dict[str, str] = Field({}, alias="labelsZh")
    labels_en: dict[str, str] = Field({}, alias="labelsEn")

    model_config = _REQUEST_CONFIG


class ModuleRequest(BaseModel):
    """One logical entity, generated through every layer"""

    name: str
    fields: str = ""
    with_auth: bool = Field(False, alias="withAuth")
    with_cache: bool = Field(False, alias="withCache")
    with_timestamps: bool = Field(True, alias="withTimestamps")
    with_soft_delete: bool = Field(False, alias="withSoftDelete")
    frontend: FrontendRequest | None = None

    model_config = _REQUEST_CONFIG

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ModuleRequest":
        """Parse YAML content into a ModuleRequest"""
        data = yaml.safe_load(yaml_content) or {}
        frontend = data.get("frontend")
        if isinstance(frontend, dict):
            frontend.setdefault("model", data.get("name"))
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "ModuleRequest":
        """Load a module request from a YAML file"""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))
