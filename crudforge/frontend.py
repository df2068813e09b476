"""
Crudforge Frontend - Ant Design Pro scaffold for one entity

Writes into an existing Umi/Ant Design Pro project:

    src/pages/admin/<lower>/index.tsx   (admin module; public: src/pages/<lower>/)
    src/services/<lower>/api.ts
    src/services/<lower>/typings.d.ts
    src/locales/<locale>/<lower>.ts     for zh-CN and en-US

and registers the page in ``config/routes.ts`` and the locale bundles in
``src/locales/<locale>.ts``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from crudforge.component import ComponentGenerator
from crudforge.errors import SpecError
from crudforge.fields import base_type, form_type, ts_type
from crudforge.naming import NamingSet, humanize
from crudforge.spec import EntityField, FrontendFramework, FrontendRequest, ModuleType
from crudforge.writer import GenerationResult, Splice, marker

logger = logging.getLogger(__name__)

LOCALES = ("zh-CN", "en-US")

# Fields the backend base model supplies
_SYSTEM_FIELDS = (
    # serialized name, type, table, labels
    ("id", "int", True, {"zh-CN": "ID", "en-US": "ID"}),
    ("created_at", "datetime", True, {"zh-CN": "创建时间", "en-US": "Created At"}),
    ("updated_at", "datetime", False, {"zh-CN": "更新时间", "en-US": "Updated At"}),
)

_ALWAYS_REQUIRED = frozenset({"name", "title", "email"})

_UI_TEXT: dict[str, dict[str, str]] = {
    "zh-CN": {
        "title": "{label}管理",
        "create": "新建",
        "edit": "编辑",
        "delete": "删除",
        "delete_confirm": "确定要删除吗？",
        "deleted": "删除成功",
        "saved": "保存成功",
        "actions": "操作",
        "export": "导出",
        "batch_delete": "批量删除",
    },
    "en-US": {
        "title": "{label} Management",
        "create": "New",
        "edit": "Edit",
        "delete": "Delete",
        "delete_confirm": "Are you sure you want to delete this record?",
        "deleted": "Deleted",
        "saved": "Saved",
        "actions": "Actions",
        "export": "Export",
        "batch_delete": "Batch Delete",
    },
}


@dataclass
class FrontendField:
    """A field enriched with UI metadata."""

    name: str
    serialized_name: str
    type: str
    ts_type: str
    form_type: str
    table_show: bool = True
    search_show: bool = False
    form_show: bool = True
    required: bool = False
    labels: dict[str, str] = field(default_factory=dict)


class FrontendGenerator(ComponentGenerator):
    """Generates Ant Design Pro pages, API clients and locales."""

    def generate(self, request: FrontendRequest) -> GenerationResult:
        if request.framework is not FrontendFramework.ANTD:
            raise SpecError(f"unsupported frontend framework: {request.framework}", entity=request.model)

        start = len(self.writer.result.files)
        output_dir = self.validate_output_dir(request.output_dir)
        naming = NamingSet.derive(request.model)

        fields = self.collect_fields(request)
        context = self.frontend_context(naming, request, fields)
        lower = naming.lower

        if request.module_type is ModuleType.ADMIN:
            page_dir = output_dir / "src" / "pages" / "admin" / lower
        else:
            page_dir = output_dir / "src" / "pages" / lower
        service_dir = output_dir / "src" / "services" / lower

        self._create(page_dir / "index.tsx", "antd_page.tsx", context, naming.name)
        self._create(service_dir / "api.ts", "antd_service.ts", context, naming.name)
        self._create(service_dir / "typings.d.ts", "antd_typings.d.ts", context, naming.name)
        for locale in LOCALES:
            locale_context = {**context, "locale": locale, "labels": context["ui_labels"][locale]}
            self._create(
                output_dir / "src" / "locales" / locale / f"{lower}.ts",
                "antd_locale.ts",
                locale_context,
                naming.name,
            )

        self._register_route(output_dir, context)
        for locale in LOCALES:
            self._register_locale(output_dir, locale, naming)

        logger.info("Generated %s frontend for %s in %s", request.module_type.value, naming.name, output_dir)
        return self._since(start)

    def validate_output_dir(self, output_dir: Path) -> Path:
        """The target must be a frontend project: ``package.json`` plus ``src/``."""
        full = self.writer.resolve(output_dir)
        if not full.is_dir():
            raise SpecError("frontend output directory does not exist", path=full)
        if not (full / "package.json").is_file():
            raise SpecError("frontend output directory has no package.json", path=full)
        if not (full / "src").is_dir():
            raise SpecError("frontend output directory has no src directory", path=full)
        return full

    # ═══════════════════════════════════════════════════════════════════════
    # FIELDS
    # ═══════════════════════════════════════════════════════════════════════

    def collect_fields(self, request: FrontendRequest) -> list[FrontendField]:
        entity_fields = self.reflector.fields_or_fallback(request.model, request.fields)

        result = [self._system_field(*_SYSTEM_FIELDS[0])]
        result.extend(self.to_frontend_field(f, request) for f in entity_fields)
        result.extend(self._system_field(*spec) for spec in _SYSTEM_FIELDS[1:])
        return result

    def to_frontend_field(self, entity_field: EntityField, request: FrontendRequest) -> FrontendField:
        key = entity_field.serialized_name
        if request.smart_search:
            searchable = base_type(entity_field.type) == "str"
        else:
            searchable = True
        return FrontendField(
            name=entity_field.name,
            serialized_name=key,
            type=entity_field.type,
            ts_type=ts_type(entity_field.type),
            form_type=form_type(entity_field.type, entity_field.name),
            table_show=True,
            search_show=searchable,
            form_show=True,
            required=entity_field.required or key in _ALWAYS_REQUIRED,
            labels={
                "zh-CN": request.labels_zh.get(key, humanize(key)),
                "en-US": request.labels_en.get(key, humanize(key)),
            },
        )

    @staticmethod
    def _system_field(key: str, type_name: str, table_show: bool, labels: dict[str, str]) -> FrontendField:
        return FrontendField(
            name=key,
            serialized_name=key,
            type=type_name,
            ts_type=ts_type(type_name),
            form_type="hidden" if key == "id" else "datetime",
            table_show=table_show,
            search_show=False,
            form_show=False,
            labels=dict(labels),
        )

    # ═══════════════════════════════════════════════════════════════════════
    # CONTEXT & REGISTRIES
    # ═══════════════════════════════════════════════════════════════════════

    def frontend_context(
        self,
        naming: NamingSet,
        request: FrontendRequest,
        fields: list[FrontendField],
    ) -> dict[str, Any]:
        is_admin = request.module_type is ModuleType.ADMIN
        api_prefix = request.api_prefix
        if api_prefix == "/api/v1" and is_admin:
            api_prefix = "/api/v1/admin"

        title_zh = request.labels_zh.get("title", naming.name)
        title_en = request.labels_en.get("title", humanize(naming.name))
        ui_labels = {
            "zh-CN": {k: v.format(label=title_zh) for k, v in _UI_TEXT["zh-CN"].items()},
            "en-US": {k: v.format(label=title_en) for k, v in _UI_TEXT["en-US"].items()},
        }

        context = self.base_context(naming)
        context.update({
            "fields": fields,
            "module_name": request.module_name or naming.lower,
            "module_type": request.module_type.value,
            "is_admin": is_admin,
            "is_public": not is_admin,
            "api_prefix": api_prefix,
            "route_path": f"/admin/{naming.lower}" if is_admin else f"/{naming.lower}",
            "component": f"./admin/{naming.lower}" if is_admin else f"./{naming.lower}",
            "with_auth": request.with_auth,
            "with_search": request.with_search,
            "with_export": request.with_export,
            "with_batch": request.with_batch,
            "ui_labels": ui_labels,
        })
        return context

    def _register_route(self, output_dir: Path, context: dict[str, Any]) -> None:
        component = f"component: '{context['component']}'"
        lines = [
            "  {",
            f"    path: '{context['route_path']}',",
            f"    name: '{context['module_name']}',",
        ]
        if context["with_auth"]:
            lines.append("    access: 'canAdmin',")
        lines.extend([f"    {component},", "  },"])
        entry = "\n".join(lines)
        self.writer.register(
            output_dir / "config" / "routes.ts",
            [Splice(marker("routes", "//"), entry)],
            fragment=component,
            seed=self.render("antd_routes.ts", context),
            template="antd_routes.ts",
        )

    def _register_locale(self, output_dir: Path, locale: str, naming: NamingSet) -> None:
        source = f"'./{locale}/{naming.lower}'"
        self.writer.register(
            output_dir / "src" / "locales" / f"{locale}.ts",
            [
                Splice(marker("imports", "//"), f"import {naming.camel} from {source};"),
                Splice(marker("modules", "//"), f"  ...{naming.camel},"),
            ],
            fragment=source,
            seed=self.render("antd_locale_index.ts", {}),
            template="antd_locale_index.ts",
        )
