"""
Crudforge Generator - Layer generators and the module orchestrator

Every generator turns one request into rendered files:

    Model       -> models/<snake>.py, <snake>.fields.yaml, models/__init__.py
    Repository  -> repositories/<snake>.py, repositories/interfaces.py, test
    Service     -> services/<snake>.py, test
    Handler     -> handlers/<snake>.py, server/routes.py, test
    Migration   -> see crudforge.migration
    Frontend    -> see crudforge.frontend

ModuleGenerator runs them in that order for one entity and stops at the
first failure.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from crudforge.component import ComponentGenerator, schema_fields, schema_imports
from crudforge.config import ProjectConfig, load_config
from crudforge.engine import TemplateEngine
from crudforge.errors import GeneratorError, ModuleGenerationError
from crudforge.fields import required_imports
from crudforge.frontend import FrontendGenerator
from crudforge.introspect import SchemaIntrospector, TableReader
from crudforge.migration import MigrationGenerator
from crudforge.naming import NamingSet, model_name_from_table, pascal_case, snake_case
from crudforge.reflector import dump_manifest
from crudforge.spec import (
    EntityField,
    HandlerRequest,
    MigrationAction,
    MigrationRequest,
    ModelRequest,
    ModuleRequest,
    RepositoryRequest,
    ServiceRequest,
    TableModelRequest,
)
from crudforge.writer import FileWriter, GenerationResult, Splice, marker

logger = logging.getLogger(__name__)


def _strip_suffix(name: str, suffix: str) -> str:
    name = pascal_case(name)
    if name != suffix and name.endswith(suffix):
        return name[: -len(suffix)]
    return name


# ═══════════════════════════════════════════════════════════════════════════
# MODEL
# ═══════════════════════════════════════════════════════════════════════════


class ModelGenerator(ComponentGenerator):
    """Generates SQLAlchemy models from the field DSL."""

    def generate(self, request: ModelRequest) -> GenerationResult:
        fields = self.parser.parse(request.fields)
        return self.write_model(
            request.name,
            fields,
            with_timestamps=request.with_timestamps,
            with_soft_delete=request.with_soft_delete,
        )

    def write_model(
        self,
        name: str,
        fields: list[EntityField],
        *,
        with_timestamps: bool = True,
        with_soft_delete: bool = False,
        comment: str | None = None,
        table: str | None = None,
    ) -> GenerationResult:
        """
        Write the model, its field manifest and its registry entry.

        Args:
            name: Entity name, any casing
            fields: Fields in declaration order
            comment: Class docstring; defaults to ``"<Name> model"``
            table: Table name; defaults to the pluralized snake name
        """
        start = len(self.writer.result.files)
        naming = NamingSet.derive(name)
        context = self.model_context(
            naming,
            fields,
            with_timestamps=with_timestamps,
            with_soft_delete=with_soft_delete,
            comment=comment,
            table=table,
        )
        models_dir = Path(self.layout.models_dir)

        self._create(models_dir / f"{naming.snake}.py", "model.py", context, naming.name)
        self.writer.create(
            models_dir / f"{naming.snake}.fields.yaml",
            dump_manifest(naming, fields, context["table_name"]),
        )
        self.writer.ensure(models_dir / "base.py", self.render("model_base.py", context), "model_base.py")

        import_line = f"from {context['models_module']}.{naming.snake} import {naming.name}"
        self.writer.register(
            models_dir / "__init__.py",
            [
                Splice(marker("imports"), import_line),
                Splice(marker("exports"), f'    "{naming.name}",'),
            ],
            fragment=import_line,
            seed=self.render("models_init.py", context),
            template="models_init.py",
        )

        logger.info("Generated model %s (%d fields)", naming.name, len(fields))
        return self._since(start)

    def model_context(
        self,
        naming: NamingSet,
        fields: list[EntityField],
        *,
        with_timestamps: bool,
        with_soft_delete: bool,
        comment: str | None = None,
        table: str | None = None,
    ) -> dict[str, Any]:
        bases = ["IdMixin"]
        if with_timestamps:
            bases.append("TimestampMixin")
        if with_soft_delete:
            bases.append("SoftDeleteMixin")
        bases.append("Base")

        imports = required_imports(fields)
        context = self.base_context(naming)
        context.update({
            "fields": fields,
            "imports": imports,
            "bases": bases,
            "base_imports": sorted(set(bases) | set(imports["base"])),
            "with_timestamps": with_timestamps,
            "with_soft_delete": with_soft_delete,
            "comment": comment or f"{naming.name} model",
        })
        if table:
            context["table_name"] = table
        return context


class TableModelGenerator(ModelGenerator):
    """Generates models from live database tables."""

    def __init__(self, root: str | Path, reader: TableReader | None = None, **kwargs: Any):
        super().__init__(root, **kwargs)
        self.reader = reader or TableReader(SchemaIntrospector(self.config.database.url()))

    def generate(self, request: TableModelRequest) -> GenerationResult:
        comment, fields = self.reader.read_fields(request.table)
        name = request.model or model_name_from_table(request.table)
        return self.write_model(
            name,
            fields,
            with_timestamps=request.with_timestamps,
            with_soft_delete=request.with_soft_delete,
            comment=comment or None,
            table=request.table,
        )

    def generate_all(self, with_timestamps: bool = True, with_soft_delete: bool = False) -> GenerationResult:
        """
        Generate a model for every table.

        A failing table is logged and recorded in ``errors``; the rest still run.
        Files a failing table wrote before it stopped stay in ``files``.
        """
        result = GenerationResult()
        tables = self.reader.list_tables()
        logger.info("Found %d tables", len(tables))

        for table in tables:
            request = TableModelRequest(
                table=table,
                with_timestamps=with_timestamps,
                with_soft_delete=with_soft_delete,
            )
            start = len(self.writer.result.files)
            try:
                self.generate(request)
            except GeneratorError as e:
                logger.error("Skipping table %s: %s", table, e)
                result.errors.append(f"{table}: {e}")
            result.files.extend(self._since(start).files)
        return result


# ═══════════════════════════════════════════════════════════════════════════
# REPOSITORY / SERVICE / HANDLER
# ═══════════════════════════════════════════════════════════════════════════


class RepositoryGenerator(ComponentGenerator):
    """Generates a repository and registers its Protocol."""

    def generate(self, request: RepositoryRequest) -> GenerationResult:
        start = len(self.writer.result.files)
        naming = NamingSet.derive(_strip_suffix(request.name, "Repository"))
        model = pascal_case(request.model) if request.model else naming.name

        context = self.base_context(naming)
        context.update({"model": model, "model_snake": snake_case(model)})

        repo_dir = Path(self.layout.repositories_dir)
        tests_dir = Path(self.layout.tests_dir)
        self._create(repo_dir / f"{naming.snake}.py", "repository.py", context, naming.name)
        self._create(
            tests_dir / "repositories" / f"test_{naming.snake}_repository.py",
            "repository_test.py",
            context,
            naming.name,
        )

        self.writer.register(
            repo_dir / "interfaces.py",
            [
                Splice(marker("imports"), f"from {context['models_module']}.{context['model_snake']} import {model}"),
                Splice(marker("interfaces"), self.render("repository_interface_entry.py", context, naming.name)),
            ],
            fragment=f"class {naming.name}Repository(Protocol)",
            seed=self.render("repository_interfaces.py", context, naming.name),
            template="repository_interface_entry.py",
        )

        logger.info("Generated repository %sRepository", naming.name)
        return self._since(start)


class ServiceGenerator(ComponentGenerator):
    """Generates a service with Pydantic request schemas."""

    def generate(self, request: ServiceRequest) -> GenerationResult:
        start = len(self.writer.result.files)
        naming = NamingSet.derive(_strip_suffix(request.name, "Service"))
        model = pascal_case(request.model) if request.model else naming.name

        fields = self.reflector.fields_or_fallback(model, request.fields)
        context = self.service_context(naming, model, fields, with_cache=request.with_cache)

        self._create(Path(self.layout.services_dir) / f"{naming.snake}.py", "service.py", context, naming.name)
        self._create(
            Path(self.layout.tests_dir) / "services" / f"test_{naming.snake}_service.py",
            "service_test.py",
            context,
            naming.name,
        )

        logger.info("Generated service %sService (%d fields)", naming.name, len(fields))
        return self._since(start)

    def service_context(
        self,
        naming: NamingSet,
        model: str,
        fields: list[EntityField],
        with_cache: bool = False,
    ) -> dict[str, Any]:
        schema = schema_fields(fields)
        context = self.base_context(naming)
        context.update({
            "model": model,
            "model_snake": snake_case(model),
            "fields": fields,
            "schema_fields": schema,
            "schema_imports": schema_imports(schema),
            "with_cache": with_cache,
        })
        return context


class HandlerGenerator(ComponentGenerator):
    """Generates a FastAPI router and wires it into the route table."""

    def generate(self, request: HandlerRequest) -> GenerationResult:
        start = len(self.writer.result.files)
        naming = NamingSet.derive(_strip_suffix(request.model, "Handler"))

        context = self.base_context(naming)
        context.update({
            "with_auth": request.with_auth,
            "with_validation": request.with_validation,
            "api_prefix": "/api/v1",
        })

        handlers_dir = Path(self.layout.handlers_dir)
        server_dir = Path(self.layout.server_dir)
        self._create(handlers_dir / f"{naming.snake}.py", "handler.py", context, naming.name)
        self._create(
            Path(self.layout.tests_dir) / "handlers" / f"test_{naming.snake}_handler.py",
            "handler_test.py",
            context,
            naming.name,
        )

        self.writer.ensure(server_dir / "database.py", self.render("database.py", context), "database.py")
        if request.with_auth:
            self.writer.ensure(server_dir / "auth.py", self.render("auth.py", context), "auth.py")

        import_line = f"from {context['handlers_module']}.{naming.snake} import router as {naming.snake}_router"
        self.writer.register(
            server_dir / "routes.py",
            [
                Splice(marker("imports"), import_line),
                Splice(marker("routers"), f"api_router.include_router({naming.snake}_router)"),
            ],
            fragment=import_line,
            seed=self.render("routes.py", context, naming.name),
            template="routes.py",
        )

        logger.info("Generated handler for %s", naming.name)
        return self._since(start)


# ═══════════════════════════════════════════════════════════════════════════
# MODULE ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════════════════


class ModuleGenerator:
    """
    Generates every layer of one entity.

    Order: Model -> Repository -> Service -> Handler -> Migration -> Frontend.
    There is no rollback: when a step fails, files from earlier steps stay on
    disk and are listed on the raised ModuleGenerationError. Use ``dry_run``
    to see the complete plan first.
    """

    def __init__(
        self,
        root: str | Path,
        config: ProjectConfig | None = None,
        engine: TemplateEngine | None = None,
        clock: Callable[[], datetime] | None = None,
        dry_run: bool = False,
    ):
        self.root = Path(root)
        self.config = config or ProjectConfig()
        self.engine = engine or TemplateEngine()
        self.writer = FileWriter(self.root, dry_run=dry_run)

        shared: dict[str, Any] = {
            "config": self.config,
            "engine": self.engine,
            "writer": self.writer,
            "clock": clock,
        }
        self.models = ModelGenerator(self.root, **shared)
        self.repositories = RepositoryGenerator(self.root, **shared)
        self.services = ServiceGenerator(self.root, **shared)
        self.handlers = HandlerGenerator(self.root, **shared)
        self.migrations = MigrationGenerator(self.root, **shared)
        self.frontend = FrontendGenerator(self.root, **shared)

    def generate(self, request: ModuleRequest) -> GenerationResult:
        """
        Run every step for ``request``.

        Raises:
            ModuleGenerationError: A step failed; carries the step name, the
                underlying error and the files already written
        """
        naming = NamingSet.derive(request.name)
        steps: list[tuple[str, Callable[[], GenerationResult]]] = [
            ("model", lambda: self.models.generate(ModelRequest(
                name=naming.name,
                fields=request.fields,
                with_timestamps=request.with_timestamps,
                with_soft_delete=request.with_soft_delete,
            ))),
            ("repository", lambda: self.repositories.generate(RepositoryRequest(name=naming.name))),
            ("service", lambda: self.services.generate(ServiceRequest(
                name=naming.name,
                fields=request.fields,
                with_cache=request.with_cache,
            ))),
            ("handler", lambda: self.handlers.generate(HandlerRequest(
                model=naming.name,
                with_auth=request.with_auth,
            ))),
            ("migration", lambda: self.migrations.generate(MigrationRequest(
                name=f"create_{naming.plural_snake}_table",
                table=naming.table,
                action=MigrationAction.CREATE,
                fields=request.fields,
                with_timestamps=request.with_timestamps,
                with_soft_delete=request.with_soft_delete,
            ))),
        ]
        if request.frontend is not None:
            steps.append(("frontend", lambda: self.frontend.generate(request.frontend)))

        for step, run in steps:
            logger.debug("Running %s step for %s", step, naming.name)
            try:
                run()
            except GeneratorError as e:
                logger.error("%s step failed for %s: %s", step, naming.name, e)
                raise ModuleGenerationError(step, e, self.writer.written) from e

        logger.info("Generated module %s (%d files)", naming.name, len(self.writer.result.files))
        return self.writer.result


def generate_module(
    request: ModuleRequest | str | Path,
    root: str | Path,
    config: ProjectConfig | None = None,
    dry_run: bool = False,
) -> GenerationResult:
    """
    Generate every layer of one entity.

    Args:
        request: ModuleRequest object, YAML string, or path to YAML file
        root: Project root
        config: Project config. Loaded from ``root`` when omitted.
        dry_run: Plan only

    Returns:
        GenerationResult with every planned or written file
    """
    if isinstance(request, Path) or (isinstance(request, str) and "\n" not in request and Path(request).exists()):
        request = ModuleRequest.from_file(request)
    elif isinstance(request, str):
        request = ModuleRequest.from_yaml(request)

    root = Path(root)
    if config is None:
        config = load_config(root)
    return ModuleGenerator(root, config=config, dry_run=dry_run).generate(request)
