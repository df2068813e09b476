"""
Crudforge CLI - Command-line interface for layer generation

Usage:
    crudforge module <name> --fields "name:string!,price:float64!"
    crudforge model <name> --fields "..."
    crudforge table <table> | crudforge table --all
    crudforge tables
    crudforge repository <name>
    crudforge service <name>
    crudforge handler <model>
    crudforge migration <name> --action create
    crudforge frontend <model> --output-dir ../web
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer
import yaml
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from crudforge.config import ProjectConfig, load_config
from crudforge.errors import GeneratorError, ModuleGenerationError
from crudforge.generator import (
    HandlerGenerator,
    ModelGenerator,
    ModuleGenerator,
    RepositoryGenerator,
    ServiceGenerator,
    TableModelGenerator,
)
from crudforge.frontend import FrontendGenerator
from crudforge.introspect import SchemaIntrospector
from crudforge.migration import MigrationGenerator
from crudforge.spec import (
    FrontendRequest,
    HandlerRequest,
    MigrationAction,
    MigrationRequest,
    ModelRequest,
    ModuleRequest,
    ModuleType,
    RepositoryRequest,
    ServiceRequest,
    TableModelRequest,
)
from crudforge.writer import GenerationResult

app = typer.Typer(
    name="crudforge",
    help="Generate model, repository, service, handler, migration and frontend layers",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

CLI_ERRORS = (GeneratorError, ValidationError, OSError, yaml.YAMLError)


@dataclass
class CliState:
    root: Path
    config_path: Optional[Path] = None

    def config(self) -> ProjectConfig:
        return load_config(self.root, self.config_path)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main_options(
    ctx: typer.Context,
    root: Path = typer.Option(
        Path("."),
        "--root", "-r",
        help="Project root the generated files are written under",
        file_okay=False,
        resolve_path=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (defaults to configs/config.yaml under the root)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step"),
) -> None:
    """Crudforge: schema-driven CRUD layer generator."""
    setup_logging(verbose)
    ctx.obj = CliState(root=root, config_path=config)


def _state(ctx: typer.Context) -> CliState:
    if ctx.obj is None:
        ctx.obj = CliState(root=Path.cwd())
    return ctx.obj


def _fail(error: Exception) -> NoReturn:
    rprint(f"[red]Error:[/red] {escape(str(error))}")
    if isinstance(error, ModuleGenerationError) and error.written:
        rprint(f"[yellow]Files written before the {error.step} step failed:[/yellow]")
        for path in error.written:
            rprint(f"  {escape(path)}")
    raise typer.Exit(1)


def _report(result: GenerationResult, dry_run: bool) -> None:
    if dry_run:
        tree = Tree("[yellow]Dry run - would write:[/yellow]")
        for f in result.files:
            tree.add(f"{escape(f.path)} [dim]({f.action})[/dim]")
        rprint(tree)
        return

    for f in result.files:
        verb = "updated" if f.action == "register" else "created"
        rprint(f"[green]✓[/green] {verb} {escape(f.path)}")
    for error in result.errors:
        rprint(f"[red]✗[/red] {escape(error)}")
    if not result.success:
        raise typer.Exit(1)


DryRun = typer.Option(False, "--dry-run", help="Show what would be generated without writing files")


# ═══════════════════════════════════════════════════════════════════════════
# MODULE
# ═══════════════════════════════════════════════════════════════════════════


@app.command()
def module(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Entity name, e.g. Product"),
    fields: str = typer.Option("", "--fields", "-f", help='Field DSL: "name:string!,price:float64!"'),
    spec_file: Optional[Path] = typer.Option(
        None,
        "--spec", "-s",
        help="YAML module request instead of command-line options",
        exists=True,
        dir_okay=False,
    ),
    with_auth: bool = typer.Option(False, "--auth", help="Require authentication on the handlers"),
    with_cache: bool = typer.Option(False, "--cache", help="Cache reads in the service"),
    with_soft_delete: bool = typer.Option(False, "--soft-delete", help="Add deleted_at"),
    no_timestamps: bool = typer.Option(False, "--no-timestamps", help="Skip created_at/updated_at"),
    frontend_dir: Optional[Path] = typer.Option(None, "--frontend-dir", help="Also scaffold an antd frontend here"),
    module_type: ModuleType = typer.Option(ModuleType.ADMIN, "--module-type", help="Frontend placement"),
    dry_run: bool = DryRun,
) -> None:
    """Generate every layer of one entity."""
    state = _state(ctx)
    try:
        if spec_file is not None:
            request = ModuleRequest.from_file(spec_file)
        elif name:
            request = ModuleRequest(
                name=name,
                fields=fields,
                with_auth=with_auth,
                with_cache=with_cache,
                with_soft_delete=with_soft_delete,
                with_timestamps=not no_timestamps,
                frontend=FrontendRequest(
                    model=name,
                    output_dir=frontend_dir,
                    fields=fields,
                    module_type=module_type,
                    with_auth=with_auth,
                ) if frontend_dir else None,
            )
        else:
            rprint("[red]Error:[/red] give an entity name or --spec")
            raise typer.Exit(1)

        result = ModuleGenerator(state.root, config=state.config(), dry_run=dry_run).generate(request)
    except CLI_ERRORS as e:
        _fail(e)

    _report(result, dry_run)
    if not dry_run:
        rprint(f"\n[green]✓[/green] Module [bold]{escape(request.name)}[/bold] generated")


# ═══════════════════════════════════════════════════════════════════════════
# SINGLE LAYERS
# ═══════════════════════════════════════════════════════════════════════════


@app.command()
def model(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Model name"),
    fields: str = typer.Option("", "--fields", "-f", help="Field DSL"),
    with_soft_delete: bool = typer.Option(False, "--soft-delete"),
    no_timestamps: bool = typer.Option(False, "--no-timestamps"),
    dry_run: bool = DryRun,
) -> None:
    """Generate a model from a field list."""
    state = _state(ctx)
    try:
        request = ModelRequest(
            name=name,
            fields=fields,
            with_soft_delete=with_soft_delete,
            with_timestamps=not no_timestamps,
        )
        generator = ModelGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(request)
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def table(
    ctx: typer.Context,
    table_name: Optional[str] = typer.Argument(None, help="Table to read"),
    model_name: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (derived from the table)"),
    all_tables: bool = typer.Option(False, "--all", help="Generate a model for every table"),
    with_soft_delete: bool = typer.Option(False, "--soft-delete"),
    no_timestamps: bool = typer.Option(False, "--no-timestamps"),
    dry_run: bool = DryRun,
) -> None:
    """Generate models from database tables."""
    if not all_tables and not table_name:
        rprint("[red]Error:[/red] give a table name or --all")
        raise typer.Exit(1)

    state = _state(ctx)
    try:
        generator = TableModelGenerator(state.root, config=state.config(), dry_run=dry_run)
        if all_tables:
            result = generator.generate_all(
                with_timestamps=not no_timestamps,
                with_soft_delete=with_soft_delete,
            )
        else:
            generator.generate(TableModelRequest(
                table=table_name,
                model=model_name,
                with_timestamps=not no_timestamps,
                with_soft_delete=with_soft_delete,
            ))
            result = generator.result
    except CLI_ERRORS as e:
        _fail(e)
    _report(result, dry_run)


@app.command()
def tables(ctx: typer.Context) -> None:
    """List the tables of the configured database."""
    state = _state(ctx)
    try:
        names = SchemaIntrospector(state.config().database.url()).list_tables()
    except CLI_ERRORS as e:
        _fail(e)

    output = Table(title="Tables")
    output.add_column("Table", style="cyan")
    for name in names:
        output.add_row(name)
    rprint(output)


@app.command()
def repository(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name, e.g. Product"),
    model_name: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (defaults to the name)"),
    dry_run: bool = DryRun,
) -> None:
    """Generate a repository."""
    state = _state(ctx)
    try:
        generator = RepositoryGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(RepositoryRequest(name=name, model=model_name))
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def service(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Service name, e.g. Product"),
    model_name: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (defaults to the name)"),
    fields: str = typer.Option("", "--fields", "-f", help="Field DSL, used when the model cannot be read"),
    with_cache: bool = typer.Option(False, "--cache"),
    dry_run: bool = DryRun,
) -> None:
    """Generate a service."""
    state = _state(ctx)
    try:
        generator = ServiceGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(ServiceRequest(name=name, model=model_name, fields=fields, with_cache=with_cache))
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def handler(
    ctx: typer.Context,
    model_name: str = typer.Argument(..., help="Model name"),
    with_auth: bool = typer.Option(False, "--auth"),
    no_validation: bool = typer.Option(False, "--no-validation", help="Skip path/query constraints"),
    dry_run: bool = DryRun,
) -> None:
    """Generate an HTTP handler."""
    state = _state(ctx)
    try:
        generator = HandlerGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(HandlerRequest(
            model=model_name,
            with_auth=with_auth,
            with_validation=not no_validation,
        ))
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def migration(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Migration name, e.g. create_products_table"),
    table_name: Optional[str] = typer.Option(None, "--table", "-t", help="Table (inferred from the name)"),
    action: MigrationAction = typer.Option(MigrationAction.CREATE, "--action", "-a"),
    fields: str = typer.Option("", "--fields", "-f", help="Field DSL"),
    with_soft_delete: bool = typer.Option(False, "--soft-delete", help="Add deleted_at"),
    no_timestamps: bool = typer.Option(False, "--no-timestamps", help="Skip created_at/updated_at"),
    dry_run: bool = DryRun,
) -> None:
    """Generate an up/down migration pair."""
    state = _state(ctx)
    try:
        generator = MigrationGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(MigrationRequest(
            name=name,
            table=table_name,
            action=action,
            fields=fields,
            with_timestamps=not no_timestamps,
            with_soft_delete=with_soft_delete,
        ))
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def frontend(
    ctx: typer.Context,
    model_name: str = typer.Argument(..., help="Model name"),
    output_dir: Path = typer.Option(..., "--output-dir", "-o", help="Frontend project directory"),
    fields: str = typer.Option("", "--fields", "-f", help="Field DSL, used when the model cannot be read"),
    module_type: ModuleType = typer.Option(ModuleType.ADMIN, "--module-type"),
    module_name: Optional[str] = typer.Option(None, "--module-name"),
    api_prefix: str = typer.Option("/api/v1", "--api-prefix"),
    with_auth: bool = typer.Option(False, "--auth"),
    with_search: bool = typer.Option(True, "--search/--no-search"),
    with_export: bool = typer.Option(False, "--export"),
    with_batch: bool = typer.Option(False, "--batch"),
    smart_search: bool = typer.Option(True, "--smart-search/--no-smart-search"),
    dry_run: bool = DryRun,
) -> None:
    """Generate an Ant Design Pro page, API client and locales."""
    state = _state(ctx)
    try:
        generator = FrontendGenerator(state.root, config=state.config(), dry_run=dry_run)
        generator.generate(FrontendRequest(
            model=model_name,
            output_dir=output_dir,
            fields=fields,
            module_type=module_type,
            module_name=module_name,
            api_prefix=api_prefix,
            with_auth=with_auth,
            with_search=with_search,
            with_export=with_export,
            with_batch=with_batch,
            smart_search=smart_search,
        ))
    except CLI_ERRORS as e:
        _fail(e)
    _report(generator.result, dry_run)


@app.command()
def version() -> None:
    """Show version."""
    from crudforge import __version__
    rprint(f"crudforge {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
