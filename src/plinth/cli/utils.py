"""
CLI utility helpers — settings, connection setup and output formatting.
"""

from __future__ import annotations

import importlib
import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from plinth.core.adapters import DatabaseAdapter, open_database
from plinth.core.errors import ConfigError, PlinthError
from plinth.core.logging import configure_logging
from plinth.core.migrations import MigrationResult, MigrationStatus, Migrator
from plinth.core.settings import PlinthSettings, load_settings

console = Console()
err_console = Console(stderr=True)


# ── Setup helpers ────────────────────────────────────────────────────────


def import_migration_modules(modules: list[str]) -> None:
    """Import each module so its ``@migration`` units register."""
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            raise ConfigError(
                f"Cannot import migration module '{module}': {e}",
                cause=e,
            ).with_context(operation="import", module=module) from e


def make_settings(config: str | None, modules: list[str] | None) -> PlinthSettings:
    """Load settings, configure logging and register migration units."""
    settings = load_settings(config)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    import_migration_modules([*settings.migration_modules, *(modules or [])])
    return settings


def make_migrator(config: str | None, modules: list[str] | None) -> tuple[Migrator, DatabaseAdapter]:
    """Settings → connected adapter → ``Migrator`` (exits 1 on failure)."""
    try:
        settings = make_settings(config, modules)
        db = open_database(settings.database_config())
    except PlinthError as e:
        fail(e)
    return Migrator(db), db


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: PlinthError) -> None:
    """Print an error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


def output_migration_result(
    result: MigrationResult,
    *,
    message: str,
    empty_message: str,
    as_json: bool = False,
) -> None:
    """Render a run / rollback result; ``message`` takes the count."""
    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        for name in result.names:
            console.print(f"  [green]✓[/green] {name}")
        if result.count:
            console.print(message % result.count)
        elif result.success:
            console.print(empty_message)

    if result.error is not None:
        fail(result.error)


def output_statuses(statuses: list[MigrationStatus], *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps([s.to_dict() for s in statuses], default=str))
        return

    if not statuses:
        console.print("[dim]No migrations.[/dim]")
        return

    table = Table(title="Migrations", show_lines=False, pad_edge=False)
    for col in ("Migration", "Status", "Batch", "Applied At"):
        table.add_column(col, overflow="fold")
    for status in statuses:
        state = "[green]Applied[/green]" if status.applied else "[yellow]Pending[/yellow]"
        if not status.registered:
            state += " [red](missing)[/red]"
        table.add_row(
            status.name,
            state,
            _cell(status.batch),
            _cell(status.applied_at),
        )
    console.print(table)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)
