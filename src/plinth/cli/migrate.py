"""
CLI: ``plinth migrate`` — apply, roll back and inspect migrations.
"""

from __future__ import annotations

import typer

from plinth.cli.utils import make_migrator, output_migration_result, output_statuses

app = typer.Typer(no_args_is_help=True)

ConfigOption = typer.Option(None, "--config", "-c", help="YAML config file")
ModuleOption = typer.Option(
    None, "--module", "-m", help="Module that registers migrations (repeatable)"
)
JsonOption = typer.Option(False, "--json", help="JSON output")


@app.command()
def run(
    config: str | None = ConfigOption,
    module: list[str] | None = ModuleOption,
    json_out: bool = JsonOption,
) -> None:
    """Apply all pending migrations as a new batch."""
    migrator, db = make_migrator(config, module)
    try:
        result = migrator.run()
    finally:
        db.disconnect()
    output_migration_result(
        result,
        message="Ran %d migrations",
        empty_message="No migrations to run",
        as_json=json_out,
    )


@app.command()
def rollback(
    step: int = typer.Option(0, "--step", "-s", help="Batches to roll back (0 = all)"),
    config: str | None = ConfigOption,
    module: list[str] | None = ModuleOption,
    json_out: bool = JsonOption,
) -> None:
    """Roll back the newest ``--step`` batches (all when 0)."""
    migrator, db = make_migrator(config, module)
    try:
        result = migrator.rollback(step=step)
    finally:
        db.disconnect()
    output_migration_result(
        result,
        message="Rolled back %d migrations",
        empty_message="No migrations to rollback",
        as_json=json_out,
    )


@app.command()
def reset(
    config: str | None = ConfigOption,
    module: list[str] | None = ModuleOption,
    json_out: bool = JsonOption,
) -> None:
    """Roll back every applied migration."""
    migrator, db = make_migrator(config, module)
    try:
        result = migrator.reset()
    finally:
        db.disconnect()
    output_migration_result(
        result,
        message="Reset %d migrations",
        empty_message="No migrations to rollback",
        as_json=json_out,
    )


@app.command()
def refresh(
    config: str | None = ConfigOption,
    module: list[str] | None = ModuleOption,
    json_out: bool = JsonOption,
) -> None:
    """Reset then re-run every migration."""
    migrator, db = make_migrator(config, module)
    try:
        reset_result, run_result = migrator.refresh()
    finally:
        db.disconnect()
    if not reset_result.success:
        output_migration_result(
            reset_result,
            message="Reset %d migrations",
            empty_message="No migrations to rollback",
            as_json=json_out,
        )
    output_migration_result(
        run_result,
        message="Refreshed %d migrations",
        empty_message="No migrations to run",
        as_json=json_out,
    )


@app.command()
def status(
    config: str | None = ConfigOption,
    module: list[str] | None = ModuleOption,
    json_out: bool = JsonOption,
) -> None:
    """Show applied and pending migrations."""
    migrator, db = make_migrator(config, module)
    try:
        statuses = migrator.status()
    finally:
        db.disconnect()
    output_statuses(statuses, as_json=json_out)
