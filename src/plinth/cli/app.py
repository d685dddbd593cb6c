"""
Root Typer application for the plinth CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from plinth.cli.migrate import app as migrate_app

app = Typer(
    name="plinth",
    help="plinth — database connections, schema builder and migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("plinth")
        except PackageNotFoundError:
            from plinth import __version__ as v
        typer.echo(f"plinth {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """plinth CLI — run and inspect schema migrations."""


app.add_typer(migrate_app, name="migrate", help="Schema migrations.")


if __name__ == "__main__":
    app()
