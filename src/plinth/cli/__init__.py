"""plinth command-line interface (typer)."""
