"""Typer-based CLI application for RelMap."""

import logging
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated

import typer

import relmap.cli as cli
from relmap.cli.commands.card import show_card_command
from relmap.cli.commands.schema import init_schema_command
from relmap.cli.commands.student import create_student_command, show_student_command

# Configure logging for CLI output
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"relmap {get_version('relmap')}")
        raise typer.Exit()


app = typer.Typer(
    name="relmap",
    help="RelMap CLI - one-to-one mapping tutorial programs.",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main_callback(
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config-path",
            "-cp",
            help="Path to configuration directory",
            envvar="RELMAP_CONFIG_PATH",
        ),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """RelMap CLI - one-to-one mapping tutorial programs.

    Global options are processed before any command.
    """
    # Set global config path (default: ./configs)
    cli.CONFIG_PATH = (config_path or Path.cwd() / "configs").resolve()


app.command(name="init-schema")(init_schema_command)
app.command(name="create-student")(create_student_command)
app.command(name="show-student")(show_student_command)
app.command(name="show-card")(show_card_command)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
