"""init-schema command - Generate the tutorial tables."""

from typing import Annotated

import typer

from relmap.cli.utils import exit_on_error, load_db_connection
from relmap.orm.schema_factory import SchemaGeneration, create_metadata, foreign_key_columns
from relmap.tutorial.models import build_registry
from relmap.tutorial.programs import init_schema


@exit_on_error
def init_schema_command(
    mode: Annotated[
        SchemaGeneration | None,
        typer.Option("--mode", "-m", help="Schema generation mode (create drops existing tables)"),
    ] = None,
) -> None:
    """Generate the student and id_card tables.

    Examples:
      relmap init-schema
      relmap init-schema --mode update
    """
    db = load_db_connection()
    resolved = mode or (
        db.schema_generation if db.schema_generation is not SchemaGeneration.NONE else SchemaGeneration.CREATE
    )
    tables = init_schema(db, resolved)

    metadata = create_metadata(build_registry())
    typer.echo(f"Schema generated ({resolved.value}):")
    for name in tables:
        fks = foreign_key_columns(metadata.tables[name])
        typer.echo(f"  {name}" + (f" (foreign keys: {', '.join(fks)})" if fks else ""))
