"""show-card command."""

from typing import Annotated

import typer

from relmap.cli.utils import exit_on_error, load_db_connection, open_session_factory
from relmap.tutorial.programs import read_id_card


@exit_on_error
def show_card_command(
    card_id: Annotated[int, typer.Argument(help="Id card primary key")],
    eager: Annotated[bool, typer.Option("--eager", help="Load the owning student in the same query")] = False,
) -> None:
    """Show an id card and the student that owns it.

    Examples:
      relmap show-card 1
    """
    with open_session_factory(load_db_connection(), eager=eager) as session_factory:
        card = read_id_card(session_factory, card_id)

    typer.echo(f"Id card {card['id']} (active: {card['active']})")
    if card["student_id"] is None:
        typer.echo("  student: none")
    else:
        typer.echo(f"  student: {card['student_id']} ({card['student_name']})")
