"""create-student and show-student commands."""

from datetime import datetime
from typing import Annotated

import typer

from relmap.cli.utils import exit_on_error, load_db_connection, open_session_factory
from relmap.tutorial.models import StudentGroup
from relmap.tutorial.programs import create_student_with_card, read_student


@exit_on_error
def create_student_command(
    name: Annotated[str, typer.Option("--name", "-n", help="Student name")] = "Jack",
    dob: Annotated[
        datetime | None,
        typer.Option("--dob", help="Date of birth (YYYY-MM-DD)", formats=["%Y-%m-%d"]),
    ] = None,
    group: Annotated[StudentGroup, typer.Option("--group", "-g", help="Student group")] = StudentGroup.ROSE,
    active: Annotated[bool, typer.Option("--active/--inactive", help="Whether the id card is active")] = True,
) -> None:
    """Create a student together with a new id card.

    Examples:
      relmap create-student --name Jack --dob 2000-01-01 --group ROSE
    """
    with open_session_factory(load_db_connection()) as session_factory:
        result = create_student_with_card(
            session_factory,
            name=name,
            dob=dob.date() if dob else None,
            group=group,
            active=active,
        )
    typer.echo(f"Created student {result['student_id']} with id card {result['id_card_id']}")


@exit_on_error
def show_student_command(
    student_id: Annotated[int, typer.Argument(help="Student primary key")],
    eager: Annotated[bool, typer.Option("--eager", help="Load the id card in the same query")] = False,
) -> None:
    """Show a student and its id card.

    Examples:
      relmap show-student 1
      relmap show-student 1 --eager
    """
    with open_session_factory(load_db_connection(), eager=eager) as session_factory:
        student = read_student(session_factory, student_id)

    typer.echo(f"Student {student['id']}: {student['name']}")
    typer.echo(f"  dob:     {student['dob']}")
    typer.echo(f"  group:   {student['group']}")
    if student["id_card_id"] is None:
        typer.echo("  id card: none")
    else:
        typer.echo(f"  id card: {student['id_card_id']} (active: {student['id_card_active']})")
