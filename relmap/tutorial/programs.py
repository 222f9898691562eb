"""The four tutorial sample programs.

Each program opens a unit of work, runs a fixed sequence of persist/find calls,
commits and closes. They return plain dictionaries so results stay usable
after the session is closed.
"""

import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from relmap.mapping import LazyReference
from relmap.orm.connection import DBConnection
from relmap.orm.schema_factory import SchemaGeneration
from relmap.orm.session import MappingSession
from relmap.orm.uow import EnrollmentUnitOfWork
from relmap.tutorial.models import IdCard, Student, StudentGroup, build_registry

logger = logging.getLogger("RelMap")

SessionFactory = Callable[[], MappingSession]


def init_schema(db: DBConnection, mode: SchemaGeneration | str | None = None) -> list[str]:
    """Generate the tutorial tables.

    Args:
        db: Database connection configuration.
        mode: Generation mode. Defaults to `create`, which drops existing tables.

    Returns:
        Sorted names of the generated tables.
    """
    metadata = db.create_schema(build_registry(), mode or SchemaGeneration.CREATE)
    return sorted(metadata.tables)


def create_student_with_card(
    session_factory: SessionFactory,
    name: str,
    dob: date | None = None,
    group: StudentGroup | str | None = None,
    active: bool = True,
) -> dict[str, Any]:
    """Persist a student together with a new id card.

    Returns:
        Dictionary with the generated `student_id` and `id_card_id`.
    """
    if isinstance(group, str):
        group = StudentGroup[group.upper()]

    with EnrollmentUnitOfWork(session_factory) as uow:
        card = IdCard(active=active)
        student = Student(name=name, dob=dob, group=group, id_card=card)
        uow.students.add(student)
        uow.commit()

        logger.info(f"Created student {student.id} ({name}) with id card {card.id}")
        return {"student_id": student.id, "id_card_id": card.id}


def read_student(session_factory: SessionFactory, student_id: int) -> dict[str, Any]:
    """Load a student and its id card.

    Raises:
        NotFoundError: If the student does not exist.
    """
    with EnrollmentUnitOfWork(session_factory) as uow:
        student = uow.students.get(student_id)
        card_id = uow.students.get_id_card_id(student)
        card = student.id_card

        return {
            "id": student.id,
            "name": student.name,
            "dob": student.dob,
            "group": student.group.name if student.group else None,
            "id_card_id": card_id,
            "id_card_active": card.active if card is not None else None,
        }


def read_id_card(session_factory: SessionFactory, card_id: int) -> dict[str, Any]:
    """Load an id card and the student that owns it.

    Raises:
        NotFoundError: If the id card does not exist.
    """
    with EnrollmentUnitOfWork(session_factory) as uow:
        card = uow.id_cards.get(card_id)
        student = card.student
        if isinstance(student, LazyReference):
            student = student.resolve()

        return {
            "id": card.id,
            "active": card.active,
            "student_id": student.id if student is not None else None,
            "student_name": student.name if student is not None else None,
        }
