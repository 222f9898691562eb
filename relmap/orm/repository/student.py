"""Student repository for RelMap.

Implements student-specific queries extending the generic repository pattern.
"""

from typing import Any

from sqlalchemy import select

from relmap.orm.repository.base import GenericRepository
from relmap.orm.session import MappingSession


class StudentRepository(GenericRepository):
    """Repository for Student entity with specialized queries."""

    def __init__(self, session: MappingSession, type_name: str = "Student"):
        super().__init__(session, type_name)

    def get_by_name(self, name: str) -> list[Any]:
        """Retrieve all students with the given name.

        Args:
            name: The student name to search for.

        Returns:
            List of matching students, ordered by primary key.
        """
        table = self.session.table_for(self.type_name)
        pk_column = table.c[self.descriptor.primary_key_field]
        stmt = select(pk_column).where(table.c.name == name).order_by(pk_column)
        ids = self.session.connection.execute(stmt).scalars().all()
        return [self.session.find(self.type_name, _id) for _id in ids]

    def get_id_card_id(self, student: Any) -> Any | None:
        """Return the id card key stored on a student without loading the card."""
        return self.session.related_id(student, "id_card")
