"""IdCard repository for RelMap."""

from typing import Any

from sqlalchemy import func, select

from relmap.orm.repository.base import GenericRepository
from relmap.orm.session import MappingSession


class IdCardRepository(GenericRepository):
    """Repository for IdCard entity with specialized queries."""

    def __init__(self, session: MappingSession, type_name: str = "IdCard"):
        super().__init__(session, type_name)

    def count_active(self) -> int:
        """Count id cards with the active flag set."""
        table = self.session.table_for(self.type_name)
        stmt = select(func.count()).select_from(table).where(table.c.active.is_(True))
        return self.session.connection.execute(stmt).scalar_one()

    def get_unassigned(self) -> list[Any]:
        """Retrieve id cards that no student points to.

        Returns:
            List of id cards without an owner, ordered by primary key.
        """
        relationship = self.session.registry.resolve_relationship(self.type_name, "student")
        table = self.session.table_for(self.type_name)
        owner_table = self.session.table_for(relationship.owner_type)
        pk_column = table.c[self.descriptor.primary_key_field]
        join_column = owner_table.c[relationship.join_column]
        assigned = select(join_column).where(join_column.is_not(None))
        stmt = select(pk_column).where(pk_column.not_in(assigned)).order_by(pk_column)
        ids = self.session.connection.execute(stmt).scalars().all()
        return [self.session.find(self.type_name, _id) for _id in ids]
