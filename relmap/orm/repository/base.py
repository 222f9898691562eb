"""Repository layer for RelMap.

Implements a generic repository over `MappingSession` so callers work with one
record type at a time.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select

from relmap.exceptions import NotFoundError
from relmap.orm.session import MappingSession

T = TypeVar("T")


class GenericRepository(Generic[T]):
    """Generic repository implementing common operations for one record type."""

    def __init__(self, session: MappingSession, type_name: str):
        """Initialize repository with a session and record type.

        Args:
            session: Mapping session for database operations.
            type_name: The registered record type this repository manages.
        """
        self.session = session
        self.type_name = type_name
        self.descriptor = session.registry.resolve(type_name)

    def add(self, entity: T) -> T:
        """Persist a new entity.

        Args:
            entity: The entity instance to add.

        Returns:
            The added entity with its primary key assigned.
        """
        return self.session.persist(entity)

    def add_all(self, entities: list[T]) -> list[T]:
        """Persist multiple entities."""
        return [self.session.persist(entity) for entity in entities]

    def get_by_id(self, _id: Any) -> T | None:
        """Retrieve an entity by its primary key.

        Args:
            _id: The primary key value.

        Returns:
            The entity if found, None otherwise.
        """
        try:
            return self.session.find(self.type_name, _id)
        except NotFoundError:
            return None

    def get(self, _id: Any) -> T:
        """Retrieve an entity by its primary key.

        Raises:
            NotFoundError: If no row has this primary key.
        """
        return self.session.find(self.type_name, _id)

    def count(self) -> int:
        """Count total number of rows of this type."""
        table = self.session.table_for(self.type_name)
        return self.session.connection.execute(select(func.count()).select_from(table)).scalar_one()

    def exists(self, _id: Any) -> bool:
        """Check if an entity exists by its primary key."""
        return self.get_by_id(_id) is not None
