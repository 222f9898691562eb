"""Enrollment Unit of Work for RelMap.

Coordinates the Student and IdCard repositories inside one transaction.
"""

from collections.abc import Callable

from relmap.orm.repository.id_card import IdCardRepository
from relmap.orm.repository.student import StudentRepository
from relmap.orm.session import MappingSession
from relmap.orm.uow.base import BaseUnitOfWork


class EnrollmentUnitOfWork(BaseUnitOfWork):
    """Unit of Work for the Student / IdCard tutorial entities.

    Provides lazy-initialized repositories for efficient resource usage.
    """

    def __init__(self, session_factory: Callable[[], MappingSession]):
        super().__init__(session_factory)
        self._student_repo: StudentRepository | None = None
        self._id_card_repo: IdCardRepository | None = None

    def _reset_repositories(self) -> None:
        """Reset all repository references to None."""
        self._student_repo = None
        self._id_card_repo = None

    @staticmethod
    def available_repositories() -> list[str]:
        return ["students", "id_cards"]

    @property
    def students(self) -> StudentRepository:
        """Get the Student repository.

        Raises:
            SessionNotSetError: If session is not initialized.
        """
        return self._get_repository("_student_repo", StudentRepository, "Student")

    @property
    def id_cards(self) -> IdCardRepository:
        """Get the IdCard repository.

        Raises:
            SessionNotSetError: If session is not initialized.
        """
        return self._get_repository("_id_card_repo", IdCardRepository, "IdCard")
