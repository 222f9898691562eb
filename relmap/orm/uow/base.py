"""Base Unit of Work for RelMap.

Wraps one `MappingSession` per `with` block and hands out lazily created
repositories bound to it.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from typing_extensions import Self

from relmap.exceptions import SessionNotSetError
from relmap.orm.session import MappingSession


class BaseUnitOfWork(ABC):
    """Abstract base class for Unit of Work pattern.

    Provides common functionality for managing database transactions:
    - Session lifecycle management (context manager)
    - Transaction operations (begin, commit, rollback, flush)
    - Lazy repository initialization helper

    Subclasses must implement:
    - `_reset_repositories()`
    - Repository properties using the `_get_repository()` helper
    """

    def __init__(self, session_factory: Callable[[], MappingSession]):
        """Initialize Unit of Work with a session factory.

        Args:
            session_factory: Callable returning a new MappingSession.
        """
        self.session_factory = session_factory
        self.session: MappingSession | None = None

    def __enter__(self) -> Self:
        """Open a new session and begin a transaction."""
        self.session = self.session_factory()
        self.session.begin_transaction()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the session, rolling back first if an exception occurred."""
        if self.session:
            if exc_type is not None:
                self.session.rollback()
            self.session.close()
            self.session = None
        self._reset_repositories()

    @abstractmethod
    def _reset_repositories(self) -> None:
        """Reset all repository references to None.

        Called during cleanup to ensure repositories are recreated on next access.
        """
        ...

    def _get_repository(self, repo_attr: str, repo_class: type, type_name: str) -> Any:
        """Helper method for lazy repository initialization.

        Args:
            repo_attr: Name of the private repository attribute (e.g., "_student_repo").
            repo_class: Repository class to instantiate.
            type_name: Registered record type the repository manages.

        Returns:
            Repository instance.

        Raises:
            SessionNotSetError: If session is not initialized.
        """
        if self.session is None:
            raise SessionNotSetError

        cached_repo = getattr(self, repo_attr, None)
        if cached_repo is not None:
            return cached_repo

        repo = repo_class(self.session, type_name)
        setattr(self, repo_attr, repo)
        return repo

    def commit(self) -> None:
        """Commit the current transaction and start the next one."""
        if self.session:
            self.session.commit()
            self.session.begin_transaction()

    def rollback(self) -> None:
        """Rollback the current transaction and start the next one."""
        if self.session:
            self.session.rollback()
            self.session.begin_transaction()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        if self.session:
            self.session.flush()
