from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import Engine, create_engine, event

from relmap.mapping import FetchMode, MappingRegistry
from relmap.orm.schema_factory import create_schema
from relmap.orm.session import MappingSession
from relmap.tutorial.models import build_registry


@pytest.fixture
def db_engine(tmp_path) -> Generator[Engine, Any, None]:
    """Create a SQLite engine backed by a file in the test's temp directory.

    Foreign keys are not enforced, so tests can leave dangling references behind.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'relmap_test.db'}")

    yield engine

    engine.dispose()


@pytest.fixture
def registry() -> MappingRegistry:
    """Tutorial registry with lazy fetching on both sides."""
    return build_registry(FetchMode.LAZY, FetchMode.LAZY)


@pytest.fixture
def eager_registry() -> MappingRegistry:
    """Tutorial registry with eager fetching on both sides."""
    return build_registry(FetchMode.EAGER, FetchMode.EAGER)


@pytest.fixture
def session_factory(db_engine: Engine, registry: MappingRegistry) -> Callable[[], MappingSession]:
    """Create the tutorial schema and return a lazy-fetching session factory."""
    create_schema(db_engine, registry, "create")

    def factory() -> MappingSession:
        return MappingSession(db_engine, registry)

    return factory


@pytest.fixture
def eager_session_factory(
    db_engine: Engine, eager_registry: MappingRegistry, session_factory
) -> Callable[[], MappingSession]:
    """Eager-fetching session factory over the same database as `session_factory`."""

    def factory() -> MappingSession:
        return MappingSession(db_engine, eager_registry)

    return factory


@pytest.fixture
def db_session(session_factory) -> Generator[MappingSession, Any, None]:
    """Create a new mapping session for each test and close it afterwards."""
    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def statements(db_engine: Engine) -> list[str]:
    """Collect every SQL statement sent through the engine."""
    captured: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement)

    event.listen(db_engine, "before_cursor_execute", before_cursor_execute)
    return captured
