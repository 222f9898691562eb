"""CLI utility functions."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any

import typer

from relmap.exceptions import RelMapError
from relmap.mapping import FetchMode
from relmap.orm.connection import DBConnection
from relmap.orm.session import MappingSession
from relmap.tutorial.models import build_registry

logger = logging.getLogger("RelMap")


def get_config_dir() -> Path:
    """Get the configs directory.

    Returns CONFIG_PATH if set by CLI, otherwise falls back to CWD/configs.
    """
    import relmap.cli as cli

    return cli.CONFIG_PATH or Path.cwd() / "configs"


def load_db_connection() -> DBConnection:
    """Load the connection from `<config dir>/db.yaml`, or from the environment when the file is missing."""
    config_dir = get_config_dir()
    if (config_dir / "db.yaml").exists():
        return DBConnection.from_config(config_dir)
    logger.debug(f"No db.yaml in {config_dir}, reading the connection from the environment")
    return DBConnection.from_env()


@contextmanager
def open_session_factory(db: DBConnection, eager: bool = False) -> Iterator[Callable[[], MappingSession]]:
    """Yield a mapping session factory for the tutorial registry and dispose its engine afterwards."""
    fetch = FetchMode.EAGER if eager else FetchMode.LAZY
    engine = db.get_engine()
    try:
        yield db.get_session_factory(build_registry(student_fetch=fetch, card_fetch=fetch), engine=engine)
    finally:
        engine.dispose()


def exit_on_error(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report RelMap errors on stderr and exit with status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RelMapError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None

    return wrapper
