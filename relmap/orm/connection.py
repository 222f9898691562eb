import logging
import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import Engine, create_engine, event

from relmap.exceptions import EnvNotFoundError
from relmap.mapping.registry import MappingRegistry
from relmap.orm.schema_factory import SchemaGeneration

logger = logging.getLogger("RelMap")

DEFAULT_DB_URL = "sqlite:///relmap.db"


@dataclass
class DBConnection:
    """Database connection configuration."""

    url: str = DEFAULT_DB_URL
    schema_generation: SchemaGeneration = SchemaGeneration.NONE
    echo: bool = False

    def __post_init__(self):
        self.schema_generation = SchemaGeneration(self.schema_generation)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def get_engine(self) -> Engine:
        """Create a SQLAlchemy engine using the connection configuration."""
        if self.is_sqlite and ":memory:" not in self.url:
            db_path = self.url.split("///", 1)[-1]
            if db_path:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(self.url, echo=self.echo)
        if self.is_sqlite:
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    def get_session_factory(self, registry: MappingRegistry | None = None, engine: Engine | None = None):
        """Create a factory returning a new `MappingSession` per call.

        Args:
            registry: Mapping registry. If None, sessions use the process-wide default registry.
            engine: Engine to bind sessions to. If None, a new engine is created and the
                caller owns it through `session_factory.engine`.
        """
        from relmap.orm.session import MappingSession

        engine = engine if engine is not None else self.get_engine()

        def session_factory() -> MappingSession:
            return MappingSession(engine, registry)

        session_factory.engine = engine  # type: ignore[attr-defined]
        return session_factory

    def create_schema(self, registry: MappingRegistry, mode: SchemaGeneration | str | None = None):
        """Run schema generation with the configured (or given) mode."""
        from relmap.orm.schema_factory import create_schema

        engine = self.get_engine()
        try:
            return create_schema(engine, registry, mode or self.schema_generation)
        finally:
            engine.dispose()

    @classmethod
    def from_config(cls, config_path: Path | None = None) -> "DBConnection":
        """Load database connection configuration from a YAML file.

        Args:
            config_path: Directory holding `db.yaml`. If None, uses the CLI config path.

        Returns:
            DBConnection instance with loaded configuration. `RELMAP_DB_URL` overrides the file.
        """
        from omegaconf import DictConfig, OmegaConf

        from relmap import cli

        resolved_path = config_path or cli.CONFIG_PATH
        if resolved_path is None:
            raise ValueError("Config path not provided and CONFIG_PATH is not set.")  # noqa: TRY003

        cfg = OmegaConf.load(Path(resolved_path) / "db.yaml")
        if not isinstance(cfg, DictConfig):
            raise TypeError("db.yaml must be a YAML mapping.")  # noqa: TRY003

        url = os.environ.get("RELMAP_DB_URL", cfg.get("url", DEFAULT_DB_URL))
        return cls(
            url=url,
            schema_generation=cfg.get("schema_generation", SchemaGeneration.NONE.value),
            echo=bool(cfg.get("echo", False)),
        )

    @classmethod
    def from_env(cls) -> "DBConnection":
        """Load database connection configuration from environment variables.

        Returns:
            DBConnection instance with loaded configuration.
        """
        url = os.getenv("RELMAP_DB_URL")
        if not url:
            raise EnvNotFoundError("RELMAP_DB_URL")

        return cls(
            url=url,
            schema_generation=os.getenv("RELMAP_SCHEMA_GENERATION", SchemaGeneration.NONE.value),
            echo=os.getenv("RELMAP_ECHO", "false").lower() in ("1", "true", "yes"),
        )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
