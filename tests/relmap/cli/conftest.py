"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

import relmap.cli as cli


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CliRunner for testing commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_config_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cli.CONFIG_PATH and the connection env vars before each test."""
    monkeypatch.setattr(cli, "CONFIG_PATH", None)
    for name in ("RELMAP_CONFIG_PATH", "RELMAP_DB_URL", "RELMAP_SCHEMA_GENERATION", "RELMAP_ECHO"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a config directory whose db.yaml points at a temp SQLite file."""
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    (config_dir / "db.yaml").write_text(
        f"url: sqlite:///{tmp_path / 'data' / 'relmap.db'}\nschema_generation: create\necho: false\n"
    )
    return config_dir
