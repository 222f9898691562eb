"""Tests for relmap.cli.utils module."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

import relmap.cli as cli
from relmap.cli.utils import get_config_dir, load_db_connection, open_session_factory
from relmap.exceptions import EnvNotFoundError
from relmap.mapping import FetchMode
from relmap.orm.connection import DBConnection


class TestGetConfigDir:
    def test_uses_cli_config_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "CONFIG_PATH", tmp_path)

        assert get_config_dir() == tmp_path

    def test_defaults_to_cwd_configs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)

        assert get_config_dir() == tmp_path / "configs"


class TestLoadDbConnection:
    def test_reads_db_yaml(self, config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "CONFIG_PATH", config_dir)

        db = load_db_connection()

        assert db.url.endswith("relmap.db")

    def test_falls_back_to_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "CONFIG_PATH", tmp_path)

        with pytest.raises(EnvNotFoundError):
            load_db_connection()

        monkeypatch.setenv("RELMAP_DB_URL", "sqlite:///env.db")
        assert load_db_connection().url == "sqlite:///env.db"


class TestOpenSessionFactory:
    """Tests for the engine lifecycle around CLI session factories."""

    def test_engine_disposed_after_block(self) -> None:
        engine = Mock()
        with patch.object(DBConnection, "get_engine", return_value=engine):
            with open_session_factory(DBConnection()) as session_factory:
                session = session_factory()

                assert session.engine is engine
                assert session_factory.engine is engine
                engine.dispose.assert_not_called()

        engine.dispose.assert_called_once()

    def test_engine_disposed_when_program_fails(self) -> None:
        engine = Mock()
        with patch.object(DBConnection, "get_engine", return_value=engine), pytest.raises(RuntimeError):
            with open_session_factory(DBConnection()):
                raise RuntimeError("program failed")

        engine.dispose.assert_called_once()

    def test_eager_flag_selects_fetch_mode(self) -> None:
        with patch.object(DBConnection, "get_engine", return_value=Mock()):
            with open_session_factory(DBConnection(), eager=True) as session_factory:
                registry = session_factory().registry

        assert registry.resolve_relationship("Student", "id_card").fetch_mode is FetchMode.EAGER
