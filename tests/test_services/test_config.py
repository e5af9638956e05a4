"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from pops.config import Settings
from pops.exceptions import ConfigurationError


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.debug is False
        assert s.port == 8000
        assert s.notion_version == "2022-06-28"
        assert s.sqlite_busy_timeout_ms == 5000

    def test_envs_dir_defaults_next_to_database(self, tmp_path: Path) -> None:
        s = Settings(
            _env_file=None,  # type: ignore[call-arg]
            database_path=tmp_path / "db" / "pops.db",
        )
        assert s.resolved_envs_dir == tmp_path / "db" / "envs"

    def test_explicit_envs_dir(self, tmp_path: Path) -> None:
        s = Settings(_env_file=None, envs_dir=tmp_path / "elsewhere")  # type: ignore[call-arg]
        assert s.resolved_envs_dir == tmp_path / "elsewhere"

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NOTION_TOKEN", "from-env")
        monkeypatch.setenv("SYNC_INTERVAL_SECONDS", "300")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.notion_token == "from-env"
        assert s.sync_interval_seconds == 300

    def test_page_size_bounds(self) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, notion_page_size=101)  # type: ignore[call-arg]


class TestSyncCredentials:
    def test_complete_configuration_passes(self, test_settings: Settings) -> None:
        test_settings.validate_sync_credentials()

    def test_missing_values_listed(self) -> None:
        s = Settings(_env_file=None, notion_entities_db="db-e")  # type: ignore[call-arg]
        with pytest.raises(ConfigurationError) as exc_info:
            s.validate_sync_credentials()
        message = str(exc_info.value)
        assert "NOTION_TOKEN" in message
        assert "transactions" in message
        assert "entities" not in message


class TestCliEntry:
    def test_cli_entry_runs_app_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from pops.main import cli_entry

        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9999")
        monkeypatch.setenv("DEBUG", "false")
        with patch("uvicorn.run") as mock_run:
            cli_entry()

        mock_run.assert_called_once_with(
            "pops.main:create_app",
            factory=True,
            host="127.0.0.1",
            port=9999,
            reload=False,
        )
