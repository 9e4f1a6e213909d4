"""Tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from deployar.core.settings import DeployarSettings, get_settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DEPLOYAR_DATA_DIR", raising=False)
        monkeypatch.delenv("DEPLOYAR_PASSWORD_HASH_ITERATIONS", raising=False)
        s = DeployarSettings(_env_file=None)
        assert s.port == 3029
        assert s.host == "0.0.0.0"
        assert s.shell == "sh"
        assert s.api_prefix == "/api"
        assert s.max_concurrent_executions is None
        assert s.auth_enabled is True
        assert s.data_dir == Path.home() / ".deployar"

    def test_derived_paths(self, tmp_path):
        s = DeployarSettings(data_dir=tmp_path)
        assert s.executions_path == tmp_path / "executions.json"
        assert s.commands_path == tmp_path / "commands.json"
        assert s.users_path == tmp_path / "users.json"


class TestEnvironment:
    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEPLOYAR_PORT", "8080")
        monkeypatch.setenv("DEPLOYAR_MAX_CONCURRENT_EXECUTIONS", "4")
        monkeypatch.setenv("DEPLOYAR_DATA_DIR", str(tmp_path))
        s = DeployarSettings()
        assert s.port == 8080
        assert s.max_concurrent_executions == 4
        assert s.data_dir == tmp_path

    def test_data_dir_expands_user(self):
        s = DeployarSettings(data_dir="~/deployar-data")
        assert s.data_dir == Path.home() / "deployar-data"

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            DeployarSettings(max_concurrent_executions=0)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
