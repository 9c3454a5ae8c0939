"""
Unit tests for configuration loading.
"""

import logging
from pathlib import Path

import pytest

from aucengine.core.config import EngineConfig, load_config

ENV_VARS = [
    "AUCENGINE_DATA_DIR",
    "AUCENGINE_LOG_DIR",
    "AUCENGINE_DB_NAME",
    "AUCENGINE_LOG_LEVEL",
    "AUCENGINE_LOG_TO_FILE",
    "AUCENGINE_MAX_ITEM_LENGTH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the caller's environment and .env files."""
    for name in ENV_VARS:
        # setenv first so monkeypatch restores values that load_dotenv adds
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestEngineConfig:
    """Tests for config defaults."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.db_path == Path("data") / "aucengine.db"
        assert config.log_level == logging.INFO
        assert config.max_item_length == 1024

    def test_ensure_dirs(self, tmp_path):
        config = EngineConfig(data_dir=tmp_path / "a" / "b", log_dir=tmp_path / "logs", log_to_file=True)
        config.ensure_dirs()
        assert (tmp_path / "a" / "b").is_dir()
        assert (tmp_path / "logs").is_dir()


class TestLoadConfig:
    """Tests for environment and .env loading."""

    def test_no_environment(self):
        config = load_config()
        assert config.data_dir == Path("data")
        assert config.log_to_file is False

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUCENGINE_DATA_DIR", str(tmp_path / "state"))
        monkeypatch.setenv("AUCENGINE_DB_NAME", "test.db")
        monkeypatch.setenv("AUCENGINE_LOG_LEVEL", "debug")
        monkeypatch.setenv("AUCENGINE_LOG_TO_FILE", "true")
        monkeypatch.setenv("AUCENGINE_MAX_ITEM_LENGTH", "64")

        config = load_config()
        assert config.db_path == tmp_path / "state" / "test.db"
        assert config.log_level == logging.DEBUG
        assert config.log_to_file is True
        assert config.max_item_length == 64

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "engine.env"
        env_file.write_text("AUCENGINE_DB_NAME=fromfile.db\nAUCENGINE_LOG_LEVEL=WARNING\n")

        config = load_config(str(env_file))
        assert config.db_name == "fromfile.db"
        assert config.log_level == logging.WARNING

    def test_environment_wins_over_env_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / "engine.env"
        env_file.write_text("AUCENGINE_DB_NAME=fromfile.db\n")
        monkeypatch.setenv("AUCENGINE_DB_NAME", "fromenv.db")

        assert load_config(str(env_file)).db_name == "fromenv.db"

    def test_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("AUCENGINE_LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError):
            load_config()
