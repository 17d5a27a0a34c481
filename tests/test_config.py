"""Tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from matrixwatch.config import Config
from matrixwatch.core.exceptions import ConfigurationError


class TestConfigDefaults:
    """Tests for default configuration values."""

    def test_default_paths(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config()
            assert cfg.db_path == Path("./data/matrixwatch.db")
            assert cfg.thresholds_path is None
            assert cfg.has_threshold_override is False

    def test_default_engine_settings(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config()
            assert cfg.max_workers == 4
            assert cfg.log_level == "WARNING"


class TestConfigFromEnv:
    """Tests for configuration from environment variables."""

    def test_custom_db_path(self):
        with patch.dict(os.environ, {"MATRIXWATCH_DB_PATH": "/custom/path.db"}):
            cfg = Config()
            assert cfg.db_path == Path("/custom/path.db")

    def test_thresholds_path(self):
        with patch.dict(os.environ, {"MATRIXWATCH_THRESHOLDS_PATH": "/etc/matrix.json"}):
            cfg = Config()
            assert cfg.thresholds_path == Path("/etc/matrix.json")
            assert cfg.has_threshold_override is True

    def test_max_workers_and_log_level(self):
        env = {"MATRIXWATCH_MAX_WORKERS": "8", "MATRIXWATCH_LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env):
            cfg = Config()
            assert cfg.max_workers == 8
            assert cfg.log_level == "DEBUG"

    def test_string_paths_converted(self):
        cfg = Config(db_path="x.db", thresholds_path="t.json")

        assert cfg.db_path == Path("x.db")
        assert cfg.thresholds_path == Path("t.json")


class TestConfigValidation:
    """Tests for validate() method."""

    def test_defaults_valid(self, tmp_path):
        Config(db_path=tmp_path / "m.db", thresholds_path=None).validate()

    def test_zero_workers_raises(self, tmp_path):
        cfg = Config(db_path=tmp_path / "m.db", thresholds_path=None, max_workers=0)

        with pytest.raises(ConfigurationError, match="MAX_WORKERS"):
            cfg.validate()

    def test_missing_threshold_file_raises(self, tmp_path):
        cfg = Config(db_path=tmp_path / "m.db", thresholds_path=tmp_path / "absent.json")

        with pytest.raises(ConfigurationError, match="not found"):
            cfg.validate()

    def test_existing_threshold_file_valid(self, tmp_path):
        path = tmp_path / "matrix.json"
        path.write_text("{}", encoding="utf-8")

        Config(db_path=tmp_path / "m.db", thresholds_path=path).validate()

    def test_ensure_directories(self, tmp_path):
        cfg = Config(db_path=tmp_path / "nested" / "dir" / "m.db", thresholds_path=None)

        cfg.ensure_directories()

        assert (tmp_path / "nested" / "dir").is_dir()
