# tests/unit/config/test_settings.py — v1
"""Tests for config/settings.py — defaults, env loading, validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from iacdiagram.config.settings import ConfigurationError, Settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "ENHANCE_MODE", "MAX_PARALLEL_VARIANTS", "DATA_DIR", "LOG_ROTATION"):
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.data_dir == Path("./iac-data")
        assert s.enhance_mode == "auto"
        assert s.max_parallel_variants == 1
        assert s.anthropic_api_key == ""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ENHANCE_MODE", "never")
        monkeypatch.setenv("DATA_DIR", "/tmp/iac")
        s = Settings(_env_file=None)
        assert s.enhance_mode == "never"
        assert s.data_dir == Path("/tmp/iac")

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, max_parallel_variants=4)
        assert s.max_parallel_variants == 4

    def test_parallel_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="MAX_PARALLEL_VARIANTS"):
            Settings(_env_file=None, max_parallel_variants=0)

    def test_bad_rotation(self):
        with pytest.raises(ConfigurationError, match="LOG_ROTATION"):
            Settings(_env_file=None, log_rotation="huge")

    def test_user_config_path_expanded(self):
        s = Settings(_env_file=None)
        assert "~" not in str(s.resolved_user_config_path)
