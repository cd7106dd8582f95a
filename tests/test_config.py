#!/usr/bin/env python3
"""
Tests for config.py

Tests overrides, env parsing and validate_config().
"""

import importlib

import pytest

import config


@pytest.fixture(autouse=True)
def clean_overrides():
    config.clear_config_overrides()
    yield
    config.clear_config_overrides()


class TestOverrides:

    def test_override_wins(self):
        config.set_config_override("GC_TIMER_ENABLED", False)
        assert config.get_config("GC_TIMER_ENABLED") is False

    def test_fallback_to_module_default(self):
        assert config.get_config("HEALTH_LOG_BACKUP_DAYS") == config.HEALTH_LOG_BACKUP_DAYS
        assert config.get_config("DOES_NOT_EXIST", "x") == "x"


class TestEnvParsing:

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("true", True), ("YES", True), (" on ", True),
        ("0", False), ("off", False), ("", False),
    ])
    def test_env_flag(self, monkeypatch, raw, expected):
        monkeypatch.setenv("MEMPROBE_TEST_FLAG", raw)
        assert config._env_flag("MEMPROBE_TEST_FLAG") is expected

    def test_env_flag_default(self, monkeypatch):
        monkeypatch.delenv("MEMPROBE_TEST_FLAG", raising=False)
        assert config._env_flag("MEMPROBE_TEST_FLAG", True) is True

    def test_env_bytes(self, monkeypatch):
        monkeypatch.setenv("MEMPROBE_TEST_BYTES", " 1024 ")
        assert config._env_bytes("MEMPROBE_TEST_BYTES") == 1024

        monkeypatch.setenv("MEMPROBE_TEST_BYTES", "")
        assert config._env_bytes("MEMPROBE_TEST_BYTES") is None

    def test_env_bytes_unparsable_kept_raw(self, monkeypatch):
        monkeypatch.setenv("MEMPROBE_TEST_BYTES", " 1G ")
        assert config._env_bytes("MEMPROBE_TEST_BYTES") == "1G"

    def test_malformed_env_reported_by_validate(self, monkeypatch):
        """Test a bad MEMPROBE_MAX_MEMORY_BYTES survives import and fails validation"""
        monkeypatch.setenv("MEMPROBE_MAX_MEMORY_BYTES", "1G")
        try:
            importlib.reload(config)
            assert config.MAX_MEMORY_BYTES == "1G"
            config.set_config_override("LOG_LEVEL", "INFO")
            with pytest.raises(ValueError, match="MAX_MEMORY_BYTES"):
                config.validate_config()
        finally:
            monkeypatch.delenv("MEMPROBE_MAX_MEMORY_BYTES")
            importlib.reload(config)


class TestValidateConfig:

    def test_defaults_valid(self):
        config.set_config_override("MAX_MEMORY_BYTES", None)
        config.set_config_override("LOG_LEVEL", "INFO")
        assert config.validate_config() is True

    @pytest.mark.parametrize("key,value", [
        ("MAX_MEMORY_BYTES", 0),
        ("MAX_MEMORY_BYTES", True),
        ("MAX_MEMORY_BYTES", "1G"),
        ("GC_TIMER_ENABLED", "yes"),
        ("HOST_MEMORY_INTROSPECTION", 1),
        ("HEALTH_LOG_BACKUP_DAYS", 0),
        ("LOG_LEVEL", "VERBOSE"),
    ])
    def test_invalid_values(self, key, value):
        config.set_config_override("LOG_LEVEL", "INFO")
        config.set_config_override(key, value)

        with pytest.raises(ValueError, match=key):
            config.validate_config()
