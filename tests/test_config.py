"""
Configuration accessor and validation tests.
"""

import logging

import pytest

from knowledge_server.core import config
from knowledge_server.util.logging import logger


class TestAccessors:

    def test_update_interval_default(self, monkeypatch):
        monkeypatch.delenv("KNOWLEDGE_UPDATE_INTERVAL", raising=False)
        assert config.get_update_interval() == config.KNOWLEDGE_UPDATE_INTERVAL

    def test_update_interval_override(self, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_UPDATE_INTERVAL", "120")
        assert config.get_update_interval() == 120

    def test_auto_update_flag(self, monkeypatch):
        monkeypatch.setenv("AUTO_UPDATE_ENABLED", "false")
        assert not config.is_auto_update_enabled()
        monkeypatch.setenv("AUTO_UPDATE_ENABLED", "TRUE")
        assert config.is_auto_update_enabled()

    def test_debug_flag_falls_back_to_constant(self, monkeypatch):
        monkeypatch.delenv("DEBUG", raising=False)
        assert config.debug_enabled() == config.DEBUG

        monkeypatch.setenv("DEBUG", "true")
        assert config.debug_enabled()

    def test_logger_level_comes_from_config(self):
        assert logger.logger.level == logging.getLevelName(config.LOG_LEVEL)

    def test_bundled_baseline_exists(self, monkeypatch):
        monkeypatch.delenv("KNOWLEDGE_BASELINE_PATH", raising=False)
        assert config.get_baseline_path().endswith("knowledge.json")

    def test_ensure_store_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_STORE_PATH", str(tmp_path / "nested" / "overlay.json"))

        config.ensure_store_directory()

        assert (tmp_path / "nested").is_dir()


class TestValidation:

    def test_defaults_are_valid(self, monkeypatch):
        for name in ("KNOWLEDGE_UPDATE_INTERVAL", "RULE_APPROVAL_MODE", "KNOWLEDGE_BASELINE_PATH"):
            monkeypatch.delenv(name, raising=False)

        assert config.validate_config() == []

    @pytest.mark.parametrize("value", ["0", "-5", "hourly"])
    def test_bad_interval(self, monkeypatch, value):
        monkeypatch.setenv("KNOWLEDGE_UPDATE_INTERVAL", value)

        issues = config.validate_config()

        assert any("KNOWLEDGE_UPDATE_INTERVAL" in issue for issue in issues)

    def test_bad_approval_mode(self, monkeypatch):
        monkeypatch.setenv("RULE_APPROVAL_MODE", "sometimes")

        assert any("RULE_APPROVAL_MODE" in issue for issue in config.validate_config())

    def test_missing_baseline(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_BASELINE_PATH", str(tmp_path / "nope.json"))

        with pytest.raises(config.ConfigurationError):
            config.require_valid_config()
