"""Unit tests for session configuration and logging setup."""

import logging

import pytest

from synapsis_session.config import SessionConfig
from synapsis_session.logging import LOG_FORMAT, configure_logging


class TestSessionConfig:
    """Test defaults and environment overrides."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("SYNAPSIS_TOPIC_PREFIX", "SYNAPSIS_SHOW_REASONING", "SYNAPSIS_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        config = SessionConfig.from_env()

        assert config.topic_prefix == "session:"
        assert config.show_reasoning is True
        assert config.log_level == "WARNING"

    def test_topic(self):
        assert SessionConfig().topic("abc") == "session:abc"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SYNAPSIS_TOPIC_PREFIX", "chat:")
        monkeypatch.setenv("SYNAPSIS_SHOW_REASONING", "off")
        monkeypatch.setenv("SYNAPSIS_LOG_LEVEL", "debug")

        config = SessionConfig.from_env()

        assert config.topic("abc") == "chat:abc"
        assert config.show_reasoning is False
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["1", "true", "Yes", " ON "])
    def test_truthy_flags(self, monkeypatch, value):
        monkeypatch.setenv("SYNAPSIS_SHOW_REASONING", value)

        assert SessionConfig.from_env().show_reasoning is True

    def test_invalid_flag(self, monkeypatch):
        monkeypatch.setenv("SYNAPSIS_SHOW_REASONING", "maybe")

        with pytest.raises(ValueError, match="SYNAPSIS_SHOW_REASONING"):
            SessionConfig.from_env()


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_single_stderr_handler(self):
        configure_logging("debug")
        configure_logging("info")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert root.handlers[0].formatter._fmt == LOG_FORMAT
