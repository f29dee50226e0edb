"""Tests for log level configuration."""
import logging

from sessionlens.utils.logger import logger, resolve_level, sdk_logger


class TestResolveLevel:

    def test_named_level(self):
        assert resolve_level("warning", "production") == logging.WARNING
        assert resolve_level(" error ", "development") == logging.ERROR

    def test_environment_default(self):
        assert resolve_level("", "development") == logging.DEBUG
        assert resolve_level(None, "production") == logging.INFO

    def test_unknown_name_falls_back(self):
        assert resolve_level("chatty", "test") == logging.INFO


class TestLoggerTree:

    def test_sdk_loggers_are_children(self):
        assert sdk_logger.name == "sessionlens.sdk"
        assert sdk_logger.parent is logger
        assert logging.getLogger("sessionlens.sdk.delivery").getEffectiveLevel() == logging.WARNING

    def test_api_logger_level(self):
        assert logger.level == logging.INFO
