"""
Tests for logging configuration and run statistics.
"""

import logging

import pytest

from leadgrader.logging_setup import (
    RunContext,
    console_level_from_env,
    get_logger,
    setup_logging,
)


class TestConsoleLevel:

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("LEADGRADER_LOG_LEVEL", raising=False)
        assert console_level_from_env() == logging.INFO

    def test_named_level(self, monkeypatch):
        monkeypatch.setenv("LEADGRADER_LOG_LEVEL", "debug")
        assert console_level_from_env() == logging.DEBUG

    def test_unknown_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("LEADGRADER_LOG_LEVEL", "chatty")
        assert console_level_from_env() == logging.INFO


class TestSetupLogging:

    def test_file_log_keeps_debug_detail(self, tmp_path):
        logger = setup_logging("leadgrader_test_file", console_level=logging.WARNING, log_dir=tmp_path)
        try:
            levels = sorted(h.level for h in logger.handlers)
            assert levels == [logging.DEBUG, logging.WARNING]

            logger.debug("sweep detail")
            for handler in logger.handlers:
                handler.flush()
            assert "sweep detail" in (tmp_path / "leadgrader_test_file.log").read_text(encoding="utf-8")
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_repeated_setup_adds_no_handlers(self, tmp_path):
        first = setup_logging("leadgrader_test_repeat", log_dir=tmp_path)
        try:
            second = setup_logging("leadgrader_test_repeat", log_dir=tmp_path)
            assert second is first
            assert len(second.handlers) == 2
        finally:
            for handler in list(first.handlers):
                handler.close()
                first.removeHandler(handler)

    def test_module_loggers_are_namespaced(self):
        assert get_logger("discovery").name == "leadgrader.discovery"


class TestRunContext:

    def test_counts_known_stats_only(self):
        run_ctx = RunContext(logging.getLogger("test"))
        run_ctx.increment("low_score")
        run_ctx.increment("low_score", 2)
        run_ctx.increment("unknown")
        assert run_ctx.stats["low_score"] == 3
        assert "unknown" not in run_ctx.stats

    def test_exceptions_are_not_suppressed(self):
        with pytest.raises(ValueError):
            with RunContext(logging.getLogger("test")):
                raise ValueError("boom")
