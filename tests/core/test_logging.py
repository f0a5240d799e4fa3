# tests/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging

import pytest


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_get_logger_returns_logger(self) -> None:
        """get_logger returns a bound logger."""
        from flowstitch.core.logging import get_logger

        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_json_output_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """JSON log lines are written to stderr; stdout stays clean for artifacts."""
        from flowstitch.core.logging import configure_logging, get_logger

        configure_logging(json_output=True)
        get_logger("test").info("merge_completed", nodes=4)

        captured = capsys.readouterr()
        assert captured.out == ""
        data = json.loads(captured.err.strip().split("\n")[-1])
        assert data["event"] == "merge_completed"
        assert data["nodes"] == 4
        assert "timestamp" in data
        assert "_record" not in data

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Console mode is human-readable, not JSON."""
        from flowstitch.core.logging import configure_logging, get_logger

        configure_logging(json_output=False)
        get_logger("test").info("validation_completed", valid=True)

        captured = capsys.readouterr()
        assert "validation_completed" in captured.err
        assert not captured.err.strip().split("\n")[-1].startswith("{")

    def test_level_filters_records(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Records below the configured level are dropped."""
        from flowstitch.core.logging import configure_logging, get_logger

        configure_logging(json_output=True, level="WARNING")
        logger = get_logger("test")
        logger.info("hidden")
        logger.warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_stdlib_loggers_emit_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Modules using logging.getLogger go through the same renderer."""
        from flowstitch.core.logging import configure_logging

        configure_logging(json_output=True)
        logging.getLogger("test.stdlib.module").info("message from stdlib logger")

        data = json.loads(capsys.readouterr().err.strip().split("\n")[-1])
        assert data["event"] == "message from stdlib logger"
        assert "level" in data

    def test_noisy_third_party_loggers_silenced(self) -> None:
        """Third-party loggers stay at WARNING even in DEBUG mode."""
        from flowstitch.core.logging import configure_logging

        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        for name in ("dynaconf", "networkx"):
            assert logging.getLogger(name).getEffectiveLevel() >= logging.WARNING
