"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from stagegate.observability import close_file_logging, configure_logging, get_logger
from stagegate.observability.logging import LOG_FILENAME, console_level, jsonl_entry

if TYPE_CHECKING:
    from pathlib import Path


def test_configure_logging_sets_level_warning() -> None:
    """Default verbosity (0) sets WARNING level."""
    configure_logging(verbosity=0)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.WARNING


def test_configure_logging_verbose_sets_debug_root() -> None:
    """verbosity=1 opens the root logger; the console handler filters at INFO."""
    configure_logging(verbosity=1)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG


@pytest.mark.parametrize(
    ("verbosity", "level"),
    [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
)
def test_console_level(verbosity: int, level: int) -> None:
    assert console_level(verbosity) == level


def test_get_logger_returns_bound_logger() -> None:
    """get_logger returns a structlog logger with expected methods."""
    logger = get_logger(__name__)

    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    import stagegate.observability.logging as log_module

    log_module._configured = False

    logger = get_logger("test")

    assert log_module._configured is True
    assert logger is not None


def test_configure_logging_suppresses_noisy_loggers() -> None:
    """Server and client loggers stay at WARNING even at DEBUG verbosity."""
    configure_logging(verbosity=2)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_configure_logging_with_log_dir(tmp_path: Path) -> None:
    """A log directory is created and holds the JSONL file."""
    log_dir = tmp_path / "logs"
    configure_logging(verbosity=0, log_dir=log_dir)
    close_file_logging()

    assert log_dir.exists()
    assert (log_dir / LOG_FILENAME).exists()


def test_file_logging_opens_root_logger(tmp_path: Path) -> None:
    """The JSONL sink receives DEBUG events even at default console verbosity."""
    configure_logging(verbosity=0, log_dir=tmp_path)
    close_file_logging()

    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_without_log_dir() -> None:
    import stagegate.observability.logging as log_module

    configure_logging(verbosity=0)

    assert log_module._file_handler is None


def test_configure_logging_reconfiguration_closes_handler(tmp_path: Path) -> None:
    """Reconfiguring logging closes the previous file handler."""
    import stagegate.observability.logging as log_module

    configure_logging(verbosity=0, log_dir=tmp_path)
    first_handler = log_module._file_handler
    assert first_handler is not None

    configure_logging(verbosity=0, log_dir=tmp_path)
    second_handler = log_module._file_handler

    assert first_handler.stream is None or first_handler.stream.closed
    assert second_handler is not None
    assert second_handler is not first_handler
    close_file_logging()


def test_close_file_logging_clears_handler(tmp_path: Path) -> None:
    """close_file_logging closes handler and clears reference."""
    import stagegate.observability.logging as log_module

    configure_logging(verbosity=0, log_dir=tmp_path)
    assert log_module._file_handler is not None

    close_file_logging()

    assert log_module._file_handler is None


class TestJsonlEntry:
    """Tests for jsonl_entry."""

    def test_structlog_event_dict(self) -> None:
        record = logging.LogRecord(
            "stagegate.pipeline.engine",
            logging.INFO,
            __file__,
            1,
            {"event": "stage_completed", "stage_id": "draft", "level": "info"},
            None,
            None,
        )

        entry = jsonl_entry(record)

        assert entry["event"] == "stage_completed"
        assert entry["stage_id"] == "draft"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "stagegate.pipeline.engine"

    def test_plain_record(self) -> None:
        record = logging.LogRecord(
            "uvicorn.error", logging.WARNING, __file__, 1, "port %d busy", (8000,), None
        )

        entry = jsonl_entry(record)

        assert entry["event"] == "port 8000 busy"
        assert entry["level"] == "WARNING"


def test_jsonl_file_handler_writes_structlog_context(tmp_path: Path) -> None:
    """Events logged through structlog land in the JSONL file with their context."""
    configure_logging(verbosity=2, log_dir=tmp_path)

    logger = get_logger("test.context")
    logger.info("stage_evaluated", stage_id="draft", passed=2)

    close_file_logging()

    log_file = tmp_path / LOG_FILENAME
    assert log_file.exists()

    found = False
    with log_file.open() as f:
        for line in f:
            entry = json.loads(line)
            if entry.get("event") == "stage_evaluated":
                found = True
                assert entry["stage_id"] == "draft"
                assert entry["passed"] == 2
                assert entry["level"] == "INFO"
                break

    assert found, "Log entry with structlog context not found in JSONL"
