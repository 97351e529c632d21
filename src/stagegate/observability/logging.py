"""Structured logging configuration for StageGate.

Engine transitions, evaluations and HTTP requests are logged as structlog
events (``project_created``, ``stage_evaluated``...). They go to two sinks:

- the console on stderr, through rich, filtered by the ``-v`` count
- optionally ``{log_dir}/stagegate.jsonl``, one JSON object per event, at DEBUG
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import Processor

LOG_FILENAME = "stagegate.jsonl"

# Server and HTTP client loggers that flood DEBUG output
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")

# Module-level state
_configured = False
_file_handler: logging.FileHandler | None = None


def console_level(verbosity: int) -> int:
    """Console log level for a ``-v`` count: WARNING, INFO, then DEBUG."""
    if verbosity <= 0:
        return logging.WARNING
    return logging.INFO if verbosity == 1 else logging.DEBUG


def jsonl_entry(record: logging.LogRecord) -> dict[str, Any]:
    """Flatten a log record into one JSONL object.

    Records from structlog carry the event dict in ``record.msg``; its
    ``event`` becomes the entry's ``event`` and the remaining keys are
    copied alongside it. Plain stdlib records contribute their message.
    """
    entry: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
    }
    if isinstance(record.msg, dict):
        fields = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
        entry["event"] = fields.pop("event", "")
        entry.update(fields)
    else:
        entry["event"] = record.getMessage()
    return entry


class JSONLFileHandler(logging.FileHandler):
    """File handler that appends one JSON line per record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(jsonl_entry(record), default=str) + "\n"
            if self.stream:
                self.stream.write(line)
                self.stream.flush()
        except Exception:
            self.handleError(record)


def configure_logging(verbosity: int = 0, log_dir: Path | None = None) -> None:
    """Configure logging for StageGate.

    Safe to call more than once; a previous JSONL file is closed first.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_dir: When given, every event is also appended to
            ``{log_dir}/stagegate.jsonl``. The directory is created if needed.
    """
    global _configured, _file_handler

    close_file_logging()

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbosity >= 2,
            show_time=verbosity >= 1,
            show_path=verbosity >= 2,
            markup=False,
            level=console_level(verbosity),
        )
    ]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        _file_handler = JSONLFileHandler(str(log_dir / LOG_FILENAME), mode="a")
        _file_handler.setLevel(logging.DEBUG)
        handlers.append(_file_handler)

    # The root stays open whenever any sink wants more than WARNING
    root_level = logging.DEBUG if (verbosity > 0 or log_dir is not None) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger, configuring console-only logging on first use.

    Args:
        name: Logger name (typically __name__).
    """
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Close the JSONL file handler, if one is open."""
    global _file_handler
    if _file_handler:
        _file_handler.close()
        _file_handler = None
