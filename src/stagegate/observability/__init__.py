"""Observability module for StageGate.

Provides structured logging for the engine, the HTTP handler and the CLI.
"""

from stagegate.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
]
