"""
Structured JSON logging utilities.

Migration runs are usually executed from deployment jobs whose output
ends up in a log aggregator, so the operator script can switch to
single-line JSON records.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .migration.types import KeyResult

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 time the record was created, in UTC
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - Additional context fields from extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_obj[key] = value
                except (TypeError, ValueError):
                    log_obj[key] = str(value)

        return json.dumps(log_obj, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = None,
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure logging for a migration run.

    Args:
        level: Logging level (default: INFO)
        logger_name: Specific logger to configure (default: root logger)
        json_output: Emit JSON lines instead of plain text

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s  %(name)s  %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_migration_logger(name: str) -> logging.Logger:
    """
    Get a logger for migration components with consistent naming.

    Args:
        name: Component name (e.g., 'runner', 'redis')

    Returns:
        Logger instance with name 'session_cutover.{name}'
    """
    return logging.getLogger(f"session_cutover.{name}")


class MigrationLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds run context to all log messages.

    Used by the runner to tag every line with the prefix being
    migrated and whether the run is a dry run. Per-key lines also
    carry key, outcome, session_id and duration_ms so a single key can
    be followed through the aggregator.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add run context to log record; per-call fields win."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def key_result(self, result: KeyResult) -> None:
        """Log the outcome of one key: failures at WARNING, the rest at DEBUG."""
        extra: dict[str, Any] = {"key": result.key, "outcome": result.outcome.value}
        if result.session_id:
            extra["session_id"] = result.session_id
        if result.duration_seconds is not None:
            extra["duration_ms"] = round(result.duration_seconds * 1000, 3)

        if result.error_type:
            extra["error_type"] = result.error_type
            self.warning(f"Failed to migrate {result.key}: {result.reason}", extra=extra)
        else:
            self.debug(f"{result.key}: {result.outcome.value}", extra=extra)
