"""
Logging utilities for the lyric sync engine.

Provides human-readable or JSON-structured log lines with run context
(run_id, generation_id) so that every line of a sync run can be traced
back to the delta artifact it produced.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CONTEXT_FIELDS = ("run_id", "generation_id", "query_mode")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Run context fields if present (run_id, generation_id, query_mode)
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with run context.

    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [run_id=X generation_id=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context_parts = []
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


class RunContextFilter(logging.Filter):
    """Copies the active RunContext fields onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in RunContext.get_current().items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream=None,
) -> logging.Logger:
    """
    Configure logging for the lyric_sync package.

    Installs a single handler on the ``lyric_sync`` logger. Log lines go to
    stderr by default so that report output on stdout stays parseable.

    Args:
        level: Logging level (default: INFO)
        structured: If True, output JSON-structured logs; if False, human-readable
        include_timestamp: Whether to include timestamp in log messages
        stream: Optional stream override (default: sys.stderr)

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger("lyric_sync")
    package_logger.setLevel(level)

    # Replace rather than stack handlers when called more than once
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if structured:
        formatter = StructuredFormatter(include_timestamp=include_timestamp)
    else:
        formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

    handler.setFormatter(formatter)
    handler.addFilter(RunContextFilter())
    package_logger.addHandler(handler)

    return package_logger


class RunContext:
    """
    Context manager for adding run fields to log records.

    Example:
        >>> with RunContext(run_id="abc", query_mode="full"):
        ...     logger.info("Diffing records")  # Will include run_id and query_mode
    """

    _current: Optional["RunContext"] = None

    def __init__(self, run_id: Optional[str] = None, **extra: Any):
        self.context = {"run_id": run_id, **extra}
        self.context = {k: v for k, v in self.context.items() if v is not None}
        self._previous: Optional["RunContext"] = None

    def __enter__(self) -> "RunContext":
        self._previous = RunContext._current
        RunContext._current = self
        return self

    def __exit__(self, *args) -> None:
        RunContext._current = self._previous

    def update(self, **fields: Any) -> None:
        """Add fields to the context once they are known (e.g. generation_id)."""
        self.context.update({k: v for k, v in fields.items() if v is not None})

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        """Get the current run context."""
        if cls._current is None:
            return {}
        return cls._current.context.copy()
