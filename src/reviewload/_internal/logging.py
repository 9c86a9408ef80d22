"""Structured logging setup for reviewload."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

# Extra attributes copied into JSON log lines when a call site passes them
# via ``extra={...}``.
_CONTEXT_FIELDS = ("vu", "iteration", "request")


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, message,
    plus any virtual-user context (``vu``, ``iteration``, ``request``) attached
    to the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field_name in _CONTEXT_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                log_entry[field_name] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root reviewload logger.

    Installs a single stderr handler on the ``reviewload`` namespace. Calling
    it again only updates the level, so the CLI and the runner can both call
    it safely.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs.

    Returns:
        The configured ``reviewload`` root logger.
    """
    logger = logging.getLogger("reviewload")
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Keep output off the root logger so it is not printed twice
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``reviewload`` namespace.

    Args:
        name: Logger name, appended to the ``reviewload.`` prefix.
            Example: ``get_logger("engine.session")`` returns
            ``logging.getLogger("reviewload.engine.session")``.

    Returns:
        A child logger.
    """
    return logging.getLogger(f"reviewload.{name}")
