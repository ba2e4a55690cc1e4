"""Logging configuration for the retrieval CLI.

Log lines go to stderr so that ``retrieve --json`` output on stdout stays
machine readable. Two formats are available: plain text for a terminal and
one JSON object per line for log shippers.

Services attach retrieve context to their records through ``extra``
(``data_type``, ``source`` and ``value_set_id``). Both formats render it.

Security Impact:
    - Record contents are never logged, only types, ids and counts
    - Terminology headers are never passed to a logger
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Attributes a service may attach to a record via ``extra``
RETRIEVE_CONTEXT_FIELDS = ("data_type", "source", "value_set_id")

# HTTP client loggers; they only follow the root level when debugging
NOISY_LOGGERS = ("urllib3", "requests")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def retrieve_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the retrieve context attached to ``record``, skipping None values."""
    context = {}
    for attribute in RETRIEVE_CONTEXT_FIELDS:
        value = getattr(record, attribute, None)
        if value is not None:
            context[attribute] = value
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with the retrieve context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(retrieve_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """Plain text formatter that appends the retrieve context as ``key=value`` pairs."""

    def __init__(self):
        super().__init__(PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = retrieve_context(record)
        if not context:
            return line

        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        first, newline, rest = line.partition("\n")
        return f"{first} [{pairs}]{newline}{rest}"


def setup_logging(use_json: bool = False, log_level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Handler:
    """Install a single stderr handler on the root logger.

    Parameters:
        use_json: Emit JSON lines instead of plain text
        log_level: Logging level name; unknown names fall back to INFO
        stream: Output stream (defaults to stderr)

    Returns:
        logging.Handler: The installed handler
    """
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if use_json else ContextFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Terminology server requests are only interesting with --verbose
    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    return handler
