"""Logging configuration for the server and its forked connection handlers."""

import json
import logging
import re
import sys
from logging.handlers import WatchedFileHandler
from pathlib import Path
from typing import Any, Optional

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter

LOGGER_NAME = "minihttpd"
TEXT_FORMAT = (
    "%(asctime)s %(levelname)s [%(process)d %(correlation_id)s] %(name)s :: %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
REDACTED = "[REDACTED]"

# Query strings and header values are client controlled and may carry secrets.
CREDENTIAL_PATTERNS = [
    re.compile(r"(?i)(authorization|token|key|signature|password|secret|api[_-]?key)"),
    re.compile(r"\b[A-Fa-f0-9]{32,}\b"),
    re.compile(r"\b[A-Za-z0-9+/]{32,}={0,2}\b"),
]

RECORD_FIELDS = (
    "client",
    "method",
    "uri",
    "query",
    "path",
    "header",
    "value",
    "handler",
    "status_code",
    "bytes_out",
    "exit_status",
    "entries",
    "extension",
    "error_type",
    "errno",
    "pid",
    "children",
    "host",
    "port",
    "root",
    "mode",
    "mime_types",
    "destination",
    "use_json",
    "signal",
)
CLIENT_SUPPLIED_FIELDS = frozenset({"query", "value"})


def redact_sensitive(value: str) -> str:
    """Replace ``value`` wholesale when any part of it looks like a credential."""
    if value and any(pattern.search(value) for pattern in CREDENTIAL_PATTERNS):
        return REDACTED
    return value


class CorrelationIdFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    """Give records logged outside a connection a ``-`` correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {}
    for name in RECORD_FIELDS:
        if not hasattr(record, name):
            continue
        value = getattr(record, name)
        if name in CLIENT_SUPPLIED_FIELDS and isinstance(value, str):
            value = redact_sensitive(value)
        fields[name] = value
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per line, keys sorted, tagged with the emitting pid.

    Forked handlers write to the same destination as the accept loop, so
    ``pid`` and ``correlation_id`` together identify a connection.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "pid": record.process,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "component": getattr(record, "component", "unknown"),
            "message": record.getMessage(),
        }
        if hasattr(record, "event"):
            payload["event"] = record.event
        payload.update(_record_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def _resolve_level(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _build_handler(
    destination: Optional[str], level: int, use_json: bool = True
) -> logging.Handler:
    """Create the stdout handler or an append-only file handler.

    Files are opened with ``WatchedFileHandler``: every forked child holds
    the same file open, so rotation is left to an external tool and the
    handler reopens the path once it has been moved away.
    """
    if destination and destination.lower() != "stdout":
        log_path = Path(destination)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = WatchedFileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if use_json:
        handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, DATE_FORMAT))

    handler.addFilter(CorrelationIdFilter())
    return handler


def configure_logging(
    level: str = "INFO", destination: Optional[str] = None, use_json: bool = True
) -> CorrelationLoggerAdapter:
    """Install a single handler on the ``minihttpd`` logger and return an adapter."""
    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    logger.addHandler(_build_handler(destination, numeric_level, use_json))
    adapter = CorrelationLoggerAdapter(logger, {})
    adapter.info(
        "Logging configured",
        extra={
            "event": "logging_configured",
            "destination": destination or "stdout",
            "use_json": use_json,
        },
    )
    return adapter
