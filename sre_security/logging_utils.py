"""
Structured JSON logging for access decisions.

Connectors log every denial (and, at debug level, every grant) with a fixed
set of audit fields. Rendered through StructuredJsonFormatter, each decision
becomes one queryable JSON line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .access.request import AccessTicket

AUDIT_FIELDS = ("connector", "decision", "request_id", "candidate", "resource_id", "levels")

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for security logs.

    Outputs single-line JSON objects:
    - timestamp, level, logger, message
    - audit fields (see AUDIT_FIELDS) first when present
    - any other extra fields, stringified if not JSON-serializable
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for key in AUDIT_FIELDS:
            if key in extras:
                log_obj[key] = _jsonable(extras.pop(key))
        for key, value in extras.items():
            log_obj[key] = _jsonable(value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def configure_structured_logging(
    level: int | str = logging.INFO,
    logger_name: str | None = "sre_security",
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Route a logger's output through StructuredJsonFormatter.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger,
            None for the root logger)
        stream: Output stream (default: stdout)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Replace, never stack, handlers on repeated calls
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_security_logger(name: str) -> logging.Logger:
    """Logger named ``sre_security.<name>`` for a connector or component."""
    return logging.getLogger(f"sre_security.{name}")


def audit_extra(ticket: "AccessTicket") -> dict[str, Any]:
    """Audit fields describing one access decision."""
    request = ticket.request
    return {
        "decision": ticket.access.value,
        "request_id": request.id,
        "candidate": str(request.candidate),
        "resource_id": request.resource_id,
        "levels": [level.value for level in request.levels],
    }


class SecurityLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps connector context on every record.

    Context from the adapter wins over a caller's ``extra`` with the same key,
    so a record can never claim to come from another connector.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **(self.extra or {})}
        return msg, kwargs
