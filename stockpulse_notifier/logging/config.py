"""Logging configuration for the wishlist notifier.

Every record carries the service name, the environment and whatever is in
the active log_context. Correlation fields (event, message_id, wishlist_id,
...) are emitted first and in a fixed order so that all lines of one
message can be grepped or filtered together.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Literal, Optional, TextIO, Tuple

from .context import get_log_context

LogFormat = Literal["json", "key-value"]

SERVICE_NAME = "stockpulse-notifier"

CORRELATION_FIELDS = (
    "event",
    "component",
    "message_id",
    "wishlist_id",
    "user_id",
    "stock_id",
    "state",
    "reason",
)

# Third-party loggers that are too chatty at INFO (the poll job logs every tick).
QUIET_LOGGERS = {
    "apscheduler": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}

_RECORD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "asctime",
    "exc_info", "exc_text", "stack_info", "taskName",
}


def _extra_fields(record: logging.LogRecord, skip: frozenset) -> Iterator[Tuple[str, Any]]:
    """Yield non-standard record fields, correlation fields first."""
    fields = {
        key: value
        for key, value in record.__dict__.items()
        if key not in skip and not key.startswith("_")
    }

    for key in CORRELATION_FIELDS:
        if key in fields:
            yield key, fields.pop(key)

    yield from sorted(fields.items())


class ContextualFilter(logging.Filter):
    """Filter that enriches log records with static metadata and active context.

    Per-call extras win over context fields of the same name.
    """

    def __init__(self, service: str = SERVICE_NAME, environment: str = "local"):
        """
        Args:
            service: Service name (static field)
            environment: Environment label (production, staging, local)
        """
        super().__init__()
        self.service = service
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        record.environment = self.environment

        for key, value in get_log_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, then fields."""

    SKIP = frozenset(_RECORD_ATTRS)

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in _extra_fields(record, self.SKIP):
            if isinstance(value, datetime):
                log_obj[key] = value.isoformat()
            elif isinstance(value, (str, int, float, bool, list, dict, type(None))):
                log_obj[key] = value
            else:
                log_obj[key] = str(value)

        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False, default=str)

    def _format_timestamp(self, created: float) -> str:
        """ISO-8601 UTC with millisecond precision, e.g. 2025-11-04T10:30:00.123Z."""
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class KeyValueFormatter(logging.Formatter):
    """Human-readable lines.

    Produces logs in format:
    timestamp [level] logger: message event=... message_id=... key=value

    service and environment are left out; they are constant per process.
    """

    SKIP = frozenset(_RECORD_ATTRS | {"service", "environment"})

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        extras: List[str] = [
            f"{key}={self._format_value(value)}" for key, value in _extra_fields(record, self.SKIP)
        ]
        if not extras:
            return base

        # Keep the traceback (if any) below the key-value line.
        head, sep, tail = base.partition("\n")
        return f"{head} {' '.join(extras)}{sep}{tail}"

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, str):
            if " " in value or "=" in value or "," in value:
                return f'"{value}"'
            return value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, bool):
            return str(value).lower()
        if value is None:
            return "null"
        return str(value)


def configure_logging(
    level: str = "INFO",
    format_type: LogFormat = "key-value",
    environment: str = "local",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger with the specified level and format.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'json' for JSON logs or 'key-value' for human-readable
        environment: Environment label (production, staging, local)
        stream: Output stream (default: stdout)

    Raises:
        ValueError: If level or format_type is invalid
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    if format_type not in ("json", "key-value"):
        raise ValueError(f"Invalid log format: {format_type}. Must be 'json' or 'key-value'")

    handler = logging.StreamHandler(stream or sys.stdout)

    if format_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = KeyValueFormatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(ContextualFilter(service=SERVICE_NAME, environment=environment))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # DEBUG keeps everything, otherwise third-party noise is held back.
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(
            logging.NOTSET if numeric_level <= logging.DEBUG else max(quiet_level, numeric_level)
        )

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "event": "logging.configured",
            "component": "logging",
            "log_level": level.upper(),
            "log_format": format_type,
        },
    )
