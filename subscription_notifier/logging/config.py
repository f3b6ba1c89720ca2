"""Logging configuration for the subscription notifier."""

import json
import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict, Literal

from .context import get_log_context

LogFormat = Literal["json", "key-value"]

SERVICE_NAME = "subscription-notifier"

# LogRecord attributes that are never emitted as structured fields
RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "asctime",
    "exc_info", "exc_text", "stack_info", "taskName",
})


class ContextualFilter(logging.Filter):
    """Stamp records with static service metadata and the active log context.

    Fields passed explicitly through ``extra`` win over context fields with
    the same name.
    """

    def __init__(self, service: str = SERVICE_NAME, environment: str = "local"):
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


def _extra_fields(record: logging.LogRecord, skip=RESERVED_ATTRS) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in skip and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """Single-line JSON formatter with stable field names.

    Output always contains ``timestamp``, ``level`` and ``message``; every
    extra or context field is added alongside them.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        for key, value in _extra_fields(record).items():
            log_obj[key] = self._coerce(value)

        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False)

    @staticmethod
    def _coerce(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, (str, int, float, bool, type(None), list, dict)):
            return value
        return str(value)

    @staticmethod
    def _format_timestamp(created: float) -> str:
        """Format a record timestamp as ISO-8601 UTC with millisecond precision."""
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class KeyValueFormatter(logging.Formatter):
    """Human-readable formatter.

    Produces ``timestamp [LEVEL] logger: message key1=value1 key2=value2``
    with extras sorted by key. Static service fields are left out to keep
    console output short.
    """

    SKIP_ATTRS = RESERVED_ATTRS | {"service", "environment"}

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        extras = [
            f"{key}={self._render(value)}"
            for key, value in sorted(_extra_fields(record, self.SKIP_ATTRS).items())
        ]

        if extras:
            return f"{base} {' '.join(extras)}"
        return base

    @staticmethod
    def _render(value: Any) -> str:
        if isinstance(value, str):
            if " " in value or "=" in value or "," in value:
                return f'"{value}"'
            return value
        if isinstance(value, (datetime, date)):
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
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'json' or 'key-value'
        environment: Environment label stamped on every record

    Raises:
        ValueError: If level or format_type is invalid
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    if format_type not in ("json", "key-value"):
        raise ValueError(f"Invalid log format: {format_type}. Must be 'json' or 'key-value'")

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            KeyValueFormatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    handler.addFilter(ContextualFilter(service=SERVICE_NAME, environment=environment))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "event": "logging.configured",
            "component": "logging",
            "log_level": str(level).upper(),
            "log_format": format_type,
        },
    )
