"""Logging setup for the localbiz CLI and services.

Two output modes share one root handler:

- human readable lines for terminals, with the active ``LogContext`` fields
  appended in parentheses
- JSON lines for log shippers (the default outside ``APP_ENV=dev``)

Stage services log through a ``ContextAdapter`` so that every record they
emit carries the stage name and the business or website being processed.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SERVICE_NAME = "localbiz"

NOISY_LOGGERS = (
    "urllib3",
    "requests",
    "httpx",
    "httpcore",
    "openai",
    "googlemaps",
    "aiosqlite",
    "asyncio",
)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Emit one JSON object per record.

    Fields passed through ``extra`` (including those a ContextAdapter adds)
    are collected under ``"extra"``.
    """

    def __init__(self, service_name: str = SERVICE_NAME, include_extra: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": self.service_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_extra:
            extra = _extra_fields(record)
            if extra:
                payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line formatter for terminals, colored when stdout is a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def _level(self, levelname: str) -> str:
        if not self.use_colors:
            return f"{levelname:8}"
        return f"{self.COLORS.get(levelname, '')}{levelname:8}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{timestamp}] {self._level(record.levelname)} [{record.name}] {record.getMessage()}"

        context = LogContext.get_context()
        if context:
            line += " (" + " ".join(f"{k}={v}" for k, v in sorted(context.items())) + ")"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
    service_name: str = SERVICE_NAME,
) -> logging.Logger:
    """Install a single console handler on the root logger.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL env var or INFO.
        structured: Emit JSON lines. Defaults to True outside APP_ENV=dev.
        service_name: Service name included in structured records.

    Returns:
        The ``localbiz`` package logger.

    Example:
        >>> logger = setup_logging(level="DEBUG", structured=False)
        >>> logger.info("Discovery started", extra={"area": "Oxford, MS"})
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    if structured is None:
        structured = os.environ.get("APP_ENV", "dev") != "dev"

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        StructuredFormatter(service_name=service_name) if structured else HumanReadableFormatter()
    )

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    # Third-party chatter only shows up when debugging
    third_party_level = logging.WARNING if log_level > logging.DEBUG else log_level
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
    # SQL echo is controlled by DATABASE_ECHO, never by the log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(SERVICE_NAME)
    logger.debug("Logging initialized", extra={"log_level": level_name, "structured": structured})
    return logger


class LogContext:
    """Context manager that attaches fields to every log line inside it.

    Example:
        >>> with LogContext(stage="generation", business_id="abc"):
        ...     logger.info("Generating")
    """

    _context: Dict[str, Any] = {}

    def __init__(self, **fields: Any):
        self.fields = fields
        self._saved: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._saved = LogContext._context
        LogContext._context = {**self._saved, **self.fields}
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        LogContext._context = self._saved

    @classmethod
    def get_context(cls) -> Dict[str, Any]:
        return dict(cls._context)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges its own, per-call and LogContext fields into ``extra``."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {
            **(self.extra or {}),
            **(kwargs.get("extra") or {}),
            **LogContext.get_context(),
        }
        return msg, kwargs
