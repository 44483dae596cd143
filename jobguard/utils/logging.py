import logging
import sys
import json
import datetime
from typing import Any, Dict, Optional, Union

# Attributes passed through ``extra=`` that are copied into JSON records
EXTRA_FIELDS = ("message_id", "queue", "strategy", "verdict")


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per line for log shippers.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(
                record.created, tz=datetime.timezone.utc
            ).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for development.
    """
    def format(self, record: logging.LogRecord) -> str:
        # 2026-10-19T10:00:00 [ERROR] [jobguard.DuplicateDetector] message
        timestamp = datetime.datetime.fromtimestamp(record.created).strftime('%Y-%m-%dT%H:%M:%S')
        line = f"{timestamp} [{record.levelname}] [{record.name}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Union[int, str, None] = None, log_format: Optional[str] = None) -> None:
    """
    Configures the root logger for jobguard processes.
    Defaults come from LOG_LEVEL / LOG_FORMAT in settings (json/text).
    """
    from jobguard.settings import settings

    log_format = (log_format or settings.LOG_FORMAT).lower()
    level = level if level is not None else settings.LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.addHandler(handler)

    # Connection churn in the cache clients is reported through our own errors
    logging.getLogger("valkey").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Returns a logger instance for a given component."""
    return logging.getLogger(f"jobguard.{name}")
