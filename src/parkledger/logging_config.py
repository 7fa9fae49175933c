"""Logging configuration.

Console output is human readable; the json format emits one JSON object per
line for log aggregation. Both are driven by PARKLEDGER_LOG_LEVEL and
PARKLEDGER_LOG_FORMAT (or the matching CLI options).
"""

import json
import logging
import logging.config
from datetime import datetime, UTC

ROOT_LOGGER = "parkledger"

_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs JSON lines with timestamp, level, logger and message, plus the
    exception text and any extra fields passed to the logger.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)


def get_logging_config(level: str = "INFO", fmt: str = "console") -> dict:
    """Return a dictConfig for the parkledger logger tree.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        fmt: "console" or "json"

    Returns:
        logging.config dict
    """
    formatter = "json" if fmt == "json" else "verbose"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
            "json": {
                "()": JsonFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            ROOT_LOGGER: {
                "handlers": ["console"],
                "level": level.upper(),
                "propagate": False,
            },
        },
    }


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Install handlers on the parkledger logger."""
    logging.config.dictConfig(get_logging_config(level, fmt))
