"""
Logging setup for the pricing engine and its API.

Standard library logging with a human-readable formatter by default and a
JSON formatter for log pipelines. Call configure_logging() once at process
start; modules use logging.getLogger(__name__).
"""
import json
import logging
import logging.config
from typing import Any, Optional

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    for key, value in vars(record).items():
        if key not in _RESERVED and not key.startswith("_"):
            payload[key] = value
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        return _json_formatter(record)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO")
        json_logs: Emit one JSON object per line instead of console text
    """
    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the given name, or the root logger."""
    return logging.getLogger(name)
