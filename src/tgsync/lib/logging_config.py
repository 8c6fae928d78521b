"""
Structured logging configuration for tgsync.

Provides JSON-formatted logging with OpenTelemetry trace correlation.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from opentelemetry import trace

from tgsync.lib.errors import UpstreamRequestFailed


_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "message",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active span when there is one.

    Values passed through ``extra=`` become top-level keys. Failed daemon
    requests also carry the command that failed.
    """

    def __init__(self, include_trace: bool = True, extra_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.include_trace = include_trace
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if self.include_trace:
            entry.update(self._span_fields())
        if record.exc_info:
            entry["exception"] = self._exception_fields(record)

        entry.update({key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS})
        entry.update(self.extra_fields)
        return json.dumps(entry, ensure_ascii=False, default=str)

    @staticmethod
    def _span_fields() -> Dict[str, str]:
        span = trace.get_current_span()
        if not span.is_recording():
            return {}
        context = span.get_span_context()
        return {"trace_id": format(context.trace_id, "032x"), "span_id": format(context.span_id, "016x")}

    def _exception_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        error_type, error, _ = record.exc_info
        fields = {
            "type": error_type.__name__ if error_type else None,
            "message": str(error) if error else None,
            "traceback": self.formatException(record.exc_info),
        }
        if isinstance(error, UpstreamRequestFailed):
            fields["command"] = error.command
        return fields


def build_logging_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Build a ``dictConfig`` mapping from the logging section of the config."""
    log_level = config.get("level", "INFO").upper()
    log_format = config.get("format", "structured")

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "structured" if log_format == "structured" else "simple",
            "stream": sys.stdout
        }
    }

    if config.get("directory"):
        log_dir = Path(config["directory"]).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "structured",
            "filename": str(log_dir / "tgsync.log"),
            "maxBytes": config.get("max_file_size", 10 * 1024 * 1024),  # 10MB
            "backupCount": config.get("backup_count", 5)
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "include_trace": config.get("include_trace", True),
                "extra_fields": {
                    "service": "tgsync",
                    "environment": config.get("environment", "development")
                }
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": handlers,
        "loggers": {
            "tgsync": {
                "level": log_level,
                "handlers": list(handlers),
                "propagate": False
            },
            "opentelemetry": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        },
        "root": {
            "level": log_level,
            "handlers": ["console"]
        }
    }


def setup_logging(config: Dict[str, Any]) -> None:
    """Setup structured logging configuration."""
    logging_config = build_logging_config(config)
    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("tgsync.logging")
    logger.info("Structured logging initialized", extra={
        "config": {
            "level": logging_config["loggers"]["tgsync"]["level"],
            "format": config.get("format", "structured"),
            "directory": config.get("directory")
        }
    })
