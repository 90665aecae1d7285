"""
Structured JSON Logging Module.

One JSON document per line. Besides the usual level/module fields every line
carries the request context of the kitchen action that produced it: the
correlation and event ids of the request, the staff member acting and the
CCP being checked. A failed check, its incident write and the manager
notifications can therefore be pulled out of the log stream together.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

# Request context, set by the tracing middleware and the auth/workflow layers
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
event_id_ctx: ContextVar[Optional[str]] = ContextVar("event_id", default=None)
staff_id_ctx: ContextVar[Optional[str]] = ContextVar("staff_id", default=None)
ccp_id_ctx: ContextVar[Optional[str]] = ContextVar("ccp_id", default=None)

_CONTEXT_FIELDS = (
    ("correlation_id", correlation_id_ctx),
    ("event_id", event_id_ctx),
    ("staff_id", staff_id_ctx),
    ("ccp_id", ccp_id_ctx),
)


def log_extra(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` argument for structured fields on one log line."""
    return {"extra_data": fields}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "line": record.lineno,
            "service": "ccpguard",
        }

        for key, ctx in _CONTEXT_FIELDS:
            value = ctx.get()
            if value:
                log_data[key] = value

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO"):
    """
    Configures the root logger to use JSON formatting.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Clear existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("aiosqlite").setLevel("WARNING")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
