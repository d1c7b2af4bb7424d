"""
Structured Logging — JSON log lines with request correlation.

Every module logs through ``logging.getLogger(__name__)``; this module
installs a single handler on the ``jewelshot`` logger tree. In production
(``LOG_JSON=true``) records are emitted as JSON with the request and user
ids of the request that produced them.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar

# Context variables for request correlation
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        req_id = request_id_var.get("")
        if req_id:
            log_entry["request_id"] = req_id
        usr_id = user_id_var.get("")
        if usr_id:
            log_entry["user_id"] = usr_id

        extra = getattr(record, "extra_data", None)
        if extra:
            log_entry["data"] = extra

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stack": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, default=str)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that prefixes the request id when one is set."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        req_id = request_id_var.get("")
        return f"[{req_id}] {line}" if req_id else line


_configured = False


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install the handler on the ``jewelshot`` logger tree (idempotent)."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(ContextFormatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"
        ))

    root = logging.getLogger("jewelshot")
    root.addHandler(handler)
    root.setLevel(level.upper())
    _configured = True


def set_request_context(request_id: str = "", user_id: str = ""):
    """Set context variables for the current request."""
    if request_id:
        request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())[:12]
