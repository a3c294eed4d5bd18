"""Structured logging configuration for the Muster rating service."""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

# Extra attributes copied from a log record into the JSON entry when present.
_EXTRA_FIELDS = (
    "request_id",
    "http_method",
    "http_path",
    "http_status",
    "duration_ms",
    "function_name",
    "line_id",
    "rate_kind",
    "line_total",
    "grand_total",
    "days_not_set",
)


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True, engine_level: Optional[str] = None):
    """
    Configure application logging.

    The rating engine logs per-line and per-project detail at DEBUG on the
    ``muster-api.rating`` logger; ``engine_level`` raises or lowers that logger
    independently of the root level.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    if engine_level:
        logging.getLogger("muster-api.rating").setLevel(
            getattr(logging, engine_level.upper(), logging.INFO)
        )

    # RequestTimingMiddleware already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
