"""Logging setup driven by ``settings.log_level`` and ``settings.log_format``."""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime

from app.core.config import LogFormatEnum, settings

SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Set by the request id middleware for the duration of each request
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Put the current request id on records that do not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging() -> None:
    """Install the root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(settings.log_level.value)

    if any(getattr(h, "_workspark", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    if settings.log_format == LogFormatEnum.json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._workspark = True
    root.addHandler(handler)

    # Provider SDK logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
