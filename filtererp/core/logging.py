from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

from .context import principal_ctx_var, request_id_ctx_var

# Request lines come from RequestIdMiddleware instead.
QUIET_LOGGERS = ("uvicorn.access",)


def _context() -> dict[str, str]:
    found = {}
    request_id = request_id_ctx_var.get()
    if request_id:
        found["request_id"] = request_id
    principal = principal_ctx_var.get()
    if principal:
        found["principal"] = principal
    return found


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; ``extra_data`` is merged into the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(),
        }
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleLogFormatter(logging.Formatter):
    """Readable single-line output for local development."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {**_context(), **(getattr(record, "extra_data", None) or {})}
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
        return line


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter() if json_output else ConsoleLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
