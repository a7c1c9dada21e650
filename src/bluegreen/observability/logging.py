"""Structured JSON logging for the controller."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, TextIO

from bluegreen.config import get_config_value


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    Fields passed as ``extra={"extra": {...}}`` are merged into the payload.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None, stream: TextIO | None = None) -> None:
    """Route all logging through a JSON handler.

    The level defaults to ``BLUEGREEN_LOG_LEVEL`` and then ``INFO``.
    """
    if level is None:
        level = (get_config_value("log_level") or "INFO").upper()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
