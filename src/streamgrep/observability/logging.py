"""Structured JSON logging with search correlation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import Any, TextIO

import orjson

from streamgrep.observability.context import get_search_context


_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active search.

    Messages longer than ``MAX_MESSAGE_LEN`` are cut. Values passed through
    ``extra`` that orjson cannot encode are written as ``str(value)``.
    """

    MAX_MESSAGE_LEN = 2000

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": record.name.rpartition(".")[2],
            "message": message,
            **get_search_context(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        return orjson.dumps(entry, default=str).decode("utf-8")


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    stream: TextIO | None = None,
    logger_levels: dict[str, str] | None = None,
    access_log: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit structured JSON logs when True
        stream: Handler stream; stderr by default so match output on stdout stays clean
        logger_levels: Per-logger level overrides (logger name -> level string)
        access_log: Enable uvicorn.access logger (otherwise set to WARNING)
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    root.addHandler(handler)

    if not access_log:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    for logger_name, logger_level in (logger_levels or {}).items():
        resolved = getattr(logging, logger_level.upper(), logging.INFO)
        logging.getLogger(logger_name).setLevel(resolved)
