from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

_DEFAULT_EXTRA_KEYS = (
    "sensor_id",
    "value",
    "key",
    "geometry",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def configure_logging(level: str | int = "WARNING", log_file: str = "") -> None:
    """Configure application-wide logging.

    The terminal is owned by curses, so records only go to *log_file*; with
    no file configured they are discarded.
    """
    global _configured
    if _configured:
        return

    handler: dict[str, Any]
    if log_file:
        handler = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "level": level,
            "formatter": "contextual",
        }
    else:
        handler = {"class": "logging.NullHandler"}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": ContextualFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {"default": handler},
            "root": {"handlers": ["default"], "level": level},
        }
    )

    _configured = True
