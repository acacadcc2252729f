"""Structured logging for the exporter: record context, timing and formatters."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from time import monotonic
from typing import Any, Dict, Iterator

# Attributes every LogRecord has; anything else arrived through ``extra``.
_STANDARD_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "color_message",
}

ANSI_RESET = "\033[0m"
ANSI_TIMESTAMP = "\033[36m"
ANSI_LEVELS = {
    "DEBUG": "\033[90m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}


def get_logger(name: str) -> logging.Logger:
    """Return a module-scoped logger."""

    return logging.getLogger(name)


def extract_log_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the attributes attached to ``record`` via ``extra``."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_ATTRIBUTES and not key.startswith("_")
    }


def build_log_extra(
    *,
    block_number: int | None = None,
    block_hash: str | None = None,
    address: str | None = None,
    operation: str | None = None,
    elapsed: float | None = None,
    additional: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    """Construct an ``extra`` dict carrying node sampling context.

    Only the fields that were given end up in the dict, so records for
    node-wide events do not grow empty block or address keys.
    """
    fields = {
        "block_number": block_number,
        "block_hash": block_hash,
        "address": address,
        "operation": operation,
        "elapsed_seconds": None if elapsed is None else round(elapsed, 3),
    }

    extra = {key: value for key, value in fields.items() if value is not None}
    extra.update(additional or {})

    return extra


@contextmanager
def log_duration(
    logger: logging.Logger,
    message: str,
    *,
    level: int = logging.DEBUG,
    extra: Dict[str, Any] | None = None,
) -> Iterator[None]:
    """Log ``message`` with the elapsed time once the block exits."""

    started = monotonic()

    try:
        yield
    finally:
        logger.log(
            level,
            message,
            extra={**(extra or {}), "elapsed_seconds": round(monotonic() - started, 3)},
        )


def _interpolate(record: logging.LogRecord, template: str | None) -> str | None:
    # uvicorn attaches an ANSI variant of its message that still needs the args.
    if not template or not record.args:
        return template

    try:
        return template % record.args
    except (TypeError, ValueError):
        return template


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` context merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        color_message = getattr(record, "color_message", None)

        if color_message is not None:
            payload["color_message"] = _interpolate(record, color_message)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            payload["stack_info"] = record.stack_info

        payload.update(extract_log_context(record))

        return json.dumps(payload, default=str)


class StructuredTextFormatter(logging.Formatter):
    """Human-readable lines ending in ``| key=value`` context pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        *,
        color_enabled: bool = True,
    ) -> None:
        super().__init__(fmt, datefmt, style)
        self.color_enabled = color_enabled

    def _colorize(self, line: str, record: logging.LogRecord) -> str:
        color_message = _interpolate(record, getattr(record, "color_message", None))

        if color_message:
            message = record.getMessage()
            line = (
                line.replace(message, color_message, 1)
                if message in line
                else f"{line} {color_message}"
            )

        timestamp = self.formatTime(record, self.datefmt)
        line = line.replace(timestamp, f"{ANSI_TIMESTAMP}{timestamp}{ANSI_RESET}", 1)

        level_color = ANSI_LEVELS.get(record.levelname)

        if level_color:
            line = line.replace(
                record.levelname,
                f"{level_color}{record.levelname}{ANSI_RESET}",
                1,
            )

        return line

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        if self.color_enabled:
            line = self._colorize(line, record)

        context = extract_log_context(record)

        if not context:
            return line

        pairs = " ".join(f"{key}={context[key]}" for key in sorted(context))

        return f"{line} | {pairs}"


__all__ = [
    "JsonFormatter",
    "StructuredTextFormatter",
    "build_log_extra",
    "extract_log_context",
    "get_logger",
    "log_duration",
]
