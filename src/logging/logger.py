# src/logging/logger.py — v1
"""Console and file logging for pipeline runs.

Both formatters stamp every record with the active run context
(project, run id, variant, step). Steps attach their duration through
`extra={"duration_ms": ...}`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from iacdiagram.logging.context import LogContext, get_context

ROOT_LOGGER = "iacdiagram"

# HTTP client chatter from the Anthropic SDK; shown only at DEBUG
NOISY_LOGGERS = ("anthropic", "httpx", "httpcore")


def run_label(ctx: LogContext) -> str | None:
    """Compact `project/variant:run_id` label, or None outside a run."""
    if not ctx.run_id:
        return None
    run = f"{ctx.variant}:{ctx.run_id}" if ctx.variant else ctx.run_id
    return f"{ctx.project}/{run}" if ctx.project else run


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(get_context().as_dict())
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            entry["duration_ms"] = duration
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Terminal format: `HH:MM:SS LEVEL [project/variant:run] (step) message`."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        parts = [stamp, f"{record.levelname:<7}"]
        label = run_label(ctx)
        if label:
            parts.append(f"[{label}]")
        if ctx.step:
            parts.append(f"({ctx.step})")
        parts.append(record.getMessage())
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
    stream: IO[str] | None = None,
) -> None:
    """Configure the `iacdiagram` logger tree.

    Console output goes to stderr unless `stream` is given; stdout is kept
    for command output. A rotating file handler is added when `log_file`
    is set (`rotation` is its size limit, `retention` the backup count).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from iacdiagram.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(
            log_file, rotation=rotation, retention=retention
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
        )
