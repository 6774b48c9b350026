# tests/unit/logging/test_logging.py — v1
"""Tests for logging/ — context vars, formatters, rotating handler."""

from __future__ import annotations

import io
import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from iacdiagram.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_run_context,
    set_step_context,
)
from iacdiagram.logging.handlers import create_rotating_handler, parse_size
from iacdiagram.logging.logger import JsonFormatter, TextFormatter, run_label, setup_logging


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()
    root = logging.getLogger("iacdiagram")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("iacdiagram.test", logging.INFO, __file__, 1, msg, None, None)


class TestContext:
    def test_run_and_step(self):
        set_run_context("demo", "r1", variant="prod")
        set_step_context("parse")
        ctx = get_context()
        assert (ctx.project, ctx.run_id, ctx.variant, ctx.step) == ("demo", "r1", "prod", "parse")

    def test_new_run_resets_step(self):
        set_run_context("demo", "r1")
        set_step_context("layout")
        set_run_context("demo", "r2")
        assert get_context().step is None

    def test_as_dict_omits_empty(self):
        set_run_context("demo", "r1")
        assert get_context().as_dict() == {"project": "demo", "run_id": "r1"}


class TestFormatters:
    def test_text_includes_run_and_step(self):
        set_run_context("demo", "r1", variant="prod")
        set_step_context("parse")
        line = TextFormatter().format(_record())
        assert "[demo/prod:r1]" in line
        assert "(parse)" in line
        assert line.endswith("(parse) hello")

    def test_text_outside_run_has_no_label(self):
        line = TextFormatter().format(_record())
        assert "[" not in line
        assert line.endswith("INFO    hello")

    def test_json_flattens_context(self):
        set_run_context("demo", "r1")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["msg"] == "hello"
        assert (entry["project"], entry["run_id"]) == ("demo", "r1")
        assert "variant" not in entry and "step" not in entry

    def test_json_carries_duration(self):
        record = _record("Step 'parse' completed")
        record.duration_ms = 42
        entry = json.loads(JsonFormatter().format(record))
        assert entry["duration_ms"] == 42

    @pytest.mark.parametrize(
        "project,run_id,variant,expected",
        [("demo", "r1", None, "demo/r1"), ("demo", "r1", "prod", "demo/prod:r1"),
         (None, "r1", None, "r1"), ("demo", None, None, None)],
    )
    def test_run_label(self, project, run_id, variant, expected):
        assert run_label(LogContext(project=project, run_id=run_id, variant=variant)) == expected


class TestSetup:
    def test_console_stream(self):
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)
        logging.getLogger("iacdiagram.unit").debug("visible")
        assert "visible" in stream.getvalue()

    def test_sdk_loggers_quieted(self):
        setup_logging("INFO", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging("DEBUG", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.DEBUG
        logging.getLogger("httpx").setLevel(logging.NOTSET)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging("INFO", log_format="json", log_file=str(log_file), stream=io.StringIO())
        logging.getLogger("iacdiagram.unit").info("to file")
        for handler in logging.getLogger("iacdiagram").handlers:
            handler.flush()
        assert json.loads(log_file.read_text().splitlines()[0])["msg"] == "to file"


class TestHandlers:
    @pytest.mark.parametrize("size,expected", [("10MB", 10 * 1024**2), ("512kb", 512 * 1024), ("1 GB", 1024**3)])
    def test_parse_size(self, size, expected):
        assert parse_size(size) == expected

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError):
            parse_size("ten")

    def test_rotating_handler(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "a" / "x.log", rotation="1MB", retention=2)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 1024**2
            assert handler.backupCount == 2
        finally:
            handler.close()
