"""Tests for JSON log formatting."""

import io
import json
import logging
import sys

from tenant_cutover.structured_logging import JsonFormatter, configure_logging


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord(
        "tenant_cutover.test", logging.INFO, __file__, 1, msg, None, exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """One JSON object per record."""

    def test_base_fields(self):
        entry = json.loads(JsonFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "tenant_cutover.test"
        assert entry["message"] == "hello"
        assert entry["timestamp"].endswith("+00:00")
        assert "exception" not in entry

    def test_extra_fields(self):
        entry = json.loads(JsonFormatter().format(_record(org_id="orgA", write_count=3)))

        assert entry["org_id"] == "orgA"
        assert entry["write_count"] == 3
        assert "args" not in entry
        assert "lineno" not in entry

    def test_unserializable_extra_uses_str(self):
        entry = json.loads(JsonFormatter().format(_record(target=object())))
        assert entry["target"].startswith("<object object")

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestConfigureLogging:
    """Handler installation on the package logger."""

    def test_writes_json_lines(self):
        stream = io.StringIO()
        configure_logging("INFO", stream)

        logging.getLogger("tenant_cutover.migrations").info(
            "Backfilled collection", extra={"org_id": "orgA"}
        )

        entry = json.loads(stream.getvalue().strip())
        assert entry["message"] == "Backfilled collection"
        assert entry["org_id"] == "orgA"

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging("error", stream)

        logging.getLogger("tenant_cutover").info("quiet")

        assert stream.getvalue() == ""

    def test_reconfigure_replaces_handler(self):
        first = io.StringIO()
        second = io.StringIO()
        configure_logging("INFO", first)
        configure_logging("INFO", second)

        logger = logging.getLogger("tenant_cutover")
        logger.info("once")

        assert first.getvalue() == ""
        assert len(second.getvalue().strip().splitlines()) == 1
        assert len([h for h in logger.handlers if getattr(h, "_tenant_cutover", False)]) == 1
