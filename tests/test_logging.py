"""
Test cases for structured logging.
"""

import logging

from semstore.util.logging import StructuredLogger, get_logger, preview


def test_preview_truncates_long_text():
    assert preview("a" * 60) == "a" * 50 + "..."
    assert preview("short") == "short"
    assert preview(None) is None


def test_log_operation_format(caplog):
    """Test the key=value layout of structured messages."""
    structured = get_logger("semstore.test.format")

    with caplog.at_level(logging.INFO, logger="semstore.test.format"):
        structured.log_operation("index.rebuild", "success", 1.5, {"records": 3})

    assert "operation=index.rebuild | status=success | duration_ms=1.50 | records=3" in caplog.text


def test_status_selects_level(caplog):
    """Test that error and non-success statuses log above INFO."""
    structured = StructuredLogger("semstore.test.levels")

    with caplog.at_level(logging.INFO, logger="semstore.test.levels"):
        structured.log_operation("vector.put", "error")
        structured.log_operation("vector.put", "rejected")

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.ERROR, logging.WARNING]


def test_embedding_call_truncates_text(caplog):
    """Test that embedded texts are previewed, not logged whole."""
    structured = StructuredLogger("semstore.test.embedding")

    with caplog.at_level(logging.INFO, logger="semstore.test.embedding"):
        structured.log_embedding_call("hash", "document", "x" * 500)

    assert "x" * 51 not in caplog.text
    assert "provider=hash" in caplog.text
