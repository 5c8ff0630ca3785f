"""
JSON log formatting and the procurement logger hierarchy
"""
import json
import logging
import sys

from procurement.logger import RECORD_FIELDS, JsonFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord(
        name="procurement.buisness.core.unit_of_work", level=logging.WARNING, pathname=__file__,
        lineno=10, msg="%s rejected", args=("approve_request",), exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_workflow_context():
    entry = json.loads(JsonFormatter(RECORD_FIELDS).format(_record(operation="approve_request", user_id=7)))
    assert entry["message"] == "approve_request rejected"
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "procurement.buisness.core.unit_of_work"
    assert entry["operation"] == "approve_request"
    assert entry["user_id"] == 7
    assert "po_number" not in entry


def test_json_formatter_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    entry = json.loads(JsonFormatter().format(record))
    assert list(entry) == ["message", "exc_info"]
    assert "RuntimeError: boom" in entry["exc_info"]


def test_loggers_are_nested_under_procurement():
    assert get_logger("procurement.requests").name == "procurement.requests"
    assert get_logger("requests").name == "procurement.requests"
    assert get_logger().name == "procurement"
