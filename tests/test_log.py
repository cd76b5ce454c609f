"""Test logging utilities."""

import logging

from ccswitch.utils.log import StructuredFormatter, enable_file_logging, get_logger


def test_structured_formatter_appends_extra_context():
    formatter = StructuredFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("ccswitch", logging.INFO, __file__, 1, "saved", None, None)
    record.app_type = "claude"
    record.provider_id = "mirror"

    line = formatter.format(record)

    assert line.startswith("INFO saved | ")
    assert '"app_type": "claude"' in line
    assert '"provider_id": "mirror"' in line


def test_structured_formatter_without_extra():
    formatter = StructuredFormatter("%(message)s")
    record = logging.LogRecord("ccswitch", logging.INFO, __file__, 1, "plain", None, None)
    assert formatter.format(record) == "plain"


def test_enable_file_logging_writes_debug_lines(tmp_path):
    log_file = enable_file_logging(tmp_path)
    get_logger().debug("[test] hello", extra={"provider_id": "mirror"})

    assert log_file.parent == tmp_path / "logs"
    content = log_file.read_text(encoding="utf-8")
    assert "[test] hello" in content
    assert '"provider_id": "mirror"' in content


def test_structured_formatter_uses_utc_timestamps():
    formatter = StructuredFormatter("%(asctime)s %(message)s")
    record = logging.makeLogRecord({"msg": "tick", "created": 0.0})
    assert formatter.format(record) == "1970-01-01T00:00:00.000Z tick"


def test_file_logging_is_not_attached_twice(tmp_path):
    enable_file_logging(tmp_path)
    enable_file_logging(tmp_path)
    handlers = [h for h in get_logger().logger.handlers if isinstance(h, logging.FileHandler)]
    assert len(handlers) == 1
