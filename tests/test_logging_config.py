import logging

from superorder.core.logging_config import SensitiveDataFilter, setup_logging


def test_sensitive_data_filter():
    filter_ = SensitiveDataFilter()

    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="test.py", lineno=1,
        msg="Feed login: api_key='12345', secret='abcde'", args=(), exc_info=None
    )
    filter_.filter(record)
    assert "api_key=***MASKED***" in record.msg
    assert "secret=***MASKED***" in record.msg
    assert "12345" not in record.msg

    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="test.py", lineno=1,
        msg="signed with signature=0xdeadbeef private_key=0xabc", args=(), exc_info=None
    )
    filter_.filter(record)
    assert "0xdeadbeef" not in record.msg
    assert "0xabc" not in record.msg

    # Non-string msg
    record.msg = 123
    assert filter_.filter(record) is True


def test_setup_logging(tmp_path):
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        log_file = setup_logging(log_level="debug", log_file_path=str(tmp_path / "nested" / "superorder.log"))
        assert log_file.name == "superorder.log"
        assert log_file.parent.exists()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 2

        # Calling again does not duplicate handlers
        setup_logging(log_file_path=str(log_file))
        assert len(root_logger.handlers) == 2
        assert logging.getLogger("ccxt").level == logging.ERROR
    finally:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        for handler in original_handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(original_level)
