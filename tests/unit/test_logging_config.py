"""
Unit tests for src/utils/logging

Tests verify:
- Root logger setup (level, handlers, rotating file)
- JSON and console formatters surface extra context
- ContextLogger binding
"""

import json
import logging
import logging.handlers
import sys

import pytest

from src.utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    configure_from_env,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    shutdown_logging()
    root.handlers = handlers
    root.setLevel(level)


def _record(msg="Rows aligned", level=logging.INFO, **extra):
    record = logging.LogRecord("src.parity.engine", level, "engine.py", 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSetupLogging:
    """Test setup_logging"""

    def test_console_handler(self):
        setup_logging(level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "nested" / "run.log"

        setup_logging(log_file=str(log_file), console_output=False, json_format=True)
        logging.getLogger("parity").warning("Endpoint differs")
        shutdown_logging()

        handler_line = log_file.read_text().strip()
        data = json.loads(handler_line)
        assert data["message"] == "Endpoint differs"
        assert data["app"] == "oneroster-parity"

    def test_handlers_are_replaced(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_chatty_libraries_are_quieted(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        setup_logging(level="LOUD")

        assert logging.getLogger().level == logging.INFO

    def test_configure_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_CONSOLE", "false")
        monkeypatch.delenv("LOG_FILE", raising=False)

        configure_from_env()

        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert root.handlers == []


class TestJSONFormatter:
    """Test JSONFormatter"""

    def test_fields(self):
        formatter = JSONFormatter(include_hostname=False)

        data = json.loads(formatter.format(_record(endpoint="users", rows=3)))

        assert data["level"] == "INFO"
        assert data["logger"] == "src.parity.engine"
        assert data["context"] == {"endpoint": "users", "rows": 3}
        assert "hostname" not in data
        assert "timestamp" in data

    def test_exception(self):
        formatter = JSONFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


class TestConsoleFormatter:
    """Test ConsoleFormatter"""

    def test_context_suffix(self):
        formatter = ConsoleFormatter(use_colors=False)

        output = formatter.format(_record(endpoint="users"))

        assert "[INFO] src.parity.engine: Rows aligned" in output
        assert output.endswith("[endpoint=users]")

    def test_plain_record_has_no_suffix(self):
        output = ConsoleFormatter(use_colors=False).format(_record())

        assert output.endswith("Rows aligned")


class TestContextLogger:
    """Test ContextLogger"""

    def test_bind_returns_new_logger(self):
        log = ContextLogger("src.parity.engine", dataset_version="ds5")

        bound = log.bind(endpoint="users")

        assert bound.get_context() == {"dataset_version": "ds5", "endpoint": "users"}
        assert log.get_context() == {"dataset_version": "ds5"}

    def test_context_reaches_records(self, caplog):
        log = ContextLogger("src.parity.engine", dataset_version="ds4").bind(endpoint="orgs")

        with caplog.at_level(logging.INFO, logger="src.parity.engine"):
            log.info("Endpoint identical", rows=5)

        record = caplog.records[-1]
        assert record.getMessage() == "Endpoint identical"
        assert record.dataset_version == "ds4"
        assert record.endpoint == "orgs"
        assert record.rows == 5

    def test_exception_attaches_traceback(self, caplog):
        log = ContextLogger("src.parity.engine")

        with caplog.at_level(logging.ERROR, logger="src.parity.engine"):
            try:
                raise ValueError("bad row")
            except ValueError:
                log.exception("Comparison failed")

        assert caplog.records[-1].exc_info[0] is ValueError

    def test_disabled_level_is_skipped(self, caplog):
        log = ContextLogger("src.parity.engine")

        with caplog.at_level(logging.WARNING, logger="src.parity.engine"):
            log.debug("hidden")

        assert caplog.records == []
