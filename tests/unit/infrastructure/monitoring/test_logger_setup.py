import logging

import pytest

from quicknote.infrastructure.monitoring.logger_setup import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_replaces_handlers(restore_root_logger):
    setup_logging(log_level=logging.INFO)
    setup_logging(log_level=logging.INFO)

    assert restore_root_logger.level == logging.INFO
    assert len(restore_root_logger.handlers) == 1


def test_setup_logging_writes_file(restore_root_logger, tmp_path):
    log_file = tmp_path / "quicknote.log"
    setup_logging(log_level=logging.INFO, log_file=str(log_file))

    logging.getLogger("quicknote.test").info("hello from the test")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "hello from the test" in log_file.read_text(encoding="utf-8")


def test_http_loggers_quieted_unless_debugging(restore_root_logger):
    setup_logging(log_level=logging.INFO)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_tokens_are_redacted(restore_root_logger, tmp_path):
    log_file = tmp_path / "logs" / "quicknote.log"
    setup_logging(log_level=logging.INFO, log_file=str(log_file))

    logging.getLogger("quicknote.test").warning("Verifying %s", "secret_abc123XYZ")
    for handler in restore_root_logger.handlers:
        handler.flush()

    written = log_file.read_text(encoding="utf-8")
    assert "Verifying secret_***" in written
    assert "abc123XYZ" not in written
