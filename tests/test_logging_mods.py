# tests/test_logging_mods.py
import importlib
import logging
import logging as std_logging

from config import settings

import utils.logging as logging_utils


def test_setup_logging_file_error(monkeypatch, caplog, tmp_path):
    caplog.set_level(logging.ERROR)
    root_logger = std_logging.getLogger()

    class Handlers(list):
        def clear(self):
            pass

    monkeypatch.setattr(root_logger, "handlers", Handlers([caplog.handler]))

    logging_utils.structlog.configure(
        logger_factory=logging_utils.structlog.stdlib.LoggerFactory()
    )
    importlib.reload(logging_utils)

    def raise_handler(*_a, **_k):
        raise OSError("fail")

    monkeypatch.setattr(std_logging.handlers, "RotatingFileHandler", raise_handler)
    monkeypatch.setattr(settings, "LOG_FILE", "temp.log")
    monkeypatch.setattr(settings, "BASE_OUTPUT_DIR", str(tmp_path))

    logging_utils.setup_logging()

    assert any(
        "Error setting up file logger" in record.message for record in caplog.records
    )


def test_setup_logging_plain_console(monkeypatch):
    root_logger = std_logging.getLogger()
    monkeypatch.setattr(root_logger, "handlers", [])
    monkeypatch.setattr(settings, "ENABLE_RICH_LOGGING", False)
    monkeypatch.setattr(settings, "LOG_FILE", None)

    logging_utils.setup_logging()

    assert len(root_logger.handlers) == 1
    assert type(root_logger.handlers[0]) is std_logging.StreamHandler
    assert std_logging.getLogger("httpx").level == logging.WARNING
