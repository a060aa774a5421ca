"""Pruebas de configuración de logging y contexto.

Logging setup and context binding tests.
"""

import logging
from logging.handlers import TimedRotatingFileHandler

import pytest
import structlog
from structlog.testing import capture_logs

from votechain.logging import bind_context, setup_logging

VOTING = "0x" + "0a" * 20
IDENTITY = "0x" + "b2" * 20


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_setup_logging_writes_rotating_file(tmp_path, restore_logging):
    log_dir = tmp_path / "logs"

    logger = setup_logging("warning", log_dir)
    logger.warning("vote_failed", voting=VOTING)
    for handler in logging.getLogger().handlers:
        handler.flush()

    file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(file_handlers) == 1
    assert logging.getLogger().level == logging.WARNING
    content = (log_dir / "votechain.log").read_text(encoding="utf-8")
    assert '"event": "vote_failed"' in content
    assert VOTING in content


def test_setup_logging_without_dir_has_console_only(restore_logging):
    setup_logging("INFO", json_output=False)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not isinstance(handlers[0], TimedRotatingFileHandler)


def test_bind_context_full_identifiers():
    with capture_logs() as logs:
        bind_context(structlog.get_logger(), voting=VOTING, identity=IDENTITY).info("subject_changed")

    assert logs[0]["voting"] == VOTING
    assert logs[0]["identity"] == IDENTITY


def test_bind_context_redacts_identifiers():
    with capture_logs() as logs:
        bind_context(structlog.get_logger(), voting=VOTING, identity=IDENTITY, redact=True).info(
            "subject_changed"
        )

    assert logs[0]["voting"] == "0x0a0a…0a0a"
    assert logs[0]["identity"] == "0xb2b2…b2b2"


def test_bind_context_skips_missing_values():
    with capture_logs() as logs:
        bind_context(structlog.get_logger()).info("subject_changed")

    assert "voting" not in logs[0]
    assert "identity" not in logs[0]
