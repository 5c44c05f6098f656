import logging
from datetime import datetime, timedelta, timezone

import pytest
from rich.logging import RichHandler

from automl_engine.utils import log_job_action, minutes_between, setup_universal_logging, utcnow


def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is timezone.utc


def test_minutes_between_is_signed():
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert minutes_between(start, start + timedelta(minutes=90)) == 90.0
    assert minutes_between(start + timedelta(minutes=30), start) == -30.0


def test_job_actions_are_logged_with_outcome(caplog):
    with caplog.at_level(logging.INFO, logger="automl_actions"):
        log_job_action("start_job", "job-7")
        log_job_action("create_job", success=False, details="Missing required AutoML job field: name")

    first, second = caplog.records
    assert first.levelno == logging.INFO
    assert first.getMessage() == "Action: start_job | Job: job-7 | Status: SUCCESS"
    assert second.levelno == logging.ERROR
    assert "Status: FAILED" in second.getMessage()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_universal_logging_writes_to_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "engine.log"

    setup_universal_logging(log_file=str(log_file), log_level="DEBUG", rotation_type="time")
    logging.getLogger("automl_engine.test").debug("hello from the engine")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert any(isinstance(handler, RichHandler) for handler in logging.getLogger().handlers)
    assert "hello from the engine" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("optuna").level == logging.WARNING
