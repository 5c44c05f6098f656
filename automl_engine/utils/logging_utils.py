"""
Logging setup for the AutoML service.

``setup_universal_logging`` wires the root logger to a rotating log file and a
rich console; ``log_job_action`` writes one audit line per lifecycle command.
"""

import logging
import os
from logging import Handler
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Optional

from rich.logging import RichHandler

job_logger = logging.getLogger("automl_actions")

FILE_LOG_FORMAT = (
    "%(asctime)s [%(levelname)8s] %(name)s: %(message)s "
    "[%(filename)s:%(lineno)d in %(funcName)s()]"
)

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "watchfiles", "optuna", "multipart")


def log_job_action(
    action: str,
    job_id: Optional[str] = None,
    success: bool = True,
    details: Optional[str] = None,
) -> None:
    """
    Record a job lifecycle action on the ``automl_actions`` logger.

    Args:
        action: Command name, e.g. ``start_job``
        job_id: Job the command targeted, when one exists yet
        success: Failed actions are logged at ERROR
        details: Free-form context appended to the line
    """
    parts = [f"Action: {action}"]
    if job_id:
        parts.append(f"Job: {job_id}")
    if details:
        parts.append(f"Details: {details}")
    parts.append("Status: SUCCESS" if success else "Status: FAILED")

    job_logger.log(logging.INFO if success else logging.ERROR, " | ".join(parts))


def _level(name: Optional[str], default: int) -> int:
    return getattr(logging, (name or "").upper(), default)


def _build_file_handler(
    log_file: str,
    rotation_type: str,
    rotation_when: Optional[str],
    rotation_interval: int,
    max_bytes: int,
    backup_count: int,
) -> Handler:
    if rotation_type and rotation_type.lower() in ("time", "timed"):
        return TimedRotatingFileHandler(
            filename=log_file,
            when=rotation_when or "midnight",
            interval=rotation_interval,
            backupCount=backup_count,
            encoding="utf-8",
        )
    return RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


def setup_universal_logging(
    log_file: str = "logs/automl_engine.log",
    log_level: str = "INFO",
    rotation_type: str = "size",
    rotation_when: Optional[str] = None,
    rotation_interval: int = 1,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 10,
    console_log_level: str = "WARNING",
) -> None:
    """
    Replace the root logger's handlers with a file handler and a rich console.

    Args:
        log_file: Path to the log file; its directory is created if missing
        log_level: Level for the root logger and the file handler
        rotation_type: ``size`` (default) or ``time``
        rotation_when: ``TimedRotatingFileHandler`` unit, defaults to midnight
        console_log_level: Level for the console handler
    """
    file_level = _level(log_level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(file_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    log_dir = os.path.dirname(log_file)
    try:
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = _build_file_handler(
            log_file, rotation_type, rotation_when, rotation_interval, max_bytes, backup_count
        )
    except OSError as exc:
        print(f"Warning: file logging disabled, cannot open {log_file}: {exc}")
    else:
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        root_logger.addHandler(file_handler)

    console_handler = RichHandler(rich_tracebacks=True, markup=True, show_path=False)
    console_handler.setLevel(_level(console_log_level, logging.WARNING))
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised (file=%s level=%s)", log_file, log_level)


__all__ = ["job_logger", "log_job_action", "setup_universal_logging"]
