"""Core utilities package."""

from .datetime import minutes_between, utcnow
from .logging_utils import log_job_action, setup_universal_logging

__all__ = [
    "log_job_action",
    "minutes_between",
    "setup_universal_logging",
    "utcnow",
]
