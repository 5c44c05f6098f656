"""Exception hierarchy raised by the AutoML engine."""

from __future__ import annotations

from typing import Optional

from .constants import JobStatus


class AutoMLError(Exception):
    """Base class for every error raised by the engine."""


class JobValidationError(AutoMLError):
    """A job specification was rejected before any state was created."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class MissingFieldError(JobValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required AutoML job field: {field}", field=field)


class InvalidConstraintError(JobValidationError):
    pass


class JobLifecycleError(AutoMLError):
    """A lifecycle command targeted a missing job or an illegal transition."""

    def __init__(self, message: str, *, job_id: str) -> None:
        super().__init__(message)
        self.job_id = job_id


class JobNotFoundError(JobLifecycleError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"AutoML job {job_id} not found", job_id=job_id)


class InvalidTransitionError(JobLifecycleError):
    def __init__(self, job_id: str, current: JobStatus, requested: JobStatus) -> None:
        super().__init__(
            f"AutoML job {job_id} cannot move from '{current.value}' to '{requested.value}'",
            job_id=job_id,
        )
        self.current = current
        self.requested = requested


class InvalidConfigurationError(AutoMLError):
    """Optimizer, selector or artifact configuration is unusable."""


class PipelineError(AutoMLError):
    """Raised inside a pipeline phase; never escapes the executor."""


class TrialExecutionError(AutoMLError):
    """Raised by a trial runner when a single trial cannot be evaluated."""


__all__ = [
    "AutoMLError",
    "InvalidConfigurationError",
    "InvalidConstraintError",
    "InvalidTransitionError",
    "JobLifecycleError",
    "JobNotFoundError",
    "JobValidationError",
    "MissingFieldError",
    "PipelineError",
    "TrialExecutionError",
]
