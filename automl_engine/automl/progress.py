"""Progress estimation derived from a job's status and results."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Tuple

from automl_engine.utils.datetime import minutes_between

from .constants import JobStatus, TrialStatus
from .schemas import Job, JobProgress

_STATUS_PROGRESS: Dict[JobStatus, Tuple[int, str]] = {
    JobStatus.PENDING: (0, "Pending"),
    JobStatus.RUNNING: (60, "Model Training"),
    JobStatus.COMPLETED: (100, "Completed"),
    JobStatus.FAILED: (0, "Failed"),
    JobStatus.CANCELLED: (0, "Cancelled"),
}


def estimate_progress(job: Job, now: datetime) -> JobProgress:
    percentage, phase = _STATUS_PROGRESS[job.status]

    remaining = 0.0
    if job.estimated_completion is not None:
        remaining = max(0.0, minutes_between(now, job.estimated_completion))

    trials_completed = sum(
        1 for trial in job.results.all_models if trial.status == TrialStatus.COMPLETED
    )

    return JobProgress(
        percentage=percentage,
        current_phase=phase,
        estimated_time_remaining=remaining,
        trials_completed=trials_completed,
        best_score=job.results.best_score,
    )


__all__ = ["estimate_progress"]
