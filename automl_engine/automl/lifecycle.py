"""Job status transitions."""

from __future__ import annotations

from .constants import ALLOWED_TRANSITIONS, JobStatus
from .errors import InvalidTransitionError


def can_transition(current: JobStatus, requested: JobStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(job_id: str, current: JobStatus, requested: JobStatus) -> None:
    """Raise ``InvalidTransitionError`` unless ``current -> requested`` is allowed."""

    if not can_transition(current, requested):
        raise InvalidTransitionError(job_id, current, requested)


__all__ = ["can_transition", "ensure_transition"]
