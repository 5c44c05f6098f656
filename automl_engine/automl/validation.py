"""Validation of AutoML job submissions before any state is created."""

from __future__ import annotations

from .constants import OBJECTIVE_TASK_TYPES, Objective
from .errors import InvalidConstraintError, MissingFieldError
from .recommendations import recommend_algorithms
from .schemas import JobCreate


def _require_fields(payload: JobCreate) -> None:
    if not payload.name or not payload.name.strip():
        raise MissingFieldError("name")
    if payload.task_type is None:
        raise MissingFieldError("task_type")
    if payload.objective is None:
        raise MissingFieldError("objective")
    if payload.dataset is None:
        raise MissingFieldError("dataset")
    if payload.objective == Objective.CUSTOM and not (payload.custom_metric or "").strip():
        raise MissingFieldError("custom_metric")


def _check_objective(payload: JobCreate) -> None:
    supported = OBJECTIVE_TASK_TYPES.get(payload.objective)
    if supported is not None and payload.task_type not in supported:
        raise InvalidConstraintError(
            f"Objective '{payload.objective.value}' is not reported for "
            f"'{payload.task_type.value}' jobs",
            field="objective",
        )


def _check_constraints(payload: JobCreate) -> None:
    constraints = payload.constraints
    if constraints.max_training_time <= 0:
        raise InvalidConstraintError(
            "Max training time must be greater than 0",
            field="constraints.max_training_time",
        )
    if constraints.max_models is not None and constraints.max_models <= 0:
        raise InvalidConstraintError(
            "Max models must be greater than 0 when provided",
            field="constraints.max_models",
        )


def _check_optimization(payload: JobCreate) -> None:
    policy = payload.optimization
    if policy.max_trials <= 0:
        raise InvalidConstraintError(
            "Max trials must be greater than 0",
            field="optimization.max_trials",
        )
    if policy.early_stopping and policy.patience < 1:
        raise InvalidConstraintError(
            "Patience must be at least 1 when early stopping is enabled",
            field="optimization.patience",
        )
    if policy.min_improvement < 0:
        raise InvalidConstraintError(
            "Min improvement cannot be negative",
            field="optimization.min_improvement",
        )


def _check_search_space(payload: JobCreate) -> None:
    if not payload.search_space.algorithms and not recommend_algorithms(
        payload.task_type, payload.dataset.samples
    ):
        raise InvalidConstraintError(
            f"No algorithm is recommended for '{payload.task_type.value}' jobs; "
            "list candidate algorithms explicitly",
            field="search_space.algorithms",
        )
    for name, candidates in payload.search_space.hyperparameter_ranges.items():
        if not candidates:
            raise InvalidConstraintError(
                f"Hyperparameter '{name}' has no candidate values",
                field=f"search_space.hyperparameter_ranges.{name}",
            )


def validate_job(payload: JobCreate) -> None:
    """Raise a ``JobValidationError`` subclass when ``payload`` cannot become a job."""

    _require_fields(payload)
    _check_objective(payload)
    _check_constraints(payload)
    _check_optimization(payload)
    _check_search_space(payload)


__all__ = ["validate_job"]
