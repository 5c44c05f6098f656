"""
AutoML job engine.

Jobs are submitted through :class:`AutoMLService`, driven through the
preprocessing, search, training, selection and evaluation phases by the
pipeline executor, and observed through the event bus or progress snapshots.
"""

from .constants import JobStatus, Objective, PipelinePhase, ProblemType, SearchAlgorithm, TaskType
from .errors import (
    AutoMLError,
    InvalidConfigurationError,
    InvalidTransitionError,
    JobNotFoundError,
    JobValidationError,
    MissingFieldError,
    PipelineError,
    TrialExecutionError,
)
from .events import EventBus, EventType
from .schemas import (
    AutoMLRecommendation,
    DatasetDescriptor,
    Job,
    JobCreate,
    JobProgress,
    JobProgressSnapshot,
    ModelTrial,
    PerformanceRecord,
)
from .service import AutoMLService, build_service

__all__ = [
    "AutoMLError",
    "AutoMLRecommendation",
    "AutoMLService",
    "DatasetDescriptor",
    "EventBus",
    "EventType",
    "InvalidConfigurationError",
    "InvalidTransitionError",
    "Job",
    "JobCreate",
    "JobNotFoundError",
    "JobProgress",
    "JobProgressSnapshot",
    "JobStatus",
    "JobValidationError",
    "MissingFieldError",
    "ModelTrial",
    "Objective",
    "PerformanceRecord",
    "PipelineError",
    "PipelinePhase",
    "ProblemType",
    "SearchAlgorithm",
    "TaskType",
    "TrialExecutionError",
    "build_service",
]
