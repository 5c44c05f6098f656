"""Enumerations and lifecycle tables shared across the AutoML engine."""

from enum import Enum
from typing import Dict, FrozenSet


class JobStatus(str, Enum):
    """Allowed AutoML job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


class TaskType(str, Enum):
    CLASSIFICATION = "classification"
    REGRESSION = "regression"
    CLUSTERING = "clustering"
    TIME_SERIES = "time_series"
    NLP = "nlp"
    COMPUTER_VISION = "computer_vision"


class Objective(str, Enum):
    ACCURACY = "accuracy"
    PRECISION = "precision"
    RECALL = "recall"
    F1_SCORE = "f1_score"
    AUC = "auc"
    MSE = "mse"
    MAE = "mae"
    CUSTOM = "custom"


# Objectives where a lower raw value is better; scores are negated.
ERROR_OBJECTIVES: FrozenSet[Objective] = frozenset({Objective.MSE, Objective.MAE})

_LABELLED_TASKS = frozenset({TaskType.CLASSIFICATION, TaskType.NLP, TaskType.COMPUTER_VISION})
_CONTINUOUS_TASKS = frozenset({TaskType.REGRESSION, TaskType.TIME_SERIES})

# Objectives a trial can only report for some task types; the rest apply to all.
OBJECTIVE_TASK_TYPES: Dict[Objective, FrozenSet[TaskType]] = {
    Objective.PRECISION: _LABELLED_TASKS,
    Objective.RECALL: _LABELLED_TASKS,
    Objective.AUC: _LABELLED_TASKS,
    Objective.MSE: _CONTINUOUS_TASKS,
    Objective.MAE: _CONTINUOUS_TASKS,
}


class ProblemType(str, Enum):
    BINARY_CLASSIFICATION = "binary_classification"
    MULTICLASS_CLASSIFICATION = "multiclass_classification"
    REGRESSION = "regression"
    CLUSTERING = "clustering"


class SearchAlgorithm(str, Enum):
    """Search policy requested on a job's optimization block."""

    BAYESIAN_OPTIMIZATION = "bayesian_optimization"
    GENETIC_ALGORITHM = "genetic_algorithm"
    GRID_SEARCH = "grid_search"
    RANDOM_SEARCH = "random_search"
    HYPERBAND = "hyperband"


class OptimizationMethod(str, Enum):
    """Method tag recorded on a hyperparameter optimization run."""

    BAYESIAN = "bayesian"
    GENETIC = "genetic"
    GRID = "grid"
    RANDOM = "random"
    HYPERBAND = "hyperband"


class OptimizationStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TrialStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FeatureType(str, Enum):
    NUMERICAL = "numerical"
    CATEGORICAL = "categorical"
    TEMPORAL = "temporal"
    TEXT = "text"
    IMAGE = "image"


class FeatureOperation(str, Enum):
    SCALING = "scaling"
    ENCODING = "encoding"
    IMPUTATION = "imputation"
    TRANSFORMATION = "transformation"
    SELECTION = "selection"
    EXTRACTION = "extraction"


class PipelinePhase(str, Enum):
    DATA_PREPROCESSING = "data_preprocessing"
    ALGORITHM_SELECTION = "algorithm_selection"
    MODEL_TRAINING = "model_training"
    MODEL_SELECTION = "model_selection"
    FINAL_EVALUATION = "final_evaluation"


PIPELINE_PHASES = (
    PipelinePhase.DATA_PREPROCESSING,
    PipelinePhase.ALGORITHM_SELECTION,
    PipelinePhase.MODEL_TRAINING,
    PipelinePhase.MODEL_SELECTION,
    PipelinePhase.FINAL_EVALUATION,
)
