"""Pydantic schemas for AutoML jobs, trials and phase artifacts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from automl_engine.utils.datetime import utcnow

from .constants import (
    FeatureOperation,
    FeatureType,
    JobStatus,
    Objective,
    OptimizationMethod,
    OptimizationStatus,
    Priority,
    ProblemType,
    SearchAlgorithm,
    TaskType,
    TrialStatus,
)


class DatasetDescriptor(BaseModel):
    """Where the training data lives and what shape it has."""

    name: str
    path: str
    size: int = Field(default=0, ge=0, description="Storage size in bytes")
    features: int = Field(default=0, ge=0)
    samples: int = Field(default=0, ge=0)
    target_column: Optional[str] = None
    problem_type: ProblemType
    feature_columns: List[str] = Field(default_factory=list)


class ResourceConstraints(BaseModel):
    max_training_time: float = Field(default=60.0, description="Minutes")
    max_models: Optional[int] = None
    max_memory: Optional[float] = Field(default=None, description="GB")
    max_cpu: Optional[int] = None
    max_gpu: Optional[int] = None
    budget: Optional[float] = None


class SearchSpace(BaseModel):
    algorithms: List[str] = Field(default_factory=list)
    hyperparameter_ranges: Dict[str, List[Any]] = Field(default_factory=dict)
    feature_engineering: List[str] = Field(default_factory=list)
    preprocessing: List[str] = Field(default_factory=list)


class OptimizationPolicy(BaseModel):
    algorithm: SearchAlgorithm = SearchAlgorithm.BAYESIAN_OPTIMIZATION
    max_trials: int = 20
    early_stopping: bool = False
    patience: int = 5
    min_improvement: float = 0.0


class PerformanceRecord(BaseModel):
    """Metrics reported by a trial runner for one evaluated configuration."""

    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    auc: Optional[float] = None
    mse: Optional[float] = None
    mae: Optional[float] = None
    custom_metric: Optional[float] = None
    training_time: float = Field(default=0.0, description="Seconds")
    inference_time: float = Field(default=0.0, description="Milliseconds")
    memory_usage: float = Field(default=0.0, description="MB")
    fold_scores: List[float] = Field(default_factory=list)
    feature_importance: Dict[str, float] = Field(default_factory=dict)


class ModelTrial(BaseModel):
    id: str
    model_name: str
    algorithm: str
    hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    features: List[str] = Field(default_factory=list)
    preprocessing: List[str] = Field(default_factory=list)
    feature_engineering: List[str] = Field(default_factory=list)
    performance: Optional[PerformanceRecord] = None
    score: Optional[float] = None
    status: TrialStatus = TrialStatus.PENDING
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class TrainingCurvePoint(BaseModel):
    epoch: int
    metric: str
    value: float


class JobResults(BaseModel):
    best_model: Optional[str] = None
    best_score: Optional[float] = None
    best_hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    all_models: List[ModelTrial] = Field(default_factory=list)
    feature_importance: Dict[str, float] = Field(default_factory=dict)
    cross_validation_scores: List[float] = Field(default_factory=list)
    training_curves: List[TrainingCurvePoint] = Field(default_factory=list)


class JobMetadata(BaseModel):
    created_by: Optional[str] = None
    team: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    business_value: Optional[str] = None
    use_case: Optional[str] = None


class JobCreate(BaseModel):
    """Payload for submitting a new AutoML job.

    Required fields are optional at the schema level so that the validator can
    reject incomplete submissions with a ``MissingFieldError`` naming the field.
    """

    name: str = ""
    description: str = ""
    task_type: Optional[TaskType] = None
    objective: Optional[Objective] = None
    custom_metric: Optional[str] = None
    dataset: Optional[DatasetDescriptor] = None
    constraints: ResourceConstraints = Field(default_factory=ResourceConstraints)
    search_space: SearchSpace = Field(default_factory=SearchSpace)
    optimization: OptimizationPolicy = Field(default_factory=OptimizationPolicy)
    metadata: JobMetadata = Field(default_factory=JobMetadata)


class Job(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(frozen=True)
    name: str
    description: str = ""
    task_type: TaskType
    objective: Objective
    custom_metric: Optional[str] = None
    dataset: DatasetDescriptor
    constraints: ResourceConstraints
    search_space: SearchSpace
    optimization: OptimizationPolicy
    results: JobResults = Field(default_factory=JobResults)
    metadata: JobMetadata = Field(default_factory=JobMetadata)
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None


class FeatureEngineeringPerformance(BaseModel):
    information_gain: float = 0.0
    correlation: float = 0.0
    variance: float = 0.0
    mutual_information: float = 0.0


class FeatureEngineeringStepCreate(BaseModel):
    name: str
    description: str = ""
    type: FeatureType
    operation: FeatureOperation
    parameters: Dict[str, Any] = Field(default_factory=dict)
    applied_features: List[str] = Field(default_factory=list)
    output_features: List[str] = Field(default_factory=list)
    performance: FeatureEngineeringPerformance = Field(default_factory=FeatureEngineeringPerformance)


class FeatureEngineeringStep(FeatureEngineeringStepCreate):
    id: str
    job_id: str
    created_at: datetime


class EarlyStoppingPolicy(BaseModel):
    enabled: bool = False
    patience: int = 5
    min_improvement: float = 0.0


class HyperparameterTrialMetadata(BaseModel):
    training_time: float = 0.0
    memory_usage: float = 0.0
    gpu_usage: Optional[float] = None
    convergence: bool = True
    early_stopped: bool = False


class HyperparameterTrial(BaseModel):
    id: str
    hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    score: Optional[float] = None
    status: TrialStatus = TrialStatus.PENDING
    error: Optional[str] = None
    metadata: HyperparameterTrialMetadata = Field(default_factory=HyperparameterTrialMetadata)
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class HyperparameterOptimizationCreate(BaseModel):
    algorithm: str
    search_space: Dict[str, List[Any]] = Field(default_factory=dict)
    optimization_method: OptimizationMethod = OptimizationMethod.BAYESIAN
    max_trials: int
    early_stopping: EarlyStoppingPolicy = Field(default_factory=EarlyStoppingPolicy)


class HyperparameterOptimization(HyperparameterOptimizationCreate):
    id: str
    job_id: str
    current_trial: int = 0
    best_score: Optional[float] = None
    best_hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    trials: List[HyperparameterTrial] = Field(default_factory=list)
    status: OptimizationStatus = OptimizationStatus.RUNNING
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class CandidatePerformance(BaseModel):
    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    training_time: float = 0.0
    inference_time: float = 0.0
    complexity: float = Field(default=0.5, ge=0.0, le=1.0)


class ModelCandidate(BaseModel):
    id: str
    algorithm: str
    hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    performance: CandidatePerformance
    interpretability: float = Field(ge=0.0, le=100.0)
    robustness: float = Field(ge=0.0, le=100.0)
    scalability: float = Field(ge=0.0, le=100.0)
    business_alignment: float = Field(ge=0.0, le=100.0)
    overall_score: float = 0.0
    rank: Optional[int] = None


class CrossValidationSummary(BaseModel):
    folds: int
    scores: List[float] = Field(default_factory=list)
    mean_score: float
    std_score: float


class ModelSelectionCreate(BaseModel):
    candidates: List[ModelCandidate] = Field(default_factory=list)
    selection_criteria: List[str] = Field(default_factory=list)
    ensemble_methods: List[str] = Field(default_factory=list)
    selected_models: List[str] = Field(default_factory=list)
    ensemble_weights: List[float] = Field(default_factory=list)
    final_score: float = 0.0
    cross_validation: CrossValidationSummary


class ModelSelection(ModelSelectionCreate):
    id: str
    job_id: str
    created_at: datetime
    updated_at: datetime


class JobProgress(BaseModel):
    percentage: int
    current_phase: str
    estimated_time_remaining: float = Field(description="Minutes")
    trials_completed: int
    best_score: Optional[float] = None


class JobProgressSnapshot(BaseModel):
    job: Job
    progress: JobProgress
    current_trials: List[ModelTrial] = Field(default_factory=list)
    feature_engineering: List[FeatureEngineeringStep] = Field(default_factory=list)
    hyperparameter_optimization: Optional[HyperparameterOptimization] = None
    model_selection: Optional[ModelSelection] = None


class AutoMLRecommendation(BaseModel):
    algorithms: List[str] = Field(default_factory=list)
    hyperparameters: Dict[str, List[Any]] = Field(default_factory=dict)
    feature_engineering: List[str] = Field(default_factory=list)
    preprocessing: List[str] = Field(default_factory=list)
    expected_time: int = Field(description="Minutes")
    expected_performance: float


class OptimizationMethodChoice(BaseModel):
    value: str
    label: str
    description: str
    aliases: List[str] = Field(default_factory=list)


__all__ = [
    "AutoMLRecommendation",
    "CandidatePerformance",
    "CrossValidationSummary",
    "DatasetDescriptor",
    "EarlyStoppingPolicy",
    "FeatureEngineeringPerformance",
    "FeatureEngineeringStep",
    "FeatureEngineeringStepCreate",
    "HyperparameterOptimization",
    "HyperparameterOptimizationCreate",
    "HyperparameterTrial",
    "HyperparameterTrialMetadata",
    "Job",
    "JobCreate",
    "JobMetadata",
    "JobProgress",
    "JobProgressSnapshot",
    "JobResults",
    "ModelCandidate",
    "ModelSelection",
    "ModelSelectionCreate",
    "ModelTrial",
    "OptimizationMethodChoice",
    "OptimizationPolicy",
    "PerformanceRecord",
    "ResourceConstraints",
    "SearchSpace",
    "TrainingCurvePoint",
]
