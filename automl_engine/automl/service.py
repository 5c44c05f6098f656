"""Command and query facade over the AutoML job engine."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from automl_engine.config import Settings, get_settings
from automl_engine.utils.datetime import utcnow
from automl_engine.utils.logging_utils import log_job_action

from .artifacts import ArtifactCommands
from .constants import JobStatus, TaskType, TrialStatus
from .errors import JobNotFoundError, JobValidationError
from .events import EventBus, EventType
from .execution import (
    FeatureProfiler,
    PandasFeatureProfiler,
    PipelineExecutor,
    SklearnTrialRunner,
    TrialRunner,
)
from .execution.data import DatasetCache
from .lifecycle import ensure_transition
from .progress import estimate_progress
from .recommendations import recommend
from .repository import (
    ArtifactRepository,
    InMemoryArtifactRepository,
    InMemoryJobRepository,
    JobRepository,
)
from .schemas import (
    AutoMLRecommendation,
    FeatureEngineeringStep,
    FeatureEngineeringStepCreate,
    HyperparameterOptimization,
    HyperparameterOptimizationCreate,
    Job,
    JobCreate,
    JobProgressSnapshot,
    ModelSelection,
    ModelSelectionCreate,
    OptimizationMethodChoice,
)
from .selection import ModelSelector
from .tuning import get_method_choices
from .validation import validate_job

logger = logging.getLogger(__name__)


class AutoMLService:
    """Creates, starts, stops and reports on AutoML jobs.

    Only ``start_job`` and the task helpers are coroutines; every other
    command runs synchronously on the caller's thread. Pipelines run as
    asyncio tasks owned by the service.
    """

    def __init__(
        self,
        jobs: JobRepository,
        artifacts: ArtifactRepository,
        events: EventBus,
        runner: TrialRunner,
        profiler: FeatureProfiler,
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.settings = settings or get_settings()
        self.jobs = jobs
        self.artifact_store = artifacts
        self.events = events
        self._clock = clock
        self._id_factory = id_factory

        self.artifacts = ArtifactCommands(jobs, artifacts, events, clock=clock, id_factory=id_factory)
        self.executor = PipelineExecutor(
            jobs,
            self.artifacts,
            events,
            runner,
            profiler,
            ModelSelector(self.settings.AUTOML_ENSEMBLE_SIZE),
            selection_criteria=self.settings.AUTOML_DEFAULT_SELECTION_CRITERIA,
            ensemble_methods=self.settings.AUTOML_DEFAULT_ENSEMBLE_METHODS,
            cv_folds=self.settings.AUTOML_CV_FOLDS,
            random_state=self.settings.AUTOML_RANDOM_STATE,
            clock=clock,
            id_factory=id_factory,
        )
        self._tasks: Dict[str, asyncio.Task] = {}
        self._tokens: Dict[str, asyncio.Event] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_job(self, job_id: str) -> Job:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        task_type: Optional[TaskType] = None,
        created_by: Optional[str] = None,
        team: Optional[str] = None,
    ) -> List[Job]:
        def matches(job: Job) -> bool:
            return (
                (status is None or job.status == status)
                and (task_type is None or job.task_type == task_type)
                and (created_by is None or job.metadata.created_by == created_by)
                and (team is None or job.metadata.team == team)
            )

        return sorted(self.jobs.list(matches), key=lambda job: job.created_at, reverse=True)

    def get_job_progress(self, job_id: str) -> JobProgressSnapshot:
        job = self.get_job(job_id)
        return JobProgressSnapshot(
            job=job,
            progress=estimate_progress(job, self._clock()),
            current_trials=[trial for trial in job.results.all_models if trial.status == TrialStatus.RUNNING],
            feature_engineering=self.artifact_store.list_feature_steps(job_id),
            hyperparameter_optimization=self.artifact_store.get_optimization(job_id),
            model_selection=self.artifact_store.get_selection(job_id),
        )

    @staticmethod
    def recommend(
        task_type: Union[TaskType, str, None],
        dataset_size: int,
        feature_count: int,
    ) -> AutoMLRecommendation:
        return recommend(task_type, dataset_size, feature_count)

    @staticmethod
    def optimization_methods() -> List[OptimizationMethodChoice]:
        return [OptimizationMethodChoice(**choice) for choice in get_method_choices()]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def create_job(self, payload: JobCreate) -> Job:
        try:
            validate_job(payload)
        except JobValidationError as exc:
            log_job_action("create_job", success=False, details=str(exc))
            raise

        optimization = payload.optimization
        if "optimization" not in payload.model_fields_set:
            optimization = optimization.model_copy(update={"max_trials": self.settings.AUTOML_DEFAULT_MAX_TRIALS})

        now = self._clock()
        job = Job(
            id=self._id_factory(),
            name=payload.name.strip(),
            description=payload.description,
            task_type=payload.task_type,
            objective=payload.objective,
            custom_metric=payload.custom_metric,
            dataset=payload.dataset,
            constraints=payload.constraints,
            search_space=payload.search_space,
            optimization=optimization,
            metadata=payload.metadata,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.jobs.put(job)
        log_job_action("create_job", job.id, details=f"{job.task_type.value} / {job.objective.value}")
        self.events.publish(EventType.JOB_CREATED, job)
        return job

    async def start_job(self, job_id: str) -> Job:
        job = self.get_job(job_id)
        ensure_transition(job_id, job.status, JobStatus.RUNNING)

        now = self._clock()
        job.status = JobStatus.RUNNING
        job.started_at = now
        job.updated_at = now
        job.estimated_completion = now + timedelta(minutes=job.constraints.max_training_time)
        self.jobs.put(job)

        token = asyncio.Event()
        self._tokens[job_id] = token
        log_job_action("start_job", job_id)
        self.events.publish(EventType.JOB_STARTED, job)

        task = asyncio.create_task(self.executor.run(job_id, token), name=f"automl-job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _task: self._forget(job_id, _task))
        return job

    def stop_job(self, job_id: str) -> Job:
        job = self.get_job(job_id)
        ensure_transition(job_id, job.status, JobStatus.CANCELLED)

        job.status = JobStatus.CANCELLED
        job.updated_at = self._clock()
        self.jobs.put(job)

        token = self._tokens.get(job_id)
        if token is not None:
            token.set()
        log_job_action("stop_job", job_id)
        self.events.publish(EventType.JOB_CANCELLED, job)
        return job

    def create_feature_engineering(
        self, job_id: str, payload: FeatureEngineeringStepCreate
    ) -> FeatureEngineeringStep:
        return self.artifacts.create_feature_engineering(job_id, payload)

    def create_hyperparameter_optimization(
        self, job_id: str, payload: HyperparameterOptimizationCreate
    ) -> HyperparameterOptimization:
        return self.artifacts.create_hyperparameter_optimization(job_id, payload)

    def create_model_selection(self, job_id: str, payload: ModelSelectionCreate) -> ModelSelection:
        return self.artifacts.create_model_selection(job_id, payload)

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------
    def _forget(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            self._tasks.pop(job_id, None)
            self._tokens.pop(job_id, None)

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """Wait until the job's pipeline task has finished and return the job."""

        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        return self.get_job(job_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %s running AutoML pipeline(s)", len(tasks))
        self._tasks.clear()
        self._tokens.clear()


def build_service(
    settings: Optional[Settings] = None,
    *,
    runner: Optional[TrialRunner] = None,
    profiler: Optional[FeatureProfiler] = None,
    clock: Callable[[], datetime] = utcnow,
    id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
) -> AutoMLService:
    """Wire an ``AutoMLService`` with in-memory storage and the default collaborators."""

    settings = settings or get_settings()
    cache = DatasetCache(settings.AUTOML_DATASET_CACHE_SIZE)
    return AutoMLService(
        InMemoryJobRepository(),
        InMemoryArtifactRepository(),
        EventBus(),
        runner
        or SklearnTrialRunner(
            cv_folds=settings.AUTOML_CV_FOLDS,
            random_state=settings.AUTOML_RANDOM_STATE,
            cache=cache,
        ),
        profiler or PandasFeatureProfiler(random_state=settings.AUTOML_RANDOM_STATE, cache=cache),
        settings=settings,
        clock=clock,
        id_factory=id_factory,
    )


__all__ = ["AutoMLService", "build_service"]
