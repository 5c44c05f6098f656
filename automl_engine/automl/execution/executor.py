"""Five-phase AutoML pipeline driven as one asyncio task per job.

Phases run strictly in order: data preprocessing, algorithm selection, model
training, model selection and final evaluation. Every mutation is committed
to the repositories before the next step. A job's cancellation token is
checked between phases, before each trial and before each commit; once it is
set the executor stops without writing anything further.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from automl_engine.utils.datetime import utcnow
from automl_engine.utils.logging_utils import log_job_action

from ..artifacts import ArtifactCommands
from ..constants import FeatureOperation, JobStatus, Objective, PipelinePhase, TrialStatus
from ..errors import PipelineError
from ..events import EventBus, EventType
from ..lifecycle import ensure_transition
from ..recommendations import recommend
from ..repository import JobRepository
from ..schemas import (
    EarlyStoppingPolicy,
    FeatureEngineeringStep,
    HyperparameterOptimizationCreate,
    HyperparameterTrialMetadata,
    Job,
    ModelSelection,
    ModelTrial,
    PerformanceRecord,
    TrainingCurvePoint,
)
from ..selection import ModelSelector, build_candidate, objective_score
from ..tuning import HyperparameterOptimizer, build_sampler, resolve_method
from .preprocessing import FeatureProfiler
from .runners import TrialRunner, TrialSpec

logger = logging.getLogger(__name__)


class _RunCancelled(Exception):
    """Unwinds the pipeline once the job's cancellation token is set."""


@dataclass
class PipelineContext:
    job_id: str
    token: asyncio.Event
    feature_steps: List[FeatureEngineeringStep] = field(default_factory=list)
    selected_features: List[str] = field(default_factory=list)
    components: Optional[int] = None
    algorithm: Optional[str] = None
    optimizer: Optional[HyperparameterOptimizer] = None
    completed_trials: List[ModelTrial] = field(default_factory=list)
    selection: Optional[ModelSelection] = None


class PipelineExecutor:
    def __init__(
        self,
        jobs: JobRepository,
        artifacts: ArtifactCommands,
        events: EventBus,
        runner: TrialRunner,
        profiler: FeatureProfiler,
        selector: ModelSelector,
        *,
        selection_criteria: Sequence[str] = ("accuracy", "interpretability", "robustness"),
        ensemble_methods: Sequence[str] = ("voting",),
        cv_folds: int = 5,
        random_state: Optional[int] = 42,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.jobs = jobs
        self.artifacts = artifacts
        self.events = events
        self.runner = runner
        self.profiler = profiler
        self.selector = selector
        self.selection_criteria = list(selection_criteria)
        self.ensemble_methods = list(ensemble_methods)
        self.cv_folds = cv_folds
        self.random_state = random_state
        self._clock = clock
        self._id_factory = id_factory

    async def run(self, job_id: str, token: asyncio.Event) -> None:
        context = PipelineContext(job_id=job_id, token=token)
        phases = (
            (PipelinePhase.DATA_PREPROCESSING, self._data_preprocessing),
            (PipelinePhase.ALGORITHM_SELECTION, self._algorithm_selection),
            (PipelinePhase.MODEL_TRAINING, self._model_training),
            (PipelinePhase.MODEL_SELECTION, self._model_selection),
            (PipelinePhase.FINAL_EVALUATION, self._final_evaluation),
        )

        try:
            for phase, handler in phases:
                self._check_cancelled(context)
                logger.info("Job %s: starting phase %s", job_id, phase.value)
                await handler(context)
            self._check_cancelled(context)
            self._complete(context)
        except _RunCancelled:
            logger.info("Job %s: pipeline stopped after cancellation", job_id)
        except Exception as exc:
            if token.is_set():
                logger.info("Job %s: ignoring failure after cancellation: %s", job_id, exc)
                return
            logger.error("Job %s: pipeline failed: %s", job_id, exc, exc_info=True)
            self._fail(context, exc)

    # ------------------------------------------------------------------
    # Commit helpers
    # ------------------------------------------------------------------
    def _check_cancelled(self, context: PipelineContext) -> None:
        if context.token.is_set():
            raise _RunCancelled()

    def _load_running_job(self, context: PipelineContext) -> Job:
        self._check_cancelled(context)
        job = self.jobs.get(context.job_id)
        if job is None:
            raise PipelineError(f"AutoML job {context.job_id} disappeared from the repository")
        if job.status != JobStatus.RUNNING:
            raise _RunCancelled()
        return job

    def _commit(self, context: PipelineContext, mutate: Callable[[Job], None]) -> Job:
        job = self._load_running_job(context)
        mutate(job)
        job.updated_at = self._clock()
        self.jobs.put(job)
        return job

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    async def _data_preprocessing(self, context: PipelineContext) -> None:
        job = self._load_running_job(context)
        proposals = await asyncio.to_thread(self.profiler.profile, job)

        for proposal in proposals:
            self._check_cancelled(context)
            step = self.artifacts.create_feature_engineering(context.job_id, proposal)
            context.feature_steps.append(step)
            if step.operation == FeatureOperation.SELECTION:
                context.selected_features = list(step.output_features)
            elif step.operation == FeatureOperation.EXTRACTION:
                context.components = int(step.parameters.get("n_components") or len(step.output_features)) or None

        self._commit(context, lambda _job: None)

    async def _algorithm_selection(self, context: PipelineContext) -> None:
        job = self._load_running_job(context)
        recommendation = recommend(job.task_type, job.dataset.samples, job.dataset.features)

        candidates = job.search_space.algorithms or recommendation.algorithms
        if not candidates:
            raise PipelineError(f"No candidate algorithm available for task type '{job.task_type.value}'")
        context.algorithm = candidates[0]

        search_space = job.search_space.hyperparameter_ranges or recommendation.hyperparameters
        method = resolve_method(job.optimization.algorithm)
        max_trials = job.optimization.max_trials
        if job.constraints.max_models is not None:
            max_trials = min(max_trials, job.constraints.max_models)

        self._check_cancelled(context)
        run = self.artifacts.create_hyperparameter_optimization(
            context.job_id,
            HyperparameterOptimizationCreate(
                algorithm=context.algorithm,
                search_space=search_space,
                optimization_method=method,
                max_trials=max_trials,
                early_stopping=EarlyStoppingPolicy(
                    enabled=job.optimization.early_stopping,
                    patience=job.optimization.patience,
                    min_improvement=job.optimization.min_improvement,
                ),
            ),
        )
        sampler = build_sampler(method, run.search_space, run.max_trials, self.random_state)
        context.optimizer = HyperparameterOptimizer(
            run,
            sampler,
            clock=self._clock,
            id_factory=self._id_factory,
        )
        logger.info(
            "Job %s: searching %s with %s (max_trials=%s)",
            context.job_id,
            context.algorithm,
            method.value,
            max_trials,
        )

    async def _model_training(self, context: PipelineContext) -> None:
        optimizer = context.optimizer
        if optimizer is None or context.algorithm is None:
            raise PipelineError("Model training started before algorithm selection")

        job = self._load_running_job(context)
        step_names = [step.name for step in context.feature_steps]

        while True:
            self._check_cancelled(context)
            proposal = optimizer.propose()
            if proposal is None:
                break

            trial = ModelTrial(
                id=proposal.id,
                model_name=f"{context.algorithm} #{optimizer.run.current_trial}",
                algorithm=context.algorithm,
                hyperparameters=dict(proposal.hyperparameters),
                features=list(context.selected_features),
                preprocessing=list(job.search_space.preprocessing),
                feature_engineering=step_names,
                status=TrialStatus.RUNNING,
                created_at=proposal.created_at,
            )
            self._commit(context, lambda current: current.results.all_models.append(trial))
            self._check_cancelled(context)
            self.artifacts.save_optimization(optimizer.snapshot())

            spec = TrialSpec(
                job_id=context.job_id,
                trial_id=trial.id,
                algorithm=trial.algorithm,
                task_type=job.task_type,
                objective=job.objective,
                dataset=job.dataset,
                hyperparameters=dict(trial.hyperparameters),
                custom_metric=job.custom_metric,
                features=tuple(trial.features),
                preprocessing=tuple(trial.preprocessing),
                components=context.components,
                cv_folds=self.cv_folds,
                random_state=self.random_state,
            )
            try:
                performance = await asyncio.to_thread(self.runner.run_trial, spec)
                score = objective_score(performance, job.objective)
            except Exception as exc:
                self._check_cancelled(context)
                logger.warning("Job %s: trial %s failed: %s", context.job_id, trial.id, exc)
                optimizer.record_failure(trial.id, str(exc))
                self._commit(context, _trial_updater(trial.id, TrialStatus.FAILED, self._clock(), error=str(exc)))
                self._check_cancelled(context)
                self.artifacts.save_optimization(optimizer.snapshot())
                continue

            # A trial that finished after cancellation is discarded
            self._check_cancelled(context)
            improved = optimizer.record_success(
                trial.id,
                score,
                HyperparameterTrialMetadata(
                    training_time=performance.training_time,
                    memory_usage=performance.memory_usage,
                ),
            )
            completed_at = self._clock()

            def _record(current: Job) -> None:
                _trial_updater(
                    trial.id,
                    TrialStatus.COMPLETED,
                    completed_at,
                    performance=performance,
                    score=score,
                )(current)
                if improved:
                    current.results.best_model = trial.id
                    current.results.best_score = score
                    current.results.best_hyperparameters = dict(trial.hyperparameters)

            updated = self._commit(context, _record)
            context.completed_trials = [
                item for item in updated.results.all_models if item.status == TrialStatus.COMPLETED
            ]
            self._check_cancelled(context)
            self.artifacts.save_optimization(optimizer.snapshot())

        if not context.completed_trials:
            optimizer.fail()
            self._check_cancelled(context)
            self.artifacts.save_optimization(optimizer.snapshot())
            raise PipelineError("No trial completed successfully")

        optimizer.complete()
        self._check_cancelled(context)
        self.artifacts.save_optimization(optimizer.snapshot())

    async def _model_selection(self, context: PipelineContext) -> None:
        job = self._load_running_job(context)
        candidates = [build_candidate(trial, job.objective) for trial in context.completed_trials]

        best = self._best_trial(context, job)
        cv_scores = list(best.performance.fold_scores) if best and best.performance else []

        payload = self.selector.build_selection(
            candidates,
            criteria=self.selection_criteria,
            methods=self.ensemble_methods,
            cv_scores=cv_scores,
        )
        self._check_cancelled(context)
        context.selection = self.artifacts.create_model_selection(context.job_id, payload)

    async def _final_evaluation(self, context: PipelineContext) -> None:
        job = self._load_running_job(context)
        best = self._best_trial(context, job)
        metric = job.custom_metric if job.objective == Objective.CUSTOM and job.custom_metric else job.objective.value

        curve: List[TrainingCurvePoint] = []
        best_so_far: Optional[float] = None
        for ordinal, trial in enumerate(context.completed_trials, start=1):
            score = trial.score if trial.score is not None else 0.0
            if best_so_far is None or score > best_so_far:
                best_so_far = score
            curve.append(TrainingCurvePoint(epoch=ordinal, metric=metric, value=best_so_far))

        cv_scores = list(context.selection.cross_validation.scores) if context.selection else []
        importance = dict(best.performance.feature_importance) if best and best.performance else {}

        def _write(current: Job) -> None:
            current.results.cross_validation_scores = cv_scores
            current.results.feature_importance = importance
            current.results.training_curves = curve

        self._commit(context, _write)

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------
    @staticmethod
    def _best_trial(context: PipelineContext, job: Job) -> Optional[ModelTrial]:
        for trial in context.completed_trials:
            if trial.id == job.results.best_model:
                return trial
        return None

    def _complete(self, context: PipelineContext) -> None:
        def _finish(job: Job) -> None:
            ensure_transition(job.id, job.status, JobStatus.COMPLETED)
            job.status = JobStatus.COMPLETED
            job.completed_at = self._clock()

        job = self._commit(context, _finish)
        log_job_action("complete_job", job.id, details=f"best_score={job.results.best_score}")
        self.events.publish(EventType.JOB_COMPLETED, job)

    def _fail(self, context: PipelineContext, exc: Exception) -> None:
        job = self.jobs.get(context.job_id)
        if job is None or job.status != JobStatus.RUNNING or context.token.is_set():
            return
        ensure_transition(job.id, job.status, JobStatus.FAILED)
        job.status = JobStatus.FAILED
        job.error_message = str(exc) or exc.__class__.__name__
        job.updated_at = self._clock()
        self.jobs.put(job)
        log_job_action("fail_job", job.id, success=False, details=job.error_message)
        self.events.publish(EventType.JOB_FAILED, job)


def _trial_updater(
    trial_id: str,
    status: TrialStatus,
    completed_at: datetime,
    *,
    performance: Optional[PerformanceRecord] = None,
    score: Optional[float] = None,
    error: Optional[str] = None,
) -> Callable[[Job], None]:
    def _update(job: Job) -> None:
        for trial in job.results.all_models:
            if trial.id == trial_id:
                trial.status = status
                trial.completed_at = completed_at
                trial.performance = performance
                trial.score = score
                trial.error = error
                return
        raise PipelineError(f"Trial {trial_id} is not recorded on job {job.id}")

    return _update


__all__ = ["PipelineContext", "PipelineExecutor"]
