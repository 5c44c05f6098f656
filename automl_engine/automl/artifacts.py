"""Commands that create and store per-job phase artifacts."""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime
from typing import Callable

from automl_engine.utils.datetime import utcnow

from .errors import InvalidConfigurationError, JobNotFoundError
from .events import EventBus, EventType
from .repository import ArtifactRepository, JobRepository
from .schemas import (
    FeatureEngineeringStep,
    FeatureEngineeringStepCreate,
    HyperparameterOptimization,
    HyperparameterOptimizationCreate,
    ModelSelection,
    ModelSelectionCreate,
)

logger = logging.getLogger(__name__)


class ArtifactCommands:
    """Creates feature engineering steps, optimization runs and model selections.

    Each ``create_*`` command checks that the job exists, stores the artifact
    and publishes the matching ``*_created`` event.
    """

    def __init__(
        self,
        jobs: JobRepository,
        artifacts: ArtifactRepository,
        events: EventBus,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self.jobs = jobs
        self.artifacts = artifacts
        self.events = events
        self._clock = clock
        self._id_factory = id_factory

    def _require_job(self, job_id: str) -> None:
        if self.jobs.get(job_id) is None:
            raise JobNotFoundError(job_id)

    def create_feature_engineering(
        self, job_id: str, payload: FeatureEngineeringStepCreate
    ) -> FeatureEngineeringStep:
        self._require_job(job_id)
        step = FeatureEngineeringStep(
            **payload.model_dump(),
            id=self._id_factory(),
            job_id=job_id,
            created_at=self._clock(),
        )
        self.artifacts.add_feature_step(step)
        logger.info("Created feature engineering step %s (%s) for job %s", step.id, step.operation.value, job_id)
        self.events.publish(EventType.FEATURE_ENGINEERING_CREATED, step)
        return step

    def create_hyperparameter_optimization(
        self, job_id: str, payload: HyperparameterOptimizationCreate
    ) -> HyperparameterOptimization:
        self._require_job(job_id)
        if payload.max_trials <= 0:
            raise InvalidConfigurationError("Max trials must be greater than 0")
        for name, candidates in payload.search_space.items():
            if not candidates:
                raise InvalidConfigurationError(f"Hyperparameter '{name}' has no candidate values")
        if payload.early_stopping.enabled and payload.early_stopping.patience < 1:
            raise InvalidConfigurationError("Patience must be at least 1 when early stopping is enabled")

        now = self._clock()
        run = HyperparameterOptimization(
            **payload.model_dump(),
            id=self._id_factory(),
            job_id=job_id,
            created_at=now,
            updated_at=now,
        )
        self.artifacts.put_optimization(run)
        logger.info(
            "Created %s optimization run %s for job %s (max_trials=%s)",
            run.optimization_method.value,
            run.id,
            job_id,
            run.max_trials,
        )
        self.events.publish(EventType.HYPERPARAMETER_OPTIMIZATION_CREATED, run)
        return run

    def save_optimization(self, run: HyperparameterOptimization) -> None:
        """Commit progress on an existing run without publishing an event."""

        self.artifacts.put_optimization(run)

    def create_model_selection(self, job_id: str, payload: ModelSelectionCreate) -> ModelSelection:
        self._require_job(job_id)
        self._check_selection(payload)

        now = self._clock()
        selection = ModelSelection(
            **payload.model_dump(),
            id=self._id_factory(),
            job_id=job_id,
            created_at=now,
            updated_at=now,
        )
        self.artifacts.put_selection(selection)
        logger.info(
            "Created model selection %s for job %s with %s selected model(s)",
            selection.id,
            job_id,
            len(selection.selected_models),
        )
        self.events.publish(EventType.MODEL_SELECTION_CREATED, selection)
        return selection

    @staticmethod
    def _check_selection(payload: ModelSelectionCreate) -> None:
        if len(payload.selected_models) != len(payload.ensemble_weights):
            raise InvalidConfigurationError("Ensemble weights must match the selected models one to one")
        if payload.ensemble_weights:
            if any(weight < 0 for weight in payload.ensemble_weights):
                raise InvalidConfigurationError("Ensemble weights cannot be negative")
            if not math.isclose(sum(payload.ensemble_weights), 1.0, rel_tol=1e-6, abs_tol=1e-6):
                raise InvalidConfigurationError("Ensemble weights must sum to 1.0")

        candidate_ids = {candidate.id for candidate in payload.candidates}
        unknown = [model_id for model_id in payload.selected_models if model_id not in candidate_ids]
        if candidate_ids and unknown:
            raise InvalidConfigurationError(f"Selected models are not candidates: {', '.join(unknown)}")

        cross_validation = payload.cross_validation
        if cross_validation.folds != len(cross_validation.scores):
            raise InvalidConfigurationError(
                f"Cross-validation expects {cross_validation.folds} fold scores, "
                f"got {len(cross_validation.scores)}"
            )


__all__ = ["ArtifactCommands"]
