"""Bookkeeping for a hyperparameter optimization run.

The optimizer owns a ``HyperparameterOptimization`` record and keeps its
counters, best result and trial list consistent while a sampler proposes
configurations and an external runner evaluates them.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from automl_engine.utils.datetime import utcnow

from ..constants import OptimizationStatus, TrialStatus
from ..errors import InvalidConfigurationError
from ..schemas import HyperparameterOptimization, HyperparameterTrial, HyperparameterTrialMetadata
from .samplers import Sampler

logger = logging.getLogger(__name__)


class HyperparameterOptimizer:
    def __init__(
        self,
        run: HyperparameterOptimization,
        sampler: Sampler,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        if run.max_trials <= 0:
            raise InvalidConfigurationError("Max trials must be greater than 0")
        self.run = run
        self._sampler = sampler
        self._clock = clock
        self._id_factory = id_factory
        self._stale_trials = 0

    @property
    def finished(self) -> bool:
        return self.run.status != OptimizationStatus.RUNNING

    @property
    def best_score(self) -> Optional[float]:
        return self.run.best_score

    def propose(self) -> Optional[HyperparameterTrial]:
        """Return the next running trial, or ``None`` when the run is over.

        The run completes here when the budget is spent or the sampler has no
        further candidates.
        """

        if self.finished:
            return None
        if self.run.current_trial >= self.run.max_trials:
            self._finish(OptimizationStatus.COMPLETED)
            return None

        params = self._sampler.propose()
        if params is None:
            logger.debug("Sampler exhausted after %s trials for run %s", self.run.current_trial, self.run.id)
            self._finish(OptimizationStatus.COMPLETED)
            return None

        now = self._clock()
        trial = HyperparameterTrial(
            id=self._id_factory(),
            hyperparameters=dict(params),
            status=TrialStatus.RUNNING,
            created_at=now,
        )
        self.run.trials.append(trial)
        self.run.current_trial += 1
        self.run.updated_at = now
        return trial.model_copy(deep=True)

    def record_success(
        self,
        trial_id: str,
        score: float,
        metadata: Optional[HyperparameterTrialMetadata] = None,
    ) -> bool:
        """Mark a trial completed and return True when it became the new best."""

        trial = self._get_trial(trial_id)
        now = self._clock()
        trial.status = TrialStatus.COMPLETED
        trial.score = float(score)
        trial.completed_at = now
        if metadata is not None:
            trial.metadata = metadata.model_copy(deep=True)

        previous_best = self.run.best_score
        improved = previous_best is None or score > previous_best
        if improved:
            self.run.best_score = float(score)
            self.run.best_hyperparameters = dict(trial.hyperparameters)
        self.run.updated_at = now
        self._sampler.observe(trial.hyperparameters, float(score))

        self._track_early_stopping(trial, score, previous_best)
        return improved

    def record_failure(self, trial_id: str, error: str) -> None:
        trial = self._get_trial(trial_id)
        now = self._clock()
        trial.status = TrialStatus.FAILED
        trial.error = error
        trial.completed_at = now
        self.run.updated_at = now
        self._sampler.observe(trial.hyperparameters, None)

    def fail(self) -> None:
        self._finish(OptimizationStatus.FAILED)

    def complete(self) -> None:
        if not self.finished:
            self._finish(OptimizationStatus.COMPLETED)

    def snapshot(self) -> HyperparameterOptimization:
        return self.run.model_copy(deep=True)

    def best_hyperparameters(self) -> Dict[str, Any]:
        return dict(self.run.best_hyperparameters)

    def _track_early_stopping(self, trial: HyperparameterTrial, score: float, previous_best: Optional[float]) -> None:
        policy = self.run.early_stopping
        if not policy.enabled:
            return

        improved_enough = previous_best is None or (
            score > previous_best and score - previous_best >= policy.min_improvement
        )
        if improved_enough:
            self._stale_trials = 0
            return

        self._stale_trials += 1
        if self._stale_trials >= policy.patience:
            logger.info(
                "Early stopping run %s after %s trials without improvement",
                self.run.id,
                self._stale_trials,
            )
            trial.metadata.early_stopped = True
            self._finish(OptimizationStatus.COMPLETED)

    def _get_trial(self, trial_id: str) -> HyperparameterTrial:
        for trial in self.run.trials:
            if trial.id == trial_id:
                return trial
        raise InvalidConfigurationError(f"Trial {trial_id} does not belong to run {self.run.id}")

    def _finish(self, status: OptimizationStatus) -> None:
        now = self._clock()
        self.run.status = status
        self.run.updated_at = now
        self.run.completed_at = now


__all__ = ["HyperparameterOptimizer"]
