from typing import Any, Dict, List, Optional

import pytest

from automl_engine.automl.constants import OptimizationMethod, OptimizationStatus, TrialStatus
from automl_engine.automl.errors import InvalidConfigurationError
from automl_engine.automl.schemas import EarlyStoppingPolicy, HyperparameterOptimization
from automl_engine.automl.tuning import HyperparameterOptimizer

from conftest import START_TIME, FakeClock, SequentialIds


class ListSampler:
    def __init__(self, proposals: List[Dict[str, Any]]) -> None:
        self.proposals = list(proposals)
        self.observed: List[tuple] = []

    def propose(self) -> Optional[Dict[str, Any]]:
        return self.proposals.pop(0) if self.proposals else None

    def observe(self, params: Dict[str, Any], score: Optional[float]) -> None:
        self.observed.append((params, score))


def _run(max_trials: int = 5, early_stopping: Optional[EarlyStoppingPolicy] = None) -> HyperparameterOptimization:
    return HyperparameterOptimization(
        id="run-1",
        job_id="job-1",
        algorithm="random_forest",
        search_space={"n_estimators": [10, 20, 30, 40, 50]},
        optimization_method=OptimizationMethod.RANDOM,
        max_trials=max_trials,
        early_stopping=early_stopping or EarlyStoppingPolicy(),
        created_at=START_TIME,
        updated_at=START_TIME,
    )


def _optimizer(run: HyperparameterOptimization, count: int = 5) -> HyperparameterOptimizer:
    sampler = ListSampler([{"n_estimators": 10 * (index + 1)} for index in range(count)])
    return HyperparameterOptimizer(run, sampler, clock=FakeClock(), id_factory=SequentialIds("trial"))


def test_budget_bounds_the_number_of_trials():
    optimizer = _optimizer(_run(max_trials=2))

    first = optimizer.propose()
    second = optimizer.propose()

    assert first.status == TrialStatus.RUNNING
    assert second.hyperparameters == {"n_estimators": 20}
    assert optimizer.propose() is None
    assert optimizer.run.current_trial == 2
    assert optimizer.run.status == OptimizationStatus.COMPLETED
    assert optimizer.run.completed_at is not None


def test_sampler_exhaustion_completes_the_run():
    optimizer = _optimizer(_run(max_trials=10), count=1)

    assert optimizer.propose() is not None
    assert optimizer.propose() is None
    assert optimizer.finished
    assert len(optimizer.run.trials) == 1


def test_best_score_only_moves_on_strict_improvement():
    optimizer = _optimizer(_run())
    first = optimizer.propose()
    second = optimizer.propose()

    assert optimizer.record_success(first.id, 0.5) is True
    assert optimizer.record_success(second.id, 0.5) is False

    assert optimizer.best_score == 0.5
    assert optimizer.best_hyperparameters() == {"n_estimators": 10}
    assert optimizer.run.trials[1].status == TrialStatus.COMPLETED


def test_failure_is_recorded_and_reported_to_sampler():
    run = _run()
    sampler = ListSampler([{"n_estimators": 10}])
    optimizer = HyperparameterOptimizer(run, sampler, clock=FakeClock(), id_factory=SequentialIds("trial"))
    trial = optimizer.propose()

    optimizer.record_failure(trial.id, "estimator exploded")

    recorded = optimizer.run.trials[0]
    assert recorded.status == TrialStatus.FAILED
    assert recorded.error == "estimator exploded"
    assert optimizer.best_score is None
    assert sampler.observed == [({"n_estimators": 10}, None)]


def test_early_stopping_after_patience_without_enough_improvement():
    policy = EarlyStoppingPolicy(enabled=True, patience=2, min_improvement=0.1)
    optimizer = _optimizer(_run(max_trials=5, early_stopping=policy))

    scores = [0.5, 0.55, 0.58]
    for score in scores:
        trial = optimizer.propose()
        optimizer.record_success(trial.id, score)

    assert optimizer.finished
    assert optimizer.propose() is None
    assert optimizer.run.current_trial == 3
    assert optimizer.run.trials[-1].metadata.early_stopped is True
    assert optimizer.best_score == 0.58


def test_sufficient_improvement_resets_patience():
    policy = EarlyStoppingPolicy(enabled=True, patience=2, min_improvement=0.1)
    optimizer = _optimizer(_run(max_trials=5, early_stopping=policy))

    for score in [0.5, 0.5, 0.7, 0.7]:
        trial = optimizer.propose()
        optimizer.record_success(trial.id, score)

    assert not optimizer.finished


def test_disabled_early_stopping_runs_full_budget():
    optimizer = _optimizer(_run(max_trials=3))

    while (trial := optimizer.propose()) is not None:
        optimizer.record_success(trial.id, 0.5)

    assert optimizer.run.current_trial == 3
    assert not any(trial.metadata.early_stopped for trial in optimizer.run.trials)


def test_zero_budget_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        _optimizer(_run(max_trials=0))


def test_unknown_trial_is_rejected():
    optimizer = _optimizer(_run())
    with pytest.raises(InvalidConfigurationError):
        optimizer.record_success("nope", 1.0)


def test_fail_marks_run_failed():
    optimizer = _optimizer(_run())
    optimizer.fail()
    optimizer.complete()

    assert optimizer.run.status == OptimizationStatus.FAILED
