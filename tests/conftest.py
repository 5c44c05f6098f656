"""Pytest configuration helpers for the AutoML engine test suite."""

import itertools
import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

os.environ.setdefault("AUTOML_ENV", "testing")

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from automl_engine.automl.constants import (  # noqa: E402
    JobStatus,
    Objective,
    ProblemType,
    SearchAlgorithm,
    TaskType,
)
from automl_engine.automl.events import EventType  # noqa: E402
from automl_engine.automl.execution import TrialSpec  # noqa: E402
from automl_engine.automl.schemas import (  # noqa: E402
    DatasetDescriptor,
    FeatureEngineeringStepCreate,
    Job,
    JobCreate,
    OptimizationPolicy,
    PerformanceRecord,
    ResourceConstraints,
    SearchSpace,
)
from automl_engine.automl.service import build_service  # noqa: E402
from automl_engine.automl.tuning import clear_registry_cache  # noqa: E402
from automl_engine.config import TestingSettings  # noqa: E402

START_TIME = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; time only moves when a test advances it."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class SequentialIds:
    def __init__(self, prefix: str = "id") -> None:
        self._counter = itertools.count(1)
        self._prefix = prefix

    def __call__(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"


Outcome = Union[float, Exception]


class ScriptedRunner:
    """Trial runner returning scripted scores; the last outcome repeats.

    When ``gate`` is given, each trial signals ``started`` and then blocks
    until the gate is released so tests can act while a trial is in flight.
    """

    def __init__(self, outcomes: Sequence[Outcome] = (0.8,), gate: Optional[threading.Event] = None) -> None:
        self.outcomes = list(outcomes)
        self.gate = gate
        self.started = threading.Event()
        self.specs: List[TrialSpec] = []
        self._lock = threading.Lock()

    def run_trial(self, spec: TrialSpec) -> PerformanceRecord:
        with self._lock:
            index = len(self.specs)
            self.specs.append(spec)
        outcome = self.outcomes[min(index, len(self.outcomes) - 1)]

        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)

        if isinstance(outcome, Exception):
            raise outcome
        return PerformanceRecord(
            accuracy=outcome,
            precision=outcome,
            recall=outcome,
            f1_score=outcome,
            mse=1.0 - outcome,
            mae=1.0 - outcome,
            training_time=0.5,
            inference_time=0.1,
            memory_usage=1.0,
            fold_scores=[outcome, outcome, outcome],
            feature_importance={"x1": 0.75, "x2": 0.25},
        )


class StaticProfiler:
    def __init__(self, steps: Sequence[FeatureEngineeringStepCreate] = ()) -> None:
        self.steps = list(steps)
        self.profiled: List[str] = []

    def profile(self, job: Job) -> List[FeatureEngineeringStepCreate]:
        self.profiled.append(job.id)
        return [step.model_copy(deep=True) for step in self.steps]


class EventRecorder:
    def __init__(self, bus) -> None:
        self.received: List[tuple] = []
        for event_type in EventType:
            bus.subscribe(event_type, self)

    def __call__(self, event_type: EventType, payload: Any) -> None:
        self.received.append((event_type, payload))

    @property
    def types(self) -> List[EventType]:
        return [event_type for event_type, _ in self.received]


def make_dataset(**overrides: Any) -> DatasetDescriptor:
    data: Dict[str, Any] = {
        "name": "customers",
        "path": "/data/customers.csv",
        "size": 2048,
        "features": 2,
        "samples": 500,
        "target_column": "churned",
        "problem_type": ProblemType.BINARY_CLASSIFICATION,
    }
    data.update(overrides)
    return DatasetDescriptor(**data)


def make_job_payload(**overrides: Any) -> JobCreate:
    data: Dict[str, Any] = {
        "name": "Churn model",
        "description": "Predict customer churn",
        "task_type": TaskType.CLASSIFICATION,
        "objective": Objective.ACCURACY,
        "dataset": make_dataset(),
        "constraints": ResourceConstraints(max_training_time=60),
        "search_space": SearchSpace(
            algorithms=["random_forest"],
            hyperparameter_ranges={"n_estimators": [10, 20, 30]},
        ),
        "optimization": OptimizationPolicy(algorithm=SearchAlgorithm.GRID_SEARCH, max_trials=3),
    }
    data.update(overrides)
    return JobCreate(**data)


def make_job(**overrides: Any) -> Job:
    data: Dict[str, Any] = {
        "id": "job-1",
        "name": "Churn model",
        "task_type": TaskType.CLASSIFICATION,
        "objective": Objective.ACCURACY,
        "dataset": make_dataset(),
        "constraints": ResourceConstraints(),
        "search_space": SearchSpace(),
        "optimization": OptimizationPolicy(),
        "status": JobStatus.PENDING,
        "created_at": START_TIME,
        "updated_at": START_TIME,
    }
    data.update(overrides)
    return Job(**data)


@pytest.fixture(autouse=True)
def reset_registry_cache():
    clear_registry_cache()
    yield
    clear_registry_cache()


@pytest.fixture
def settings():
    return TestingSettings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ids():
    return SequentialIds()


@pytest.fixture
def runner():
    return ScriptedRunner([0.7, 0.9, 0.8])


@pytest.fixture
def profiler():
    return StaticProfiler()


@pytest.fixture
def service(settings, runner, profiler, clock, ids):
    return build_service(settings, runner=runner, profiler=profiler, clock=clock, id_factory=ids)


@pytest.fixture
def events(service):
    return EventRecorder(service.events)
