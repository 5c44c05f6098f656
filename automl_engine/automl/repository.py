"""Storage interfaces and in-memory implementations for jobs and their artifacts."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional, Protocol

from .schemas import FeatureEngineeringStep, HyperparameterOptimization, Job, ModelSelection


class JobRepository(Protocol):
    def get(self, job_id: str) -> Optional[Job]: ...

    def put(self, job: Job) -> None: ...

    def list(self, predicate: Optional[Callable[[Job], bool]] = None) -> List[Job]: ...


class ArtifactRepository(Protocol):
    def add_feature_step(self, step: FeatureEngineeringStep) -> None: ...

    def list_feature_steps(self, job_id: str) -> List[FeatureEngineeringStep]: ...

    def put_optimization(self, run: HyperparameterOptimization) -> None: ...

    def get_optimization(self, job_id: str) -> Optional[HyperparameterOptimization]: ...

    def put_selection(self, selection: ModelSelection) -> None: ...

    def get_selection(self, job_id: str) -> Optional[ModelSelection]: ...


class InMemoryJobRepository:
    """Thread-safe job store that hands out deep copies.

    Readers never share objects with the writer, so a job observed through
    ``get`` cannot change underneath the caller.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: Dict[str, Job] = {}

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job is not None else None

    def put(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = job.model_copy(deep=True)

    def list(self, predicate: Optional[Callable[[Job], bool]] = None) -> List[Job]:
        with self._lock:
            return [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if predicate is None or predicate(job)
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class InMemoryArtifactRepository:
    """Per-job feature steps, latest optimization run and latest model selection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._feature_steps: Dict[str, List[FeatureEngineeringStep]] = {}
        self._optimizations: Dict[str, HyperparameterOptimization] = {}
        self._selections: Dict[str, ModelSelection] = {}

    def add_feature_step(self, step: FeatureEngineeringStep) -> None:
        with self._lock:
            self._feature_steps.setdefault(step.job_id, []).append(step.model_copy(deep=True))

    def list_feature_steps(self, job_id: str) -> List[FeatureEngineeringStep]:
        with self._lock:
            return [step.model_copy(deep=True) for step in self._feature_steps.get(job_id, [])]

    def put_optimization(self, run: HyperparameterOptimization) -> None:
        with self._lock:
            self._optimizations[run.job_id] = run.model_copy(deep=True)

    def get_optimization(self, job_id: str) -> Optional[HyperparameterOptimization]:
        with self._lock:
            run = self._optimizations.get(job_id)
            return run.model_copy(deep=True) if run is not None else None

    def put_selection(self, selection: ModelSelection) -> None:
        with self._lock:
            self._selections[selection.job_id] = selection.model_copy(deep=True)

    def get_selection(self, job_id: str) -> Optional[ModelSelection]:
        with self._lock:
            selection = self._selections.get(job_id)
            return selection.model_copy(deep=True) if selection is not None else None


__all__ = [
    "ArtifactRepository",
    "InMemoryArtifactRepository",
    "InMemoryJobRepository",
    "JobRepository",
]
