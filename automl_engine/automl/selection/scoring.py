"""Candidate scoring for model selection.

Every candidate is reduced to a single overall score: a weighted sum of its
four performance metrics (0-1) and its four qualitative sub-scores (0-100,
divided by 100). Weights are non-negative and sum to 1.0, so the overall
score stays in ``[0, 1]`` and never decreases when any input increases.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from ..constants import ERROR_OBJECTIVES, Objective
from ..errors import TrialExecutionError
from ..schemas import CandidatePerformance, ModelCandidate, ModelTrial, PerformanceRecord

logger = logging.getLogger(__name__)

PERFORMANCE_METRICS = ("accuracy", "precision", "recall", "f1_score")
QUALITY_SCORES = ("interpretability", "robustness", "scalability", "business_alignment")

DEFAULT_WEIGHTS: Dict[str, float] = {
    "accuracy": 0.15,
    "precision": 0.15,
    "recall": 0.15,
    "f1_score": 0.15,
    "interpretability": 0.10,
    "robustness": 0.10,
    "scalability": 0.10,
    "business_alignment": 0.10,
}

# Criteria spellings accepted in addition to the canonical metric names
CRITERIA_ALIASES: Dict[str, str] = {
    "f1": "f1_score",
    "business": "business_alignment",
    "business_value": "business_alignment",
}

# (interpretability, scalability, complexity) per algorithm family
ALGORITHM_PROFILES: Dict[str, tuple] = {
    "linear_regression": (95.0, 90.0, 0.1),
    "logistic_regression": (90.0, 90.0, 0.1),
    "ridge": (90.0, 90.0, 0.1),
    "lasso": (90.0, 90.0, 0.1),
    "decision_tree": (85.0, 75.0, 0.3),
    "kmeans": (80.0, 80.0, 0.2),
    "hierarchical": (75.0, 40.0, 0.4),
    "gaussian_mixture": (60.0, 60.0, 0.5),
    "dbscan": (65.0, 55.0, 0.4),
    "svm": (40.0, 45.0, 0.6),
    "random_forest": (60.0, 70.0, 0.6),
    "xgboost": (45.0, 85.0, 0.7),
    "lightgbm": (45.0, 90.0, 0.7),
    "neural_network": (20.0, 75.0, 0.8),
    "deep_learning": (10.0, 80.0, 0.95),
}
DEFAULT_PROFILE = (50.0, 50.0, 0.5)


def canonical_criterion(name: str) -> str:
    key = str(name or "").strip().lower()
    return CRITERIA_ALIASES.get(key, key)


def resolve_weights(criteria: Optional[Iterable[str]] = None) -> Dict[str, float]:
    """Return normalized weights with the named criteria counted twice."""

    weights = dict(DEFAULT_WEIGHTS)
    emphasized = {canonical_criterion(item) for item in criteria or []}
    for name in emphasized:
        if name in weights:
            weights[name] *= 2
        elif name:
            logger.debug("Ignoring unknown selection criterion '%s'", name)

    total = sum(weights.values())
    return {name: value / total for name, value in weights.items()}


def overall_score(candidate: ModelCandidate, weights: Dict[str, float]) -> float:
    score = 0.0
    for metric in PERFORMANCE_METRICS:
        score += weights[metric] * float(getattr(candidate.performance, metric))
    for quality in QUALITY_SCORES:
        score += weights[quality] * float(getattr(candidate, quality)) / 100.0
    return score


def objective_value(performance: PerformanceRecord, objective: Objective) -> float:
    """Raw value of the objective metric as reported by the trial runner."""

    field = "custom_metric" if objective == Objective.CUSTOM else objective.value
    value = getattr(performance, field)
    if value is None:
        raise TrialExecutionError(f"Trial runner did not report the '{field}' metric")
    return float(value)


def objective_score(performance: PerformanceRecord, objective: Objective) -> float:
    """Objective value oriented so that higher is always better."""

    value = objective_value(performance, objective)
    return -value if objective in ERROR_OBJECTIVES else value


def _clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(upper, value))


def business_alignment(performance: PerformanceRecord, objective: Objective) -> float:
    value = objective_value(performance, objective)
    if objective in ERROR_OBJECTIVES:
        return _clamp(100.0 / (1.0 + max(0.0, value)))
    return _clamp(100.0 * value)


def build_candidate(
    trial: ModelTrial,
    objective: Objective,
    candidate_id: Optional[str] = None,
) -> ModelCandidate:
    """Turn a completed trial into a selection candidate."""

    if trial.performance is None:
        raise TrialExecutionError(f"Trial {trial.id} has no performance record")

    performance = trial.performance
    interpretability, scalability, complexity = ALGORITHM_PROFILES.get(
        trial.algorithm.lower(), DEFAULT_PROFILE
    )
    robustness = _clamp(100.0 * (1.0 - abs(performance.precision - performance.recall)))

    return ModelCandidate(
        id=candidate_id or trial.id,
        algorithm=trial.algorithm,
        hyperparameters=dict(trial.hyperparameters),
        performance=CandidatePerformance(
            accuracy=performance.accuracy,
            precision=performance.precision,
            recall=performance.recall,
            f1_score=performance.f1_score,
            training_time=performance.training_time,
            inference_time=performance.inference_time,
            complexity=complexity,
        ),
        interpretability=interpretability,
        robustness=robustness,
        scalability=scalability,
        business_alignment=business_alignment(performance, objective),
    )


__all__ = [
    "ALGORITHM_PROFILES",
    "DEFAULT_WEIGHTS",
    "PERFORMANCE_METRICS",
    "QUALITY_SCORES",
    "build_candidate",
    "business_alignment",
    "canonical_criterion",
    "objective_score",
    "objective_value",
    "overall_score",
    "resolve_weights",
]
