"""Model candidate scoring and ensemble selection."""

from .scoring import build_candidate, objective_score, overall_score, resolve_weights
from .selector import ModelSelector, summarize_cross_validation

__all__ = [
    "ModelSelector",
    "build_candidate",
    "objective_score",
    "overall_score",
    "resolve_weights",
    "summarize_cross_validation",
]
