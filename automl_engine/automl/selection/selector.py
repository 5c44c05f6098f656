"""Ranking, ensemble construction and cross-validation summaries."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import InvalidConfigurationError
from ..schemas import CrossValidationSummary, ModelCandidate, ModelSelectionCreate
from .scoring import overall_score, resolve_weights

logger = logging.getLogger(__name__)

SINGLE_MODEL_METHODS = frozenset({"best", "single"})
EQUAL_WEIGHT_METHODS = frozenset({"voting", "bagging"})
SCORE_WEIGHT_METHODS = frozenset({"weighted", "weighted_average", "stacking", "blending"})
SUPPORTED_ENSEMBLE_METHODS = SINGLE_MODEL_METHODS | EQUAL_WEIGHT_METHODS | SCORE_WEIGHT_METHODS


def summarize_cross_validation(scores: Sequence[float], folds: Optional[int] = None) -> CrossValidationSummary:
    """Mean and population standard deviation of per-fold scores."""

    values = [float(score) for score in scores]
    expected = len(values) if folds is None else folds
    if expected != len(values):
        raise InvalidConfigurationError(
            f"Cross-validation expects {expected} fold scores, got {len(values)}"
        )
    if not values:
        return CrossValidationSummary(folds=0, scores=[], mean_score=0.0, std_score=0.0)

    array = np.asarray(values, dtype=float)
    return CrossValidationSummary(
        folds=len(values),
        scores=values,
        mean_score=float(np.mean(array)),
        std_score=float(np.std(array, ddof=0)),
    )


class ModelSelector:
    def __init__(self, ensemble_size: int = 3) -> None:
        if ensemble_size < 1:
            raise InvalidConfigurationError("Ensemble size must be at least 1")
        self.ensemble_size = ensemble_size

    def rank(
        self,
        candidates: Iterable[ModelCandidate],
        criteria: Optional[Iterable[str]] = None,
    ) -> List[ModelCandidate]:
        """Score candidates and return copies sorted best first with 1-based ranks."""

        weights = resolve_weights(criteria)
        scored = []
        for candidate in candidates:
            updated = candidate.model_copy(deep=True)
            updated.overall_score = overall_score(updated, weights)
            scored.append(updated)

        # sorted() is stable, so ties keep their input order
        ranked = sorted(scored, key=lambda item: item.overall_score, reverse=True)
        for position, candidate in enumerate(ranked, start=1):
            candidate.rank = position
        return ranked

    def select(
        self,
        ranked: Sequence[ModelCandidate],
        methods: Optional[Sequence[str]] = None,
    ) -> Tuple[List[str], List[float], float]:
        """Pick ensemble members and weights from already ranked candidates."""

        if not ranked:
            raise InvalidConfigurationError("Model selection requires at least one candidate")

        method = str(methods[0]).strip().lower() if methods else "best"
        if method not in SUPPORTED_ENSEMBLE_METHODS:
            raise InvalidConfigurationError(f"Unsupported ensemble method '{method}'")

        if method in SINGLE_MODEL_METHODS:
            members = list(ranked[:1])
        else:
            members = list(ranked[: min(self.ensemble_size, len(ranked))])

        if len(members) == 1:
            weights = [1.0]
        elif method in SCORE_WEIGHT_METHODS:
            total = sum(member.overall_score for member in members)
            if total > 0:
                weights = [member.overall_score / total for member in members]
            else:
                weights = [1.0 / len(members)] * len(members)
        else:
            weights = [1.0 / len(members)] * len(members)

        final_score = sum(weight * member.overall_score for weight, member in zip(weights, members))
        logger.debug("Selected %s model(s) with method '%s', final score %.4f", len(members), method, final_score)
        return [member.id for member in members], weights, final_score

    def build_selection(
        self,
        candidates: Iterable[ModelCandidate],
        *,
        criteria: Sequence[str],
        methods: Sequence[str],
        cv_scores: Sequence[float],
        folds: Optional[int] = None,
    ) -> ModelSelectionCreate:
        ranked = self.rank(candidates, criteria)
        selected, weights, final_score = self.select(ranked, methods)
        return ModelSelectionCreate(
            candidates=ranked,
            selection_criteria=list(criteria),
            ensemble_methods=list(methods),
            selected_models=selected,
            ensemble_weights=weights,
            final_score=final_score,
            cross_validation=summarize_cross_validation(cv_scores, folds),
        )


__all__ = [
    "ModelSelector",
    "SUPPORTED_ENSEMBLE_METHODS",
    "summarize_cross_validation",
]
