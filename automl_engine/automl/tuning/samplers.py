"""Candidate proposal strategies for hyperparameter optimization runs.

Grid and random style methods enumerate the search space with scikit-learn's
``ParameterGrid``/``ParameterSampler``. Bayesian and genetic methods drive an
Optuna study through its ask/tell interface so that each proposal can be
evaluated by an external trial runner.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

import optuna
from optuna.distributions import CategoricalDistribution
from optuna.samplers import NSGAIISampler, TPESampler
from optuna.trial import TrialState
from sklearn.model_selection import ParameterGrid, ParameterSampler

from ..constants import OptimizationMethod
from ..errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

SearchSpaceMapping = Dict[str, List[Any]]


class Sampler(Protocol):
    """Proposes hyperparameter sets and learns from their scores.

    ``propose`` returns ``None`` once the sampler has nothing left to offer.
    ``observe`` receives ``None`` as the score for a failed trial.
    """

    def propose(self) -> Optional[Dict[str, Any]]: ...

    def observe(self, params: Dict[str, Any], score: Optional[float]) -> None: ...


def _dedupe_candidates(candidates: List[Any]) -> List[Any]:
    unique_values: List[Any] = []
    seen: set[str] = set()
    for candidate in candidates:
        marker = repr(candidate)
        if marker in seen:
            continue
        seen.add(marker)
        unique_values.append(candidate)
    return unique_values


def _clean_space(search_space: SearchSpaceMapping) -> SearchSpaceMapping:
    cleaned: SearchSpaceMapping = {}
    for key, candidates in search_space.items():
        unique_values = _dedupe_candidates(list(candidates or []))
        if not unique_values:
            raise InvalidConfigurationError(f"Hyperparameter '{key}' has no candidate values")
        cleaned[key] = unique_values
    return cleaned


def build_optuna_distributions(search_space: SearchSpaceMapping) -> Dict[str, CategoricalDistribution]:
    return {key: CategoricalDistribution(values) for key, values in _clean_space(search_space).items()}


class _IteratorSampler:
    def __init__(self, candidates: Iterator[Dict[str, Any]]) -> None:
        self._candidates = candidates

    def propose(self) -> Optional[Dict[str, Any]]:
        return next(self._candidates, None)

    def observe(self, params: Dict[str, Any], score: Optional[float]) -> None:
        # Enumeration order does not depend on observed scores
        return None


class GridSampler(_IteratorSampler):
    """Walks every combination of the search space in ``ParameterGrid`` order."""

    def __init__(self, search_space: SearchSpaceMapping) -> None:
        self.grid = ParameterGrid(_clean_space(search_space))
        super().__init__(iter(self.grid))


class RandomSampler(_IteratorSampler):
    """Draws distinct combinations without replacement, at most ``budget`` of them."""

    def __init__(
        self,
        search_space: SearchSpaceMapping,
        budget: int,
        random_state: Optional[int] = None,
    ) -> None:
        cleaned = _clean_space(search_space)
        grid_size = len(ParameterGrid(cleaned))
        n_iter = max(1, min(int(budget), grid_size))
        sampler = ParameterSampler(cleaned, n_iter=n_iter, random_state=random_state)
        super().__init__(iter(sampler))


def _params_key(params: Dict[str, Any]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted((name, repr(value)) for name, value in params.items()))


class OptunaSampler:
    """Ask/tell adapter around an Optuna study maximizing the objective score.

    Categorical spaces are finite, so the adapter never proposes the same
    combination twice and stops once every combination has been proposed.
    A repeated suggestion is told the score already observed for it and
    asked again; after ``max_repeats`` repeats in a row the first unproposed
    combination of the grid is enqueued instead.
    """

    max_repeats = 20

    def __init__(self, search_space: SearchSpaceMapping, sampler: optuna.samplers.BaseSampler) -> None:
        cleaned = _clean_space(search_space)
        self._distributions = build_optuna_distributions(cleaned)
        self._grid = ParameterGrid(cleaned)
        self.study = optuna.create_study(direction="maximize", sampler=sampler)
        self._pending: List[Tuple[Dict[str, Any], optuna.trial.Trial]] = []
        self._proposed: Dict[Tuple[Tuple[str, str], ...], Optional[float]] = {}

    def propose(self) -> Optional[Dict[str, Any]]:
        if len(self._proposed) >= len(self._grid):
            return None

        for _ in range(self.max_repeats):
            trial = self.study.ask(self._distributions)
            key = _params_key(trial.params)
            if key not in self._proposed:
                return self._accept(key, trial)
            self._tell_repeat(trial, self._proposed[key])

        for params in self._grid:
            if _params_key(params) not in self._proposed:
                self.study.enqueue_trial(params)
                trial = self.study.ask(self._distributions)
                return self._accept(_params_key(trial.params), trial)
        return None

    def _accept(self, key: Tuple[Tuple[str, str], ...], trial: optuna.trial.Trial) -> Dict[str, Any]:
        params = dict(trial.params)
        self._proposed[key] = None
        self._pending.append((params, trial))
        return dict(params)

    def _tell_repeat(self, trial: optuna.trial.Trial, score: Optional[float]) -> None:
        if score is None:
            self.study.tell(trial, state=TrialState.FAIL)
        else:
            self.study.tell(trial, score)

    def observe(self, params: Dict[str, Any], score: Optional[float]) -> None:
        for index, (pending_params, trial) in enumerate(self._pending):
            if pending_params == params:
                del self._pending[index]
                break
        else:
            logger.debug("Ignoring observation for unknown proposal %s", params)
            return

        if score is None:
            self.study.tell(trial, state=TrialState.FAIL)
        else:
            self._proposed[_params_key(params)] = float(score)
            self.study.tell(trial, float(score))


def build_sampler(
    method: OptimizationMethod,
    search_space: SearchSpaceMapping,
    budget: int,
    random_state: Optional[int] = None,
) -> Sampler:
    """Return the sampler implementing ``method`` over ``search_space``."""

    if method == OptimizationMethod.GRID:
        return GridSampler(search_space)
    if method == OptimizationMethod.BAYESIAN:
        return OptunaSampler(search_space, TPESampler(seed=random_state))
    if method == OptimizationMethod.GENETIC:
        return OptunaSampler(search_space, NSGAIISampler(seed=random_state))
    # Random and hyperband share candidate generation
    return RandomSampler(search_space, budget, random_state)


__all__ = [
    "GridSampler",
    "OptunaSampler",
    "RandomSampler",
    "Sampler",
    "build_optuna_distributions",
    "build_sampler",
]
