"""Registry of hyperparameter optimization methods and their aliases."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, cast

from automl_engine.config import get_settings

from ..constants import OptimizationMethod


@dataclass(frozen=True)
class OptimizationMethodOption:
    """A selectable optimization method backed by one sampler implementation."""

    value: str
    label: str
    description: str
    impl: str
    aliases: Tuple[str, ...]


DEFAULT_OPTIMIZATION_METHODS: Sequence[Dict[str, object]] = (
    {
        "value": "bayesian",
        "label": "Bayesian optimization (TPE)",
        "description": "Model the objective with a Tree-structured Parzen Estimator via Optuna.",
        "impl": "bayesian",
        "aliases": ("bayesian_optimization", "optuna", "tpe"),
    },
    {
        "value": "genetic",
        "label": "Genetic algorithm",
        "description": "Evolve candidate configurations with Optuna's NSGA-II sampler.",
        "impl": "genetic",
        "aliases": ("genetic_algorithm", "nsga2", "evolutionary"),
    },
    {
        "value": "grid",
        "label": "Grid search",
        "description": "Evaluate every combination in the search space.",
        "impl": "grid",
        "aliases": ("grid_search",),
    },
    {
        "value": "random",
        "label": "Random search",
        "description": "Sample candidate hyperparameters uniformly at random.",
        "impl": "random",
        "aliases": ("random_search",),
    },
    {
        "value": "hyperband",
        "label": "Hyperband",
        "description": "Random candidates; resource allocation is left to the trial runner.",
        "impl": "hyperband",
        "aliases": ("successive_halving",),
    },
)

SUPPORTED_IMPLS: Set[str] = {method.value for method in OptimizationMethod}


def normalize_aliases(sequence: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Return a tuple of alias strings deduplicated case-insensitively."""

    if not sequence:
        return tuple()

    entries: List[str] = []
    seen: Set[str] = set()
    for raw in sequence:
        if raw is None:
            continue
        candidate = str(raw).strip()
        if not candidate:
            continue
        lowered = candidate.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        entries.append(candidate)
    return tuple(entries)


def _normalize_entry(raw: Dict[str, object], seen: Set[str]) -> Optional[OptimizationMethodOption]:
    value = str(raw.get("value", "")).strip()
    if not value:
        return None

    lowered_value = value.lower()
    if lowered_value in seen:
        return None

    label = str(raw.get("label") or value.replace("_", " ").title()).strip()
    description = str(raw.get("description") or "").strip()
    impl = str(raw.get("impl") or value).strip().lower()
    if impl not in SUPPORTED_IMPLS:
        # Unknown implementations run as random search
        impl = OptimizationMethod.RANDOM.value

    aliases_raw = raw.get("aliases")
    if isinstance(aliases_raw, (list, tuple, set)):
        aliases_iter: Optional[Iterable[Any]] = cast(Optional[Iterable[Any]], aliases_raw)
    elif aliases_raw is None:
        aliases_iter = None
    else:
        aliases_iter = [aliases_raw]

    seen.add(lowered_value)
    return OptimizationMethodOption(
        value=value,
        label=label,
        description=description,
        impl=impl,
        aliases=normalize_aliases(aliases_iter),
    )


def _resolve_source(raw_entries: Any) -> Iterable[Dict[str, object]]:
    if isinstance(raw_entries, Sequence) and not isinstance(raw_entries, str) and raw_entries:
        normalized_source: List[Dict[str, object]] = []
        for item in raw_entries:
            if isinstance(item, dict):
                normalized_source.append(item)
            elif isinstance(item, str):
                normalized_source.append({"value": item})
        return normalized_source
    return DEFAULT_OPTIMIZATION_METHODS


@lru_cache(maxsize=1)
def get_optimization_method_options() -> Tuple[OptimizationMethodOption, ...]:
    settings = get_settings()
    raw_entries = getattr(settings, "AUTOML_OPTIMIZATION_METHODS", None)

    entries: List[OptimizationMethodOption] = []
    seen: Set[str] = set()
    for raw in _resolve_source(raw_entries):
        entry = _normalize_entry(raw, seen)
        if entry:
            entries.append(entry)

    if not entries:
        for raw in DEFAULT_OPTIMIZATION_METHODS:
            entry = _normalize_entry(raw, seen)
            if entry:
                entries.append(entry)

    return tuple(entries)


@lru_cache(maxsize=1)
def get_method_alias_map() -> Dict[str, OptimizationMethodOption]:
    alias_map: Dict[str, OptimizationMethodOption] = {}
    for option in get_optimization_method_options():
        alias_map[option.value.lower()] = option
        for alias in option.aliases:
            alias_map[alias.lower()] = option
    return alias_map


def clear_registry_cache() -> None:
    """Forget cached options so that updated settings take effect."""

    get_optimization_method_options.cache_clear()
    get_method_alias_map.cache_clear()


def get_default_method_value() -> str:
    options = get_optimization_method_options()
    if not options:
        return OptimizationMethod.RANDOM.value
    return options[0].value


def get_method_option(value: Any) -> Optional[OptimizationMethodOption]:
    lookup = value.value if isinstance(value, Enum) else value
    return get_method_alias_map().get(str(lookup or "").strip().lower())


def resolve_method(value: Any) -> OptimizationMethod:
    """Map a method tag or alias onto the sampler implementation that runs it."""

    option = get_method_option(value)
    if option is None:
        option = get_method_option(get_default_method_value())
    if option is None:
        return OptimizationMethod.RANDOM
    return OptimizationMethod(option.impl)


def get_method_choices() -> List[Dict[str, Any]]:
    return [
        {
            "value": option.value,
            "label": option.label,
            "description": option.description,
            "aliases": list(option.aliases),
        }
        for option in get_optimization_method_options()
    ]


__all__ = [
    "DEFAULT_OPTIMIZATION_METHODS",
    "OptimizationMethodOption",
    "SUPPORTED_IMPLS",
    "clear_registry_cache",
    "get_default_method_value",
    "get_method_alias_map",
    "get_method_choices",
    "get_method_option",
    "get_optimization_method_options",
    "normalize_aliases",
    "resolve_method",
]
