"""Hyperparameter optimization: method registry, samplers and run bookkeeping."""

from .optimizer import HyperparameterOptimizer
from .registry import (
    OptimizationMethodOption,
    clear_registry_cache,
    get_method_choices,
    get_optimization_method_options,
    resolve_method,
)
from .samplers import GridSampler, OptunaSampler, RandomSampler, Sampler, build_sampler

__all__ = [
    "GridSampler",
    "HyperparameterOptimizer",
    "OptimizationMethodOption",
    "OptunaSampler",
    "RandomSampler",
    "Sampler",
    "build_sampler",
    "clear_registry_cache",
    "get_method_choices",
    "get_optimization_method_options",
    "resolve_method",
]
