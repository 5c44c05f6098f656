"""Estimator registry used by the scikit-learn trial runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from sklearn.cluster import DBSCAN, AgglomerativeClustering, KMeans
from sklearn.ensemble import (
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    HistGradientBoostingClassifier,
    HistGradientBoostingRegressor,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.linear_model import Lasso, LinearRegression, LogisticRegression, Ridge
from sklearn.mixture import GaussianMixture
from sklearn.neural_network import MLPClassifier, MLPRegressor
from sklearn.svm import SVC, SVR

from ..constants import TaskType


@dataclass(frozen=True)
class ModelSpec:
    key: str
    problem_type: str  # "classification", "regression" or "clustering"
    factory: Callable[..., Any]
    default_params: Dict[str, Any]
    # Search-space names that map onto a differently named estimator argument
    param_aliases: Dict[str, str] = field(default_factory=dict)


def _spec(key: str, problem_type: str, factory: Callable[..., Any], **kwargs: Any) -> ModelSpec:
    aliases = kwargs.pop("param_aliases", {})
    return ModelSpec(
        key=key,
        problem_type=problem_type,
        factory=factory,
        default_params=kwargs,
        param_aliases=aliases,
    )


_MODEL_REGISTRY: Dict[str, Dict[str, ModelSpec]] = {
    "classification": {
        "logistic_regression": _spec("logistic_regression", "classification", LogisticRegression, max_iter=1000),
        "random_forest": _spec(
            "random_forest", "classification", RandomForestClassifier, n_estimators=100, n_jobs=1
        ),
        "svm": _spec("svm", "classification", SVC, probability=False),
        "xgboost": _spec("xgboost", "classification", GradientBoostingClassifier),
        "lightgbm": _spec(
            "lightgbm",
            "classification",
            HistGradientBoostingClassifier,
            param_aliases={"n_estimators": "max_iter"},
        ),
        "neural_network": _spec(
            "neural_network",
            "classification",
            MLPClassifier,
            hidden_layer_sizes=(64,),
            max_iter=300,
            param_aliases={"learning_rate": "learning_rate_init"},
        ),
        "deep_learning": _spec(
            "deep_learning",
            "classification",
            MLPClassifier,
            hidden_layer_sizes=(128, 64, 32),
            max_iter=300,
            param_aliases={"learning_rate": "learning_rate_init"},
        ),
    },
    "regression": {
        "linear_regression": _spec("linear_regression", "regression", LinearRegression),
        "ridge": _spec("ridge", "regression", Ridge, alpha=1.0),
        "lasso": _spec("lasso", "regression", Lasso, alpha=1.0, max_iter=5000),
        "random_forest": _spec("random_forest", "regression", RandomForestRegressor, n_estimators=100, n_jobs=1),
        "svm": _spec("svm", "regression", SVR),
        "xgboost": _spec("xgboost", "regression", GradientBoostingRegressor),
        "lightgbm": _spec(
            "lightgbm",
            "regression",
            HistGradientBoostingRegressor,
            param_aliases={"n_estimators": "max_iter"},
        ),
        "neural_network": _spec(
            "neural_network",
            "regression",
            MLPRegressor,
            hidden_layer_sizes=(64,),
            max_iter=500,
            param_aliases={"learning_rate": "learning_rate_init"},
        ),
    },
    "clustering": {
        "kmeans": _spec("kmeans", "clustering", KMeans, n_clusters=3, n_init=10),
        "dbscan": _spec("dbscan", "clustering", DBSCAN),
        "hierarchical": _spec("hierarchical", "clustering", AgglomerativeClustering, n_clusters=3),
        "gaussian_mixture": _spec(
            "gaussian_mixture",
            "clustering",
            GaussianMixture,
            n_components=3,
            param_aliases={"n_clusters": "n_components"},
        ),
    },
}

# Estimators that accept a random_state argument
_SEEDED_ARGUMENT = "random_state"


def problem_family(task_type: TaskType) -> str:
    if task_type == TaskType.REGRESSION:
        return "regression"
    if task_type == TaskType.CLUSTERING:
        return "clustering"
    return "classification"


def get_model_spec(algorithm: str, task_type: TaskType) -> ModelSpec:
    """Return the registered model spec, raising if unavailable."""

    family = problem_family(task_type)
    key = str(algorithm or "").strip().lower()
    specs = _MODEL_REGISTRY[family]
    if key not in specs:
        raise KeyError(f"Unsupported {family} algorithm '{algorithm}'")
    return specs[key]


def build_estimator(spec: ModelSpec, hyperparameters: Dict[str, Any], random_state: Any = None) -> Any:
    """Instantiate ``spec`` with the hyperparameters the estimator understands.

    Search-space entries meant for other algorithms (``C`` for a random forest,
    say) are dropped.
    """

    estimator = spec.factory(**spec.default_params)
    accepted = estimator.get_params(deep=False)

    params: Dict[str, Any] = {}
    for name, value in hyperparameters.items():
        target = spec.param_aliases.get(name, name)
        if target in accepted:
            params[target] = value
    if random_state is not None and _SEEDED_ARGUMENT in accepted and _SEEDED_ARGUMENT not in params:
        params[_SEEDED_ARGUMENT] = random_state

    if params:
        estimator.set_params(**params)
    return estimator


def list_registered_models() -> Dict[str, Dict[str, ModelSpec]]:
    """Return the registry mapping (read-only copy)."""

    return {family: dict(specs) for family, specs in _MODEL_REGISTRY.items()}


__all__ = [
    "ModelSpec",
    "build_estimator",
    "get_model_spec",
    "list_registered_models",
    "problem_family",
]
