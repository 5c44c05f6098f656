"""Static algorithm and preprocessing recommendations keyed by dataset shape."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Tuple, Union

from .constants import TaskType
from .schemas import AutoMLRecommendation

SMALL_DATASET_LIMIT = 10_000
MEDIUM_DATASET_LIMIT = 100_000
WIDE_DATASET_FEATURES = 50

# (small, medium, large) algorithm bands per task type
ALGORITHM_BANDS: Dict[TaskType, Tuple[List[str], List[str], List[str]]] = {
    TaskType.CLASSIFICATION: (
        ["random_forest", "svm", "logistic_regression"],
        ["random_forest", "xgboost", "lightgbm", "neural_network"],
        ["xgboost", "lightgbm", "neural_network", "deep_learning"],
    ),
    TaskType.REGRESSION: (
        ["linear_regression", "ridge", "lasso"],
        ["random_forest", "xgboost", "lightgbm"],
        ["xgboost", "lightgbm", "neural_network"],
    ),
    TaskType.CLUSTERING: (
        ["kmeans", "dbscan", "hierarchical", "gaussian_mixture"],
        ["kmeans", "dbscan", "hierarchical", "gaussian_mixture"],
        ["kmeans", "dbscan", "hierarchical", "gaussian_mixture"],
    ),
}

DEFAULT_HYPERPARAMETERS: Dict[TaskType, Dict[str, List[Any]]] = {
    TaskType.CLASSIFICATION: {
        "n_estimators": [100, 200, 300],
        "max_depth": [10, 20, 30],
        "learning_rate": [0.01, 0.1, 0.3],
        "C": [0.1, 1.0, 10.0],
    },
    TaskType.REGRESSION: {
        "n_estimators": [100, 200, 300],
        "max_depth": [10, 20, 30],
        "learning_rate": [0.01, 0.1, 0.3],
        "alpha": [0.1, 1.0, 10.0],
    },
    TaskType.CLUSTERING: {
        "n_clusters": [2, 3, 4, 5, 6],
        "eps": [0.1, 0.3, 0.5],
        "min_samples": [2, 3, 5],
    },
}

DEFAULT_PREPROCESSING = ("scaling", "imputation", "encoding")


def _coerce_task(task_type: Union[TaskType, str, None]) -> Union[TaskType, None]:
    if isinstance(task_type, TaskType):
        return task_type
    try:
        return TaskType(str(task_type).strip().lower())
    except ValueError:
        return None


def recommend_algorithms(task_type: Union[TaskType, str, None], dataset_size: int) -> List[str]:
    task = _coerce_task(task_type)
    bands = ALGORITHM_BANDS.get(task) if task is not None else None
    if bands is None:
        return []
    if dataset_size < SMALL_DATASET_LIMIT:
        return list(bands[0])
    if dataset_size < MEDIUM_DATASET_LIMIT:
        return list(bands[1])
    return list(bands[2])


def default_hyperparameters(task_type: Union[TaskType, str, None]) -> Dict[str, List[Any]]:
    task = _coerce_task(task_type)
    grid = DEFAULT_HYPERPARAMETERS.get(task, {}) if task is not None else {}
    return {name: list(values) for name, values in grid.items()}


def recommend_feature_engineering(dataset_size: int, feature_count: int) -> List[str]:
    steps: List[str] = []
    if feature_count > WIDE_DATASET_FEATURES:
        steps.extend(["feature_selection", "dimensionality_reduction"])
    if dataset_size > MEDIUM_DATASET_LIMIT:
        steps.extend(["sampling", "data_balancing"])
    return steps


def recommend(
    task_type: Union[TaskType, str, None],
    dataset_size: int,
    feature_count: int,
) -> AutoMLRecommendation:
    """Return the recommendation bundle for a dataset of the given shape.

    Unknown task types yield an empty algorithm list and an empty grid rather
    than an error.
    """

    expected_time = max(30, math.ceil(dataset_size / 10_000) * 10)
    expected_performance = min(0.95, 0.7 + (dataset_size / 1_000_000) * 0.2)

    return AutoMLRecommendation(
        algorithms=recommend_algorithms(task_type, dataset_size),
        hyperparameters=default_hyperparameters(task_type),
        feature_engineering=recommend_feature_engineering(dataset_size, feature_count),
        preprocessing=list(DEFAULT_PREPROCESSING),
        expected_time=expected_time,
        expected_performance=expected_performance,
    )


__all__ = [
    "ALGORITHM_BANDS",
    "DEFAULT_HYPERPARAMETERS",
    "DEFAULT_PREPROCESSING",
    "default_hyperparameters",
    "recommend",
    "recommend_algorithms",
    "recommend_feature_engineering",
]
