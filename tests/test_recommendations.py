import pytest

from automl_engine.automl.constants import TaskType
from automl_engine.automl.recommendations import recommend


def test_small_classification_band():
    result = recommend(TaskType.CLASSIFICATION, 5000, 10)

    assert result.algorithms
    assert set(result.algorithms) <= {"random_forest", "svm", "logistic_regression"}
    assert result.feature_engineering == []
    assert result.preprocessing == ["scaling", "imputation", "encoding"]


def test_large_classification_band():
    result = recommend("classification", 500_000, 10)

    assert set(result.algorithms) <= {"xgboost", "lightgbm", "neural_network", "deep_learning"}


@pytest.mark.parametrize(
    "size, expected",
    [
        (9_999, ["linear_regression", "ridge", "lasso"]),
        (10_000, ["random_forest", "xgboost", "lightgbm"]),
        (99_999, ["random_forest", "xgboost", "lightgbm"]),
        (100_000, ["xgboost", "lightgbm", "neural_network"]),
    ],
)
def test_regression_band_edges(size, expected):
    assert recommend(TaskType.REGRESSION, size, 5).algorithms == expected


def test_wide_and_large_dataset_adds_every_feature_step():
    result = recommend(TaskType.CLASSIFICATION, 200_000, 60)

    assert {"feature_selection", "dimensionality_reduction", "sampling", "data_balancing"} <= set(
        result.feature_engineering
    )


def test_thresholds_are_exclusive():
    result = recommend(TaskType.CLASSIFICATION, 100_000, 50)
    assert result.feature_engineering == []


@pytest.mark.parametrize(
    "size, minutes",
    [(0, 30), (10_000, 30), (25_000, 30), (300_000, 300), (1_000_001, 1010)],
)
def test_expected_time(size, minutes):
    assert recommend(TaskType.CLASSIFICATION, size, 1).expected_time == minutes


@pytest.mark.parametrize(
    "size, performance",
    [(0, 0.7), (500_000, 0.8), (5_000_000, 0.95)],
)
def test_expected_performance(size, performance):
    assert recommend(TaskType.CLASSIFICATION, size, 1).expected_performance == pytest.approx(performance)


def test_unknown_task_type_yields_empty_lists():
    result = recommend("astrology", 5000, 10)

    assert result.algorithms == []
    assert result.hyperparameters == {}
    assert result.preprocessing == ["scaling", "imputation", "encoding"]


def test_clustering_grid_is_fixed():
    result = recommend(TaskType.CLUSTERING, 1000, 4)

    assert "kmeans" in result.algorithms
    assert result.hyperparameters["n_clusters"] == [2, 3, 4, 5, 6]


def test_recommendation_is_deterministic():
    assert recommend(TaskType.REGRESSION, 12_345, 12) == recommend(TaskType.REGRESSION, 12_345, 12)
