"""Trial execution collaborators.

The pipeline executor only depends on the ``TrialRunner`` protocol. The
scikit-learn runner below is the default adapter: it cross-validates one
estimator configuration on the job's dataset and reports a
``PerformanceRecord``.
"""

from __future__ import annotations

import logging
import pickle
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.decomposition import PCA
from sklearn.impute import SimpleImputer
from sklearn.metrics import (
    accuracy_score,
    f1_score,
    get_scorer,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    r2_score,
    recall_score,
    roc_auc_score,
    silhouette_score,
)
from sklearn.model_selection import KFold, StratifiedKFold
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from ..constants import ERROR_OBJECTIVES, Objective, TaskType
from ..errors import TrialExecutionError
from ..schemas import DatasetDescriptor, PerformanceRecord
from .algorithms import ModelSpec, build_estimator, get_model_spec
from .data import DatasetCache, split_features

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialSpec:
    """Everything a runner needs to evaluate one configuration."""

    job_id: str
    trial_id: str
    algorithm: str
    task_type: TaskType
    objective: Objective
    dataset: DatasetDescriptor
    hyperparameters: Dict[str, Any] = field(default_factory=dict)
    custom_metric: Optional[str] = None
    features: Tuple[str, ...] = ()
    preprocessing: Tuple[str, ...] = ()
    # Principal components to project numeric features onto, when extraction was profiled
    components: Optional[int] = None
    cv_folds: int = 5
    random_state: Optional[int] = None


class TrialRunner(Protocol):
    def run_trial(self, spec: TrialSpec) -> PerformanceRecord: ...


def build_preprocessor(
    features: pd.DataFrame,
    preprocessing: Tuple[str, ...] = (),
    components: Optional[int] = None,
    random_state: Optional[int] = None,
) -> ColumnTransformer:
    """Impute every column, scale numeric ones and one-hot encode the rest.

    Scaling is skipped when an explicit preprocessing list omits ``scaling``.
    With ``components`` the numeric block is projected onto that many
    principal components (capped at the numeric column count).
    """

    numeric = features.select_dtypes(include="number").columns.tolist()
    categorical = [column for column in features.columns if column not in numeric]
    scale = not preprocessing or "scaling" in preprocessing

    numeric_steps: List[Tuple[str, Any]] = [("imputer", SimpleImputer(strategy="median"))]
    if scale:
        numeric_steps.append(("scaler", StandardScaler()))
    if components and numeric:
        numeric_steps.append(
            ("pca", PCA(n_components=min(int(components), len(numeric)), random_state=random_state))
        )

    transformers: List[Tuple[str, Any, List[str]]] = []
    if numeric:
        transformers.append(("numeric", Pipeline(numeric_steps), numeric))
    if categorical:
        transformers.append(
            (
                "categorical",
                Pipeline(
                    [
                        ("imputer", SimpleImputer(strategy="most_frequent")),
                        ("encoder", OneHotEncoder(handle_unknown="ignore", sparse_output=False)),
                    ]
                ),
                categorical,
            )
        )
    return ColumnTransformer(transformers=transformers, remainder="drop")


def _classification_auc(pipeline: Pipeline, features: pd.DataFrame, target: pd.Series) -> Optional[float]:
    try:
        if hasattr(pipeline, "predict_proba"):
            probabilities = pipeline.predict_proba(features)
            if probabilities.shape[1] == 2:
                return float(roc_auc_score(target, probabilities[:, 1]))
            return float(
                roc_auc_score(target, probabilities, multi_class="ovr", labels=pipeline.classes_)
            )
        if hasattr(pipeline, "decision_function") and len(pipeline.classes_) == 2:
            return float(roc_auc_score(target, pipeline.decision_function(features)))
    except (ValueError, AttributeError) as exc:
        logger.debug("AUC unavailable for this fold: %s", exc)
    return None


def _mean(values: List[Optional[float]]) -> Optional[float]:
    present = [value for value in values if value is not None and np.isfinite(value)]
    if not present:
        return None
    return float(np.mean(present))


def _feature_importance(pipeline: Pipeline) -> Dict[str, float]:
    model = pipeline.named_steps["model"]
    raw = getattr(model, "feature_importances_", None)
    if raw is None:
        coef = getattr(model, "coef_", None)
        if coef is None:
            return {}
        raw = np.abs(np.asarray(coef, dtype=float))
        if raw.ndim > 1:
            raw = raw.mean(axis=0)

    values = np.asarray(raw, dtype=float)
    try:
        names = list(pipeline.named_steps["preprocess"].get_feature_names_out())
    except AttributeError:
        names = [f"feature_{index}" for index in range(len(values))]
    if len(names) != len(values):
        return {}

    total = float(values.sum())
    if total <= 0:
        return {str(name): 0.0 for name in names}
    return {str(name): float(value / total) for name, value in zip(names, values)}


class SklearnTrialRunner:
    """Cross-validates scikit-learn estimators on CSV or parquet datasets."""

    def __init__(
        self,
        cv_folds: int = 5,
        random_state: Optional[int] = 42,
        cache: Optional[DatasetCache] = None,
    ) -> None:
        self.cv_folds = cv_folds
        self.random_state = random_state
        self._cache = cache or DatasetCache()

    def run_trial(self, spec: TrialSpec) -> PerformanceRecord:
        try:
            model_spec = get_model_spec(spec.algorithm, spec.task_type)
            frame = self._cache.load(spec.dataset.path)
            features, target = split_features(frame, spec.dataset, spec.features)
        except (KeyError, ValueError, OSError) as exc:
            raise TrialExecutionError(str(exc)) from exc

        random_state = spec.random_state if spec.random_state is not None else self.random_state
        logger.debug(
            "Running trial %s for job %s: %s %s",
            spec.trial_id,
            spec.job_id,
            spec.algorithm,
            spec.hyperparameters,
        )

        try:
            if model_spec.problem_type == "clustering":
                return self._run_clustering(model_spec, spec, features, random_state)
            if target is None:
                raise TrialExecutionError(f"Dataset '{spec.dataset.name}' has no target column")
            return self._run_supervised(model_spec, spec, features, target, random_state)
        except TrialExecutionError:
            raise
        except (ValueError, TypeError) as exc:
            raise TrialExecutionError(f"{spec.algorithm} failed: {exc}") from exc

    def _build_pipeline(
        self,
        model_spec: ModelSpec,
        spec: TrialSpec,
        features: pd.DataFrame,
        random_state: Optional[int],
    ) -> Pipeline:
        return Pipeline(
            [
                ("preprocess", build_preprocessor(features, spec.preprocessing, spec.components, random_state)),
                ("model", build_estimator(model_spec, spec.hyperparameters, random_state)),
            ]
        )

    def _splitter(self, spec: TrialSpec, target: pd.Series, random_state: Optional[int]):
        folds = spec.cv_folds or self.cv_folds
        n_splits = max(2, min(int(folds), len(target)))
        if spec.task_type == TaskType.REGRESSION:
            return KFold(n_splits=n_splits, shuffle=True, random_state=random_state)
        smallest_class = int(target.value_counts().min())
        if smallest_class >= n_splits:
            return StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=random_state)
        return KFold(n_splits=n_splits, shuffle=True, random_state=random_state)

    def _run_supervised(
        self,
        model_spec: ModelSpec,
        spec: TrialSpec,
        features: pd.DataFrame,
        target: pd.Series,
        random_state: Optional[int],
    ) -> PerformanceRecord:
        is_regression = model_spec.problem_type == "regression"
        custom_scorer = get_scorer(spec.custom_metric) if spec.objective == Objective.CUSTOM else None

        fold_metrics: List[Dict[str, Optional[float]]] = []
        fit_times: List[float] = []
        inference_times: List[float] = []

        splitter = self._splitter(spec, target, random_state)
        for train_idx, val_idx in splitter.split(features, target):
            X_train, X_val = features.iloc[train_idx], features.iloc[val_idx]
            y_train, y_val = target.iloc[train_idx], target.iloc[val_idx]

            pipeline = self._build_pipeline(model_spec, spec, features, random_state)
            started = time.perf_counter()
            pipeline.fit(X_train, y_train)
            fit_times.append(time.perf_counter() - started)

            started = time.perf_counter()
            predictions = pipeline.predict(X_val)
            inference_times.append((time.perf_counter() - started) * 1000.0 / max(len(X_val), 1))

            if is_regression:
                metrics = self._regression_metrics(y_val, predictions)
            else:
                metrics = self._classification_metrics(y_val, predictions)
                metrics["auc"] = _classification_auc(pipeline, X_val, y_val)
            if custom_scorer is not None:
                metrics["custom_metric"] = float(custom_scorer(pipeline, X_val, y_val))
            fold_metrics.append(metrics)

        final_pipeline = self._build_pipeline(model_spec, spec, features, random_state)
        final_pipeline.fit(features, target)

        aggregated = {key: _mean([fold[key] for fold in fold_metrics]) for key in fold_metrics[0]}
        fold_scores = [self._fold_objective(fold, spec.objective) for fold in fold_metrics]

        return PerformanceRecord(
            accuracy=aggregated.get("accuracy") or 0.0,
            precision=aggregated.get("precision") or 0.0,
            recall=aggregated.get("recall") or 0.0,
            f1_score=aggregated.get("f1_score") or 0.0,
            auc=aggregated.get("auc"),
            mse=aggregated.get("mse"),
            mae=aggregated.get("mae"),
            custom_metric=aggregated.get("custom_metric"),
            training_time=float(np.mean(fit_times)),
            inference_time=float(np.mean(inference_times)),
            memory_usage=len(pickle.dumps(final_pipeline)) / (1024 * 1024),
            fold_scores=[score for score in fold_scores if score is not None],
            feature_importance=_feature_importance(final_pipeline),
        )

    @staticmethod
    def _classification_metrics(y_true: pd.Series, y_pred: np.ndarray) -> Dict[str, Optional[float]]:
        return {
            "accuracy": float(accuracy_score(y_true, y_pred)),
            "precision": float(precision_score(y_true, y_pred, average="macro", zero_division=0)),
            "recall": float(recall_score(y_true, y_pred, average="macro", zero_division=0)),
            "f1_score": float(f1_score(y_true, y_pred, average="macro", zero_division=0)),
        }

    @staticmethod
    def _regression_metrics(y_true: pd.Series, y_pred: np.ndarray) -> Dict[str, Optional[float]]:
        # Bounded fit quality stands in for the classification metrics
        bounded_r2 = max(0.0, float(r2_score(y_true, y_pred)))
        return {
            "accuracy": bounded_r2,
            "precision": bounded_r2,
            "recall": bounded_r2,
            "f1_score": bounded_r2,
            "mse": float(mean_squared_error(y_true, y_pred)),
            "mae": float(mean_absolute_error(y_true, y_pred)),
        }

    @staticmethod
    def _fold_objective(metrics: Dict[str, Optional[float]], objective: Objective) -> Optional[float]:
        if objective == Objective.CUSTOM:
            return metrics.get("custom_metric")
        value = metrics.get(objective.value)
        if value is None:
            return None
        return -value if objective in ERROR_OBJECTIVES else value

    def _run_clustering(
        self,
        model_spec: ModelSpec,
        spec: TrialSpec,
        features: pd.DataFrame,
        random_state: Optional[int],
    ) -> PerformanceRecord:
        pipeline = self._build_pipeline(model_spec, spec, features, random_state)

        started = time.perf_counter()
        labels = pipeline.fit_predict(features)
        training_time = time.perf_counter() - started

        transformed = pipeline.named_steps["preprocess"].transform(features)
        cluster_count = len(set(labels))
        if 2 <= cluster_count < len(features):
            silhouette = float(silhouette_score(transformed, labels))
        else:
            silhouette = -1.0

        # Silhouette lives in [-1, 1]; rescale for the bounded metrics
        quality = (silhouette + 1.0) / 2.0
        return PerformanceRecord(
            accuracy=quality,
            precision=quality,
            recall=quality,
            f1_score=quality,
            custom_metric=silhouette,
            training_time=training_time,
            inference_time=0.0,
            memory_usage=len(pickle.dumps(pipeline)) / (1024 * 1024),
        )


__all__ = ["SklearnTrialRunner", "TrialRunner", "TrialSpec", "build_preprocessor"]
