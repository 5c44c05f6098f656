"""Dataset profiling for the data preprocessing phase.

A profiler inspects a job's dataset and proposes the feature engineering
steps the trial runner will apply: imputation, scaling and encoding driven by
the job's preprocessing options, plus feature selection or dimensionality
reduction when the feature engineering options ask for them.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence

import numpy as np
import pandas as pd
from sklearn.feature_selection import mutual_info_classif, mutual_info_regression

from ..constants import FeatureOperation, FeatureType, TaskType
from ..recommendations import DEFAULT_PREPROCESSING
from ..schemas import FeatureEngineeringPerformance, FeatureEngineeringStepCreate, Job
from .data import DatasetCache, split_features

logger = logging.getLogger(__name__)

MAX_SELECTED_FEATURES = 20
MAX_COMPONENTS = 10


class FeatureProfiler(Protocol):
    def profile(self, job: Job) -> List[FeatureEngineeringStepCreate]: ...


def _mutual_information(
    numeric: pd.DataFrame,
    target: Optional[pd.Series],
    task_type: TaskType,
    random_state: Optional[int],
) -> Dict[str, float]:
    if target is None or numeric.empty:
        return {}
    filled = numeric.fillna(numeric.median(numeric_only=True)).fillna(0.0)
    if task_type == TaskType.REGRESSION:
        scores = mutual_info_regression(filled, target, random_state=random_state)
    else:
        scores = mutual_info_classif(filled, target, random_state=random_state)
    return {column: float(score) for column, score in zip(filled.columns, scores)}


def _mean_abs_correlation(numeric: pd.DataFrame, target: Optional[pd.Series]) -> float:
    if target is None or numeric.empty or not pd.api.types.is_numeric_dtype(target):
        return 0.0
    correlations = numeric.corrwith(target).abs().dropna()
    return float(correlations.mean()) if not correlations.empty else 0.0


def _summary(
    columns: Sequence[str],
    numeric: pd.DataFrame,
    target: Optional[pd.Series],
    information: Dict[str, float],
) -> FeatureEngineeringPerformance:
    numeric_columns = [column for column in columns if column in numeric.columns]
    subset = numeric[numeric_columns]
    scores = [information[column] for column in numeric_columns if column in information]
    variance = float(subset.var().mean()) if numeric_columns else 0.0
    return FeatureEngineeringPerformance(
        information_gain=float(max(scores)) if scores else 0.0,
        correlation=_mean_abs_correlation(subset, target),
        variance=0.0 if np.isnan(variance) else variance,
        mutual_information=float(np.mean(scores)) if scores else 0.0,
    )


class PandasFeatureProfiler:
    def __init__(self, random_state: Optional[int] = 42, cache: Optional[DatasetCache] = None) -> None:
        self.random_state = random_state
        self._cache = cache or DatasetCache()

    def profile(self, job: Job) -> List[FeatureEngineeringStepCreate]:
        frame = self._cache.load(job.dataset.path)
        features, target = split_features(frame, job.dataset)

        numeric = features.select_dtypes(include="number")
        categorical = [column for column in features.columns if column not in numeric.columns]
        information = _mutual_information(numeric, target, job.task_type, self.random_state)

        options = [item.lower() for item in (job.search_space.preprocessing or DEFAULT_PREPROCESSING)]
        steps: List[FeatureEngineeringStepCreate] = []

        if "imputation" in options:
            missing = [column for column in features.columns if features[column].isna().any()]
            if missing:
                numeric_missing = any(column in numeric.columns for column in missing)
                steps.append(
                    FeatureEngineeringStepCreate(
                        name="Missing Value Imputation",
                        description=f"Impute {len(missing)} column(s) with missing values",
                        type=FeatureType.NUMERICAL if numeric_missing else FeatureType.CATEGORICAL,
                        operation=FeatureOperation.IMPUTATION,
                        parameters={"numeric_strategy": "median", "categorical_strategy": "most_frequent"},
                        applied_features=missing,
                        output_features=missing,
                        performance=_summary(missing, numeric, target, information),
                    )
                )

        if "scaling" in options and not numeric.empty:
            columns = list(numeric.columns)
            steps.append(
                FeatureEngineeringStepCreate(
                    name="Numerical Scaling",
                    description="Standardize numerical features to zero mean and unit variance",
                    type=FeatureType.NUMERICAL,
                    operation=FeatureOperation.SCALING,
                    parameters={"method": "standard"},
                    applied_features=columns,
                    output_features=columns,
                    performance=_summary(columns, numeric, target, information),
                )
            )

        if "encoding" in options and categorical:
            encoded = [
                f"{column}_{value}"
                for column in categorical
                for value in features[column].dropna().unique().tolist()
            ]
            steps.append(
                FeatureEngineeringStepCreate(
                    name="Categorical Encoding",
                    description="One-hot encode categorical features",
                    type=FeatureType.CATEGORICAL,
                    operation=FeatureOperation.ENCODING,
                    parameters={"method": "one_hot", "handle_unknown": "ignore"},
                    applied_features=categorical,
                    output_features=encoded,
                )
            )

        requested = {item.lower() for item in job.search_space.feature_engineering}
        reduced = list(numeric.columns)
        if "feature_selection" in requested and information:
            ranked = sorted(information, key=information.get, reverse=True)
            keep = ranked[: min(MAX_SELECTED_FEATURES, len(ranked))]
            reduced = keep
            steps.append(
                FeatureEngineeringStepCreate(
                    name="Mutual Information Selection",
                    description=f"Keep the {len(keep)} most informative numerical features",
                    type=FeatureType.NUMERICAL,
                    operation=FeatureOperation.SELECTION,
                    parameters={"method": "mutual_information", "k": len(keep)},
                    applied_features=list(numeric.columns),
                    output_features=keep,
                    performance=_summary(keep, numeric, target, information),
                )
            )

        if "dimensionality_reduction" in requested and len(reduced) > 1:
            components = min(MAX_COMPONENTS, len(reduced) - 1)
            steps.append(
                FeatureEngineeringStepCreate(
                    name="Principal Component Extraction",
                    description=f"Project numerical features onto {components} principal components",
                    type=FeatureType.NUMERICAL,
                    operation=FeatureOperation.EXTRACTION,
                    parameters={"method": "pca", "n_components": components},
                    applied_features=reduced,
                    # Named as scikit-learn's PCA names its outputs
                    output_features=[f"pca{index}" for index in range(components)],
                    performance=_summary(reduced, numeric, target, information),
                )
            )

        logger.debug("Profiled dataset %s for job %s: %s step(s)", job.dataset.name, job.id, len(steps))
        return steps


__all__ = ["FeatureProfiler", "PandasFeatureProfiler"]
