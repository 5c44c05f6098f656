import numpy as np
import pytest
from sklearn.datasets import load_iris

from automl_engine.automl.constants import FeatureOperation, ProblemType
from automl_engine.automl.execution import PandasFeatureProfiler
from automl_engine.automl.schemas import SearchSpace

from conftest import make_dataset, make_job


@pytest.fixture
def iris_path(tmp_path):
    frame = load_iris(as_frame=True).frame
    frame["colour"] = np.where(frame["target"] == 0, "red", "blue")
    frame.loc[::7, "sepal width (cm)"] = np.nan
    path = tmp_path / "iris.csv"
    frame.to_csv(path, index=False)
    return path


def _job(path, **search_space):
    return make_job(
        dataset=make_dataset(
            name="iris",
            path=str(path),
            target_column="target",
            problem_type=ProblemType.MULTICLASS_CLASSIFICATION,
        ),
        search_space=SearchSpace(**search_space),
    )


def test_default_preprocessing_steps(iris_path):
    steps = PandasFeatureProfiler(random_state=0).profile(_job(iris_path))

    assert [step.operation for step in steps] == [
        FeatureOperation.IMPUTATION,
        FeatureOperation.SCALING,
        FeatureOperation.ENCODING,
    ]
    imputation, scaling, encoding = steps
    assert imputation.applied_features == ["sepal width (cm)"]
    assert "target" not in scaling.applied_features
    assert encoding.applied_features == ["colour"]
    assert set(encoding.output_features) == {"colour_red", "colour_blue"}
    assert scaling.performance.mutual_information > 0


def test_preprocessing_options_restrict_steps(iris_path):
    steps = PandasFeatureProfiler(random_state=0).profile(_job(iris_path, preprocessing=["scaling"]))

    assert [step.operation for step in steps] == [FeatureOperation.SCALING]


def test_feature_engineering_requests_add_selection_and_extraction(iris_path):
    job = _job(iris_path, feature_engineering=["feature_selection", "dimensionality_reduction"])

    steps = PandasFeatureProfiler(random_state=0).profile(job)
    by_operation = {step.operation: step for step in steps}

    selection = by_operation[FeatureOperation.SELECTION]
    assert set(selection.output_features) <= set(selection.applied_features)
    assert selection.output_features[0].startswith("petal")

    extraction = by_operation[FeatureOperation.EXTRACTION]
    assert extraction.parameters["n_components"] == 3
    assert extraction.applied_features == selection.output_features
    assert extraction.output_features == ["pca0", "pca1", "pca2"]
