import pytest
from sklearn.datasets import load_iris

from automl_engine.automl.constants import FeatureOperation, JobStatus, ProblemType, SearchAlgorithm
from automl_engine.automl.schemas import OptimizationPolicy, SearchSpace
from automl_engine.automl.service import build_service

from conftest import FakeClock, SequentialIds, make_dataset, make_job_payload


@pytest.mark.asyncio
async def test_iris_job_runs_with_the_default_collaborators(tmp_path, settings):
    frame = load_iris(as_frame=True).frame
    path = tmp_path / "iris.csv"
    frame.to_csv(path, index=False)

    service = build_service(settings, clock=FakeClock(), id_factory=SequentialIds())
    payload = make_job_payload(
        dataset=make_dataset(
            name="iris",
            path=str(path),
            samples=len(frame),
            features=4,
            target_column="target",
            problem_type=ProblemType.MULTICLASS_CLASSIFICATION,
        ),
        search_space=SearchSpace(
            algorithms=["random_forest"],
            hyperparameter_ranges={"n_estimators": [10, 25], "max_depth": [2, 4]},
            feature_engineering=["feature_selection"],
        ),
        optimization=OptimizationPolicy(algorithm=SearchAlgorithm.BAYESIAN_OPTIMIZATION, max_trials=3),
    )

    job = service.create_job(payload)
    await service.start_job(job.id)
    job = await service.wait_for_job(job.id, timeout=120)

    assert job.status == JobStatus.COMPLETED, job.error_message
    assert len(job.results.all_models) == 3
    assert job.results.best_score > 0.85
    assert len(job.results.cross_validation_scores) == settings.AUTOML_CV_FOLDS
    assert job.results.feature_importance

    operations = [step.operation for step in service.artifact_store.list_feature_steps(job.id)]
    assert FeatureOperation.SCALING in operations
    assert FeatureOperation.SELECTION in operations

    selection = service.artifact_store.get_selection(job.id)
    assert selection.selected_models[0] in {trial.id for trial in job.results.all_models}


@pytest.mark.asyncio
async def test_dimensionality_reduction_is_applied_to_trials(tmp_path, settings):
    frame = load_iris(as_frame=True).frame
    path = tmp_path / "iris.csv"
    frame.to_csv(path, index=False)

    service = build_service(settings, clock=FakeClock(), id_factory=SequentialIds())
    payload = make_job_payload(
        dataset=make_dataset(name="iris", path=str(path), samples=len(frame), features=4, target_column="target"),
        search_space=SearchSpace(
            algorithms=["random_forest"],
            hyperparameter_ranges={"n_estimators": [10, 25]},
            feature_engineering=["dimensionality_reduction"],
        ),
        optimization=OptimizationPolicy(algorithm=SearchAlgorithm.GRID_SEARCH, max_trials=2),
    )

    job = service.create_job(payload)
    await service.start_job(job.id)
    job = await service.wait_for_job(job.id, timeout=120)

    assert job.status == JobStatus.COMPLETED, job.error_message
    extraction = next(
        step
        for step in service.artifact_store.list_feature_steps(job.id)
        if step.operation == FeatureOperation.EXTRACTION
    )
    assert set(job.results.feature_importance) == {f"numeric__{name}" for name in extraction.output_features}
