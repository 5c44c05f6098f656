import math

import pytest

from automl_engine.automl.constants import Objective, TrialStatus
from automl_engine.automl.errors import InvalidConfigurationError, TrialExecutionError
from automl_engine.automl.schemas import CandidatePerformance, ModelCandidate, ModelTrial, PerformanceRecord
from automl_engine.automl.selection import (
    ModelSelector,
    build_candidate,
    objective_score,
    overall_score,
    resolve_weights,
    summarize_cross_validation,
)


def _candidate(candidate_id: str, accuracy: float = 0.8, interpretability: float = 50.0) -> ModelCandidate:
    return ModelCandidate(
        id=candidate_id,
        algorithm="random_forest",
        performance=CandidatePerformance(accuracy=accuracy, precision=accuracy, recall=accuracy, f1_score=accuracy),
        interpretability=interpretability,
        robustness=80.0,
        scalability=70.0,
        business_alignment=60.0,
    )


def test_weights_are_normalized_and_emphasize_criteria():
    plain = resolve_weights()
    emphasized = resolve_weights(["interpretability", "f1"])

    assert math.isclose(sum(plain.values()), 1.0)
    assert math.isclose(sum(emphasized.values()), 1.0)
    assert emphasized["interpretability"] / emphasized["scalability"] == pytest.approx(2.0)
    assert emphasized["f1_score"] / emphasized["accuracy"] == pytest.approx(2.0)
    assert resolve_weights(["no_such_criterion"]) == pytest.approx(plain)


def test_overall_score_is_bounded():
    best = ModelCandidate(
        id="best",
        algorithm="ridge",
        performance=CandidatePerformance(accuracy=1, precision=1, recall=1, f1_score=1),
        interpretability=100,
        robustness=100,
        scalability=100,
        business_alignment=100,
    )
    assert overall_score(best, resolve_weights()) == pytest.approx(1.0)


def test_rank_orders_best_first_with_one_based_ranks():
    ranked = ModelSelector().rank([_candidate("a", 0.6), _candidate("b", 0.9), _candidate("c", 0.75)])

    assert [candidate.id for candidate in ranked] == ["b", "c", "a"]
    assert [candidate.rank for candidate in ranked] == [1, 2, 3]
    assert ranked[0].overall_score > ranked[1].overall_score > ranked[2].overall_score


def test_ties_keep_input_order():
    ranked = ModelSelector().rank([_candidate("first"), _candidate("second")])
    assert [candidate.id for candidate in ranked] == ["first", "second"]


@pytest.mark.parametrize("bump", [1.0, 10.0, 50.0])
def test_more_interpretability_never_lowers_rank(bump):
    selector = ModelSelector()
    candidates = [_candidate("a", 0.7, 40.0), _candidate("b", 0.72, 40.0), _candidate("c", 0.74, 40.0)]
    before = {candidate.id: candidate.rank for candidate in selector.rank(candidates, ["interpretability"])}

    candidates[0] = _candidate("a", 0.7, 40.0 + bump)
    after = {candidate.id: candidate.rank for candidate in selector.rank(candidates, ["interpretability"])}

    assert after["a"] <= before["a"]


def test_best_selects_a_single_model():
    ranked = ModelSelector().rank([_candidate("a", 0.6), _candidate("b", 0.9)])
    selected, weights, final = ModelSelector().select(ranked, ["best"])

    assert selected == ["b"]
    assert weights == [1.0]
    assert final == pytest.approx(ranked[0].overall_score)


def test_voting_takes_top_candidates_with_equal_weights():
    selector = ModelSelector(ensemble_size=2)
    ranked = selector.rank([_candidate("a", 0.6), _candidate("b", 0.9), _candidate("c", 0.8)])

    selected, weights, _ = selector.select(ranked, ["voting"])

    assert selected == ["b", "c"]
    assert weights == [0.5, 0.5]


def test_weighted_uses_overall_scores():
    selector = ModelSelector(ensemble_size=3)
    ranked = selector.rank([_candidate("a", 0.6), _candidate("b", 0.9), _candidate("c", 0.8)])

    selected, weights, final = selector.select(ranked, ["weighted"])

    total = sum(candidate.overall_score for candidate in ranked)
    assert weights == pytest.approx([candidate.overall_score / total for candidate in ranked])
    assert math.isclose(sum(weights), 1.0)
    assert final == pytest.approx(sum(w * c.overall_score for w, c in zip(weights, ranked)))


def test_ensemble_size_is_capped_by_candidates():
    selector = ModelSelector(ensemble_size=5)
    ranked = selector.rank([_candidate("only")])

    assert selector.select(ranked, ["voting"])[:2] == (["only"], [1.0])


def test_selection_errors():
    selector = ModelSelector()
    with pytest.raises(InvalidConfigurationError):
        selector.select([], ["voting"])
    with pytest.raises(InvalidConfigurationError):
        selector.select(selector.rank([_candidate("a")]), ["mystery"])
    with pytest.raises(InvalidConfigurationError):
        ModelSelector(ensemble_size=0)


def test_cross_validation_uses_population_std():
    summary = summarize_cross_validation([0.8, 0.9, 1.0])

    assert summary.folds == 3
    assert summary.mean_score == pytest.approx(0.9)
    assert summary.std_score == pytest.approx(math.sqrt(0.02 / 3))


def test_cross_validation_fold_count_must_match():
    with pytest.raises(InvalidConfigurationError):
        summarize_cross_validation([0.8, 0.9], folds=3)
    assert summarize_cross_validation([]).folds == 0


def test_build_selection_is_consistent():
    payload = ModelSelector(ensemble_size=2).build_selection(
        [_candidate("a", 0.6), _candidate("b", 0.9)],
        criteria=["accuracy"],
        methods=["voting"],
        cv_scores=[0.85, 0.9, 0.95],
    )

    assert payload.selected_models == ["b", "a"]
    assert len(payload.ensemble_weights) == len(payload.selected_models)
    assert payload.cross_validation.folds == 3
    assert payload.candidates[0].rank == 1


def _trial(performance: PerformanceRecord, algorithm: str = "logistic_regression") -> ModelTrial:
    return ModelTrial(
        id="trial-1",
        model_name="lr #1",
        algorithm=algorithm,
        hyperparameters={"C": 1.0},
        performance=performance,
        status=TrialStatus.COMPLETED,
    )


def test_build_candidate_derives_sub_scores():
    performance = PerformanceRecord(accuracy=0.9, precision=0.8, recall=0.6, f1_score=0.7)
    candidate = build_candidate(_trial(performance), Objective.ACCURACY)

    assert candidate.id == "trial-1"
    assert candidate.robustness == pytest.approx(80.0)
    assert candidate.interpretability == 90.0
    assert candidate.business_alignment == pytest.approx(90.0)
    assert candidate.performance.complexity == pytest.approx(0.1)


def test_error_objectives_are_negated_and_aligned():
    performance = PerformanceRecord(mse=4.0)

    assert objective_score(performance, Objective.MSE) == -4.0
    assert build_candidate(_trial(performance, "ridge"), Objective.MSE).business_alignment == pytest.approx(20.0)


def test_missing_objective_metric_is_a_trial_error():
    with pytest.raises(TrialExecutionError):
        objective_score(PerformanceRecord(), Objective.AUC)
    with pytest.raises(TrialExecutionError):
        build_candidate(
            ModelTrial(id="t", model_name="m", algorithm="svm", status=TrialStatus.COMPLETED),
            Objective.ACCURACY,
        )
