import pytest
from pydantic import ValidationError

from automl_engine.config import (
    DevelopmentSettings,
    ProductionSettings,
    Settings,
    TestingSettings,
    get_settings,
)


@pytest.fixture
def fresh_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.parametrize(
    "env, expected",
    [
        ("testing", TestingSettings),
        ("production", ProductionSettings),
        ("development", DevelopmentSettings),
        ("anything-else", DevelopmentSettings),
    ],
)
def test_environment_selects_settings_class(monkeypatch, fresh_settings_cache, env, expected):
    monkeypatch.setenv("AUTOML_ENV", env)
    assert type(get_settings()) is expected


def test_engine_knobs_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("AUTOML_ENSEMBLE_SIZE", "5")
    monkeypatch.setenv("AUTOML_RANDOM_STATE", "7")

    settings = Settings()

    assert settings.AUTOML_ENSEMBLE_SIZE == 5
    assert settings.AUTOML_RANDOM_STATE == 7


def test_comma_separated_lists_are_split():
    settings = Settings(
        CORS_ORIGINS="http://a.test, http://b.test",
        AUTOML_DEFAULT_ENSEMBLE_METHODS="weighted, best",
    )

    assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]
    assert settings.AUTOML_DEFAULT_ENSEMBLE_METHODS == ["weighted", "best"]


@pytest.mark.parametrize(
    "field",
    ["AUTOML_ENSEMBLE_SIZE", "AUTOML_CV_FOLDS", "AUTOML_DEFAULT_MAX_TRIALS", "AUTOML_DATASET_CACHE_SIZE"],
)
def test_engine_counts_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_testing_profile_uses_small_budgets():
    settings = TestingSettings()

    assert settings.TESTING is True
    assert settings.AUTOML_DEFAULT_MAX_TRIALS == 5
    assert settings.AUTOML_CV_FOLDS == 3
