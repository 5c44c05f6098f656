"""Pipeline execution and the collaborators it delegates to."""

from .executor import PipelineContext, PipelineExecutor
from .preprocessing import FeatureProfiler, PandasFeatureProfiler
from .runners import SklearnTrialRunner, TrialRunner, TrialSpec

__all__ = [
    "FeatureProfiler",
    "PandasFeatureProfiler",
    "PipelineContext",
    "PipelineExecutor",
    "SklearnTrialRunner",
    "TrialRunner",
    "TrialSpec",
]
