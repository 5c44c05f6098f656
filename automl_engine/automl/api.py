"""HTTP routes for submitting and monitoring AutoML jobs."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from .constants import JobStatus, TaskType
from .schemas import (
    AutoMLRecommendation,
    FeatureEngineeringStep,
    FeatureEngineeringStepCreate,
    HyperparameterOptimization,
    HyperparameterOptimizationCreate,
    Job,
    JobCreate,
    JobProgressSnapshot,
    ModelSelection,
    ModelSelectionCreate,
    OptimizationMethodChoice,
)
from .service import AutoMLService

logger = logging.getLogger(__name__)


class JobListResponse(BaseModel):
    jobs: List[Job]
    total: int


def get_automl_service(request: Request) -> AutoMLService:
    """Return the service instance built during application startup."""

    return request.app.state.automl_service


router = APIRouter()


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    status_filter: Optional[JobStatus] = Query(default=None, alias="status"),
    task_type: Optional[TaskType] = Query(default=None),
    created_by: Optional[str] = Query(default=None),
    team: Optional[str] = Query(default=None),
    service: AutoMLService = Depends(get_automl_service),
) -> JobListResponse:
    jobs = service.list_jobs(status=status_filter, task_type=task_type, created_by=created_by, team=team)
    return JobListResponse(jobs=jobs, total=len(jobs))


@router.post("/jobs", response_model=Job, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    service: AutoMLService = Depends(get_automl_service),
) -> Job:
    """Validate and store a new job in the pending state."""

    return service.create_job(payload)


@router.get("/jobs/{job_id}", response_model=Job)
async def get_job(job_id: str, service: AutoMLService = Depends(get_automl_service)) -> Job:
    return service.get_job(job_id)


@router.post("/jobs/{job_id}/start", response_model=Job, status_code=status.HTTP_202_ACCEPTED)
async def start_job(job_id: str, service: AutoMLService = Depends(get_automl_service)) -> Job:
    """Move a pending job to running and launch its pipeline in the background."""

    return await service.start_job(job_id)


@router.post("/jobs/{job_id}/stop", response_model=Job)
async def stop_job(job_id: str, service: AutoMLService = Depends(get_automl_service)) -> Job:
    return service.stop_job(job_id)


@router.get("/jobs/{job_id}/progress", response_model=JobProgressSnapshot)
async def get_job_progress(
    job_id: str,
    service: AutoMLService = Depends(get_automl_service),
) -> JobProgressSnapshot:
    return service.get_job_progress(job_id)


@router.post(
    "/jobs/{job_id}/feature-engineering",
    response_model=FeatureEngineeringStep,
    status_code=status.HTTP_201_CREATED,
)
async def create_feature_engineering(
    job_id: str,
    payload: FeatureEngineeringStepCreate,
    service: AutoMLService = Depends(get_automl_service),
) -> FeatureEngineeringStep:
    return service.create_feature_engineering(job_id, payload)


@router.post(
    "/jobs/{job_id}/hyperparameter-optimization",
    response_model=HyperparameterOptimization,
    status_code=status.HTTP_201_CREATED,
)
async def create_hyperparameter_optimization(
    job_id: str,
    payload: HyperparameterOptimizationCreate,
    service: AutoMLService = Depends(get_automl_service),
) -> HyperparameterOptimization:
    return service.create_hyperparameter_optimization(job_id, payload)


@router.post(
    "/jobs/{job_id}/model-selection",
    response_model=ModelSelection,
    status_code=status.HTTP_201_CREATED,
)
async def create_model_selection(
    job_id: str,
    payload: ModelSelectionCreate,
    service: AutoMLService = Depends(get_automl_service),
) -> ModelSelection:
    return service.create_model_selection(job_id, payload)


@router.get("/recommendations", response_model=AutoMLRecommendation)
async def get_recommendations(
    task_type: str = Query(...),
    dataset_size: int = Query(..., ge=0),
    feature_count: int = Query(..., ge=0),
    service: AutoMLService = Depends(get_automl_service),
) -> AutoMLRecommendation:
    """Recommend algorithms and preprocessing; unknown task types get an empty algorithm list."""

    logger.debug(
        "Recommendations requested (task_type=%s dataset_size=%s feature_count=%s)",
        task_type,
        dataset_size,
        feature_count,
    )
    return service.recommend(task_type, dataset_size, feature_count)


@router.get("/optimization-methods", response_model=List[OptimizationMethodChoice])
async def list_optimization_methods(
    service: AutoMLService = Depends(get_automl_service),
) -> List[OptimizationMethodChoice]:
    return service.optimization_methods()


@router.get("/health")
async def health(service: AutoMLService = Depends(get_automl_service)) -> dict:
    return {
        "status": "healthy",
        "service": service.settings.APP_NAME,
        "version": service.settings.APP_VERSION,
    }


__all__ = ["JobListResponse", "get_automl_service", "router"]
