"""
Exception handlers that translate engine errors into JSON error envelopes.

Every response carries ``success: false`` together with a short error title,
a human readable message and the request id assigned by the error middleware.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from automl_engine.automl.errors import (
    AutoMLError,
    InvalidConfigurationError,
    InvalidTransitionError,
    JobNotFoundError,
    JobValidationError,
)

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "success": False,
        "error": error,
        "message": message,
        "request_id": getattr(request.state, "request_id", None),
    }
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def job_validation_exception_handler(request: Request, exc: JobValidationError) -> JSONResponse:
    logger.info("Rejected AutoML job submission: %s", exc)
    return _error_response(request, 422, "Unprocessable Entity", str(exc), {"field": exc.field})


async def job_not_found_exception_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
    return _error_response(request, 404, "Not Found", str(exc), {"job_id": exc.job_id})


async def invalid_transition_exception_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.info("Rejected lifecycle command: %s", exc)
    return _error_response(
        request,
        409,
        "Conflict",
        str(exc),
        {
            "job_id": exc.job_id,
            "current_status": exc.current.value,
            "requested_status": exc.requested.value,
        },
    )


async def invalid_configuration_exception_handler(
    request: Request, exc: InvalidConfigurationError
) -> JSONResponse:
    return _error_response(request, 400, "Bad Request", str(exc))


async def automl_exception_handler(request: Request, exc: AutoMLError) -> JSONResponse:
    logger.error("Unhandled AutoML error: %s", exc, exc_info=True)
    return _error_response(request, 500, "Internal Server Error", str(exc))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        request,
        422,
        "Unprocessable Entity",
        "Request payload failed validation",
        {"details": jsonable_errors(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        f"HTTP {exc.status_code}",
        getattr(exc, "detail", f"HTTP {exc.status_code} error"),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
        )
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Add the engine's exception handlers to ``app``."""

    app.add_exception_handler(JobValidationError, job_validation_exception_handler)
    app.add_exception_handler(JobNotFoundError, job_not_found_exception_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_exception_handler)
    app.add_exception_handler(InvalidConfigurationError, invalid_configuration_exception_handler)
    app.add_exception_handler(AutoMLError, automl_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)


__all__ = [
    "automl_exception_handler",
    "http_exception_handler",
    "invalid_configuration_exception_handler",
    "invalid_transition_exception_handler",
    "job_not_found_exception_handler",
    "job_validation_exception_handler",
    "register_exception_handlers",
    "request_validation_exception_handler",
]
