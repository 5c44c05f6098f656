"""
AutoML Engine Application Entry Point

Creates and configures the FastAPI application that exposes the AutoML job
engine over HTTP.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from automl_engine.automl.api import router as automl_router
from automl_engine.automl.service import AutoMLService, build_service
from automl_engine.config import Settings, get_settings
from automl_engine.exceptions.handlers import register_exception_handlers
from automl_engine.middleware.error_handler import ErrorHandlerMiddleware

logger = logging.getLogger(__name__)


def _build_lifespan(service: Optional[AutoMLService], settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the engine on startup and cancel running pipelines on shutdown."""

        logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)
        start_time = time.time()

        if getattr(app.state, "automl_service", None) is None:
            app.state.automl_service = service or build_service(settings)

        logger.info("Application started in %.2f seconds", time.time() - start_time)
        yield

        logger.info("Shutting down %s", settings.APP_NAME)
        await app.state.automl_service.shutdown()
        logger.info("Application shutdown complete")

    return lifespan


def create_app(settings: Optional[Settings] = None, service: Optional[AutoMLService] = None) -> FastAPI:
    """
    FastAPI application factory.

    Args:
        settings: Settings to use instead of the cached environment settings
        service: Pre-built engine, mainly for tests

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        summary=settings.APP_SUMMARY,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        lifespan=_build_lifespan(service, settings),
    )
    app.state.automl_service = service

    _add_middleware(app, settings)
    _include_routers(app, settings)
    register_exception_handlers(app)

    return app


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    """Add middleware to the FastAPI application."""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)


def _include_routers(app: FastAPI, settings: Settings) -> None:
    app.include_router(automl_router, prefix=settings.API_PREFIX, tags=["automl"])


app = create_app()
