"""
AutoML Engine Startup Script

Starts the AutoML job engine API with uvicorn using the environment's settings.
"""

import logging

import uvicorn

from automl_engine.config import get_settings


def main():
    """Main entry point for the AutoML engine API."""
    settings = get_settings()
    settings.setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("[START] Starting %s", settings.APP_NAME)
    logger.info("[ENV] Environment: %s", "Development" if settings.DEBUG else "Production")
    logger.info("[HOST] Host: %s:%s", settings.HOST, settings.PORT)

    if settings.DEBUG:
        logger.info("[DEV] Running in development mode with auto-reload")
        uvicorn.run(
            "automl_engine.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=True,
            reload_dirs=["automl_engine"],
            log_level="info",
            access_log=True,
            use_colors=True,
        )
    else:
        # Job state is held in process memory; one worker only.
        logger.info("[PROD] Running in production mode")
        uvicorn.run(
            "automl_engine.main:app",
            host=settings.HOST,
            port=settings.PORT,
            workers=1,
            log_level="warning",
            access_log=False,
            server_header=False,
            date_header=False,
        )


if __name__ == "__main__":
    main()
