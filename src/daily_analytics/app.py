"""
Standalone FastAPI application for the collector.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, setup_analytics
from .config import AnalyticsConfig
from .errors import BatchNotFoundError, StorageError

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No data available for this date"
STORAGE_ERROR_MESSAGE = "Storage unavailable"


def create_app(config: AnalyticsConfig | None = None, **kwargs) -> FastAPI:
    """Create the collector app.

    The lifespan loads today's batch on startup and flushes on shutdown.

    Args:
        config: Collector configuration (defaults to AnalyticsConfig.from_env())
        **kwargs: Passed to setup_analytics (storage, clock)
    """
    analytics = setup_analytics(config, **kwargs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await analytics.manager.start()
        logger.info(
            f"Collector started: {len(analytics.manager.buffer)} records buffered "
            f"for {analytics.manager.buffer.day}"
        )
        yield
        await analytics.manager.stop()
        logger.info("Collector stopped")

    app = FastAPI(title="Daily Analytics", version=__version__, lifespan=lifespan)
    app.state.analytics = analytics

    app.add_middleware(
        CORSMiddleware,
        allow_origins=analytics.config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BatchNotFoundError)
    async def batch_not_found(request: Request, exc: BatchNotFoundError):
        return JSONResponse(status_code=404, content={"error": NOT_FOUND_MESSAGE})

    @app.exception_handler(StorageError)
    async def storage_failed(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": STORAGE_ERROR_MESSAGE})

    app.include_router(analytics.api_router)
    app.include_router(analytics.pages_router)
    return app
