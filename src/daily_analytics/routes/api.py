"""
JSON API routes: event collection, reports and health.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from ..errors import EventValidationError, StorageError
from ..models import DailyReport, HealthResponse, TrackResponse
from ..report import generate_report
from ..rotation import RotationManager

logger = logging.getLogger(__name__)

TRACK_ERROR_MESSAGE = "Internal server error"


def _track_error() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": TRACK_ERROR_MESSAGE},
    )


def create_api_router(manager: RotationManager) -> APIRouter:
    """Create the /api router.

    Args:
        manager: Rotation manager that owns today's buffer and the storage
    """
    router = APIRouter(prefix="/api", tags=["analytics"])

    @router.post("/track", response_model=TrackResponse)
    async def track(event: dict[str, Any] = Body(...)):
        """Accept one event from the tracking script."""
        try:
            await manager.track(event)
        except EventValidationError as e:
            logger.warning(f"Rejected event: {e}")
            return _track_error()
        except Exception:
            logger.exception("Failed to track event")
            return _track_error()
        return TrackResponse()

    @router.get("/report/latest", response_model=DailyReport)
    async def latest_report():
        """Report for the live buffer."""
        buffer = manager.buffer
        return generate_report(buffer.snapshot(), buffer.day)

    @router.get("/report/{date}", response_model=DailyReport)
    async def report_for_date(date: str):
        """Report for a stored day (YYYY-MM-DD).

        Raises BatchNotFoundError (404) when nothing is stored for the day.
        """
        records = await manager.storage.read(date)
        return generate_report(records, date)

    @router.get("/dates", response_model=list[str])
    async def available_dates():
        """Stored dates, most recent first."""
        try:
            return await manager.storage.list_dates()
        except StorageError as e:
            logger.error(f"Failed to list dates: {e}")
            return []

    @router.get("/health", response_model=HealthResponse)
    async def health():
        """Liveness and buffer size."""
        return HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            today=manager.today(),
            records=len(manager.buffer),
        )

    return router
