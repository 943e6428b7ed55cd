"""
HTML report page.

Renders the same report the JSON API serves, using Jinja2 templates.
"""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..errors import StorageError
from ..report import generate_report
from ..rotation import RotationManager


def _format_duration(seconds: int) -> str:
    """Format duration in seconds to human readable string."""
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    else:
        return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def _format_rate(value: float) -> str:
    """Format a 0-1 ratio as a percentage, e.g. 0.425 -> 42.5%."""
    return f"{value * 100:.1f}%"


def create_pages_router(manager: RotationManager) -> APIRouter:
    """Create the HTML page router.

    Args:
        manager: Rotation manager that owns today's buffer and the storage
    """
    router = APIRouter(tags=["pages"])

    template_dir = Path(__file__).parent.parent / "templates"
    templates = Jinja2Templates(directory=str(template_dir))
    templates.env.filters["format_duration"] = _format_duration
    templates.env.filters["format_rate"] = _format_rate

    @router.get("/", response_class=HTMLResponse)
    async def report_page(request: Request, date: str | None = None):
        """Render the report for today, or for a stored date via ?date=YYYY-MM-DD."""
        if date and date != manager.buffer.day:
            records = await manager.storage.read(date)
            report = generate_report(records, date)
        else:
            report = generate_report(manager.buffer.snapshot(), manager.buffer.day)

        max_hourly_pv = max(h.pv for h in report.hourly_data) or 1
        return templates.TemplateResponse(
            request,
            "pages/report.html",
            {
                "report": report,
                "dates": await _safe_dates(manager),
                "max_hourly_pv": max_hourly_pv,
            },
        )

    return router


async def _safe_dates(manager: RotationManager) -> list[str]:
    try:
        return await manager.storage.list_dates()
    except StorageError:
        return []
