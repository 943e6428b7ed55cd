"""
Pydantic models for analytics data.

JSON field names are camelCase to match the tracking script and the batch
files on disk; Python attributes stay snake_case.
"""
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Raw Data Models
# =============================================================================

class RawEvent(CamelModel):
    """An event as posted by the tracking script.

    Every field is optional here; the normalizer decides what is required.
    Mistyped values are coerced rather than rejected. Only a timestamp that
    isn't a number fails validation.
    """
    type: str | None = None  # pageview, pageleave
    timestamp: int | float | None = None  # epoch milliseconds
    visitor_id: str | None = None
    session_id: str | None = None
    is_new_visitor: bool | None = None
    page_path: str | None = None
    page_name: str | None = None
    referrer: str | None = None  # referrer tag, e.g. search_google
    duration: int | float | None = None  # milliseconds, pageleave only

    @field_validator(
        "type", "visitor_id", "session_id", "page_path", "page_name", "referrer",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("is_new_visitor", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return value
        return bool(value)

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Any:
        # Unreadable durations are dropped, the event is still kept
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return value if math.isfinite(value) else None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None


class CanonicalRecord(CamelModel):
    """A privacy-safe event, the only form that is buffered or stored.

    Fields are lenient so batches written by older versions still load.
    """
    type: str | None = None
    timestamp: int | float | None = None
    visitor_hash: str | None = None
    session_hash: str | None = None
    is_new_visitor: bool | None = None
    page_path: str | None = None
    page_name: str | None = None
    referrer: str | None = "direct"
    duration: int | float | None = None
    hour: int | None = None  # local hour of day, 0-23


# =============================================================================
# Report Models
# =============================================================================

class ReportSummary(CamelModel):
    """Headline metrics for a day."""
    pv: int = 0
    uv: int = 0
    new_visitors: int = 0
    return_visitors: int = 0  # uv - new_visitors, not clamped
    avg_session_duration: int = 0  # seconds
    bounce_rate: float = 0  # 0-1, 3 decimals
    pages_per_session: float = 0  # 2 decimals


class HourlyPoint(CamelModel):
    """Traffic for one hour of the day."""
    hour: str  # "09:00"
    pv: int = 0
    uv: int = 0


class PageStats(CamelModel):
    """Stats for a single page."""
    path: str
    name: str
    pv: int
    uv: int


class SourceStats(CamelModel):
    """Stats for a traffic source."""
    source: str  # display label
    key: str | None = None  # raw referrer tag
    uv: int
    percentage: int  # share of page views, 0-100


class DailyReport(CamelModel):
    """Complete report for one day."""
    date: str
    summary: ReportSummary
    hourly_data: list[HourlyPoint] = Field(default_factory=list)
    page_stats: list[PageStats] = Field(default_factory=list)
    source_stats: list[SourceStats] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)


# =============================================================================
# API Response Models
# =============================================================================

class TrackResponse(BaseModel):
    """Response for an accepted event."""
    success: bool = True


class HealthResponse(BaseModel):
    """Service health."""
    status: str = "ok"
    timestamp: str
    today: str
    records: int
