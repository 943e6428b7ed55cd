"""
Daily report generation.

Turns a day's records into the dashboard report: headline metrics, hourly
distribution, page and source breakdowns, and a few narrative insights.

Values are rounded half-up on their exact binary value (12.5 -> 13), never
with Python's round-half-even.
"""
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from .models import (
    CanonicalRecord,
    DailyReport,
    HourlyPoint,
    PageStats,
    ReportSummary,
    SourceStats,
)
from .referrer import DEFAULT_REFERRER, source_label

PAGEVIEW = "pageview"
PAGELEAVE = "pageleave"

DEFAULT_PAGE_PATH = "/"
MAX_VALID_DURATION_MS = 60 * 60 * 1000  # longer page-leaves are outliers

# Bounce rate tiers for insights
BOUNCE_EXCELLENT = 0.4
BOUNCE_REASONABLE = 0.6


def _round_half_up(value: float, places: int = 0) -> Decimal:
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _format_percent(value: float) -> str:
    """Format a percentage with one decimal, e.g. 33.3."""
    return str(_round_half_up(value, 1))


def _page_stats(page_views: list[CanonicalRecord]) -> list[PageStats]:
    groups: dict[str, dict] = {}
    for pv in page_views:
        path = pv.page_path or DEFAULT_PAGE_PATH
        group = groups.setdefault(path, {"pv": 0, "visitors": set(), "name": path})
        group["pv"] += 1
        group["visitors"].add(pv.visitor_hash)
        group["name"] = pv.page_name or path

    stats = [
        PageStats(path=path, name=g["name"], pv=g["pv"], uv=len(g["visitors"]))
        for path, g in groups.items()
    ]
    return sorted(stats, key=lambda p: p.pv, reverse=True)


def _source_stats(page_views: list[CanonicalRecord], total_pv: int) -> list[SourceStats]:
    # Unknown tags all read "Other" but stay separate groups, keyed by raw tag
    groups: dict[str, dict] = {}
    for pv in page_views:
        source = pv.referrer or DEFAULT_REFERRER
        group = groups.setdefault(source, {"count": 0, "visitors": set()})
        group["count"] += 1
        group["visitors"].add(pv.visitor_hash)

    stats = [
        SourceStats(
            source=source_label(source),
            key=source,
            uv=len(g["visitors"]),
            percentage=int(_round_half_up(g["count"] / total_pv * 100)) if total_pv else 0,
        )
        for source, g in groups.items()
    ]
    return sorted(stats, key=lambda s: s.uv, reverse=True)


def _avg_session_duration(page_leaves: list[CanonicalRecord]) -> int:
    """Average valid page-leave duration in whole seconds."""
    durations = [
        pl.duration for pl in page_leaves
        if pl.duration is not None and 0 < pl.duration < MAX_VALID_DURATION_MS
    ]
    if not durations:
        return 0
    return int(_round_half_up(sum(durations) / len(durations) / 1000))


def _bounce_rate(page_views: list[CanonicalRecord], unique_visitors: int) -> float:
    """Share of visitors who saw exactly one distinct page."""
    visitor_pages: dict[str | None, set] = {}
    for pv in page_views:
        visitor_pages.setdefault(pv.visitor_hash, set()).add(pv.page_path)

    if not unique_visitors:
        return 0
    single_page = sum(1 for pages in visitor_pages.values() if len(pages) == 1)
    return single_page / unique_visitors


def _hourly_data(page_views: list[CanonicalRecord]) -> list[HourlyPoint]:
    counts = [0] * 24
    visitors: list[set] = [set() for _ in range(24)]
    for pv in page_views:
        if pv.hour is not None and 0 <= pv.hour < 24:
            counts[pv.hour] += 1
            visitors[pv.hour].add(pv.visitor_hash)

    return [
        HourlyPoint(hour=f"{hour:02d}:00", pv=counts[hour], uv=len(visitors[hour]))
        for hour in range(24)
    ]


def _insights(
    hourly: list[HourlyPoint],
    pages: list[PageStats],
    total_pv: int,
    bounce_rate: float,
    new_visitors: int,
    return_visitors: int,
) -> list[str]:
    insights = []

    # max() keeps the earliest hour on ties
    peak = max(hourly, key=lambda h: h.pv)
    if peak.pv > 0:
        insights.append(f"Traffic peaked at {peak.hour} with {peak.pv} page views")

    if pages:
        top = pages[0]
        share = _format_percent(top.pv / total_pv * 100)
        insights.append(f'"{top.name}" is the most popular page, accounting for {share}% of total traffic')

    if bounce_rate < BOUNCE_EXCELLENT:
        insights.append("Bounce rate is excellent, showing strong visitor stickiness")
    elif bounce_rate < BOUNCE_REASONABLE:
        insights.append("Bounce rate is within a reasonable range")
    else:
        insights.append("Bounce rate is high, recommend improving page content")

    if new_visitors > return_visitors:
        insights.append("New visitors are predominant, showing good acquisition")
    else:
        insights.append("Return visitors are predominant, showing good loyalty")

    return insights


def generate_report(records: Iterable[CanonicalRecord], date: str) -> DailyReport:
    """Build the daily report for a sequence of records.

    Pure: the same records always produce the same report, and the records are
    not modified. Records with missing optional fields fall back to defaults
    ("/" for the page path, "direct" for the referrer).

    Args:
        records: Records for the day, in arrival order
        date: Day the records belong to (YYYY-MM-DD)

    Returns:
        DailyReport with 24 hourly entries even when records is empty
    """
    records = list(records)
    page_views = [r for r in records if r.type == PAGEVIEW]
    page_leaves = [r for r in records if r.type == PAGELEAVE]

    total_pv = len(page_views)
    unique_visitors = len({pv.visitor_hash for pv in page_views})
    new_visitors = sum(1 for pv in page_views if pv.is_new_visitor)
    # Counted over page views, so this can go negative on repeat new-visitor hits
    return_visitors = unique_visitors - new_visitors

    pages = _page_stats(page_views)
    sources = _source_stats(page_views, total_pv)
    bounce_rate = _bounce_rate(page_views, unique_visitors)
    hourly = _hourly_data(page_views)

    summary = ReportSummary(
        pv=total_pv,
        uv=unique_visitors,
        new_visitors=new_visitors,
        return_visitors=return_visitors,
        avg_session_duration=_avg_session_duration(page_leaves),
        bounce_rate=float(_round_half_up(bounce_rate, 3)),
        pages_per_session=float(_round_half_up(total_pv / unique_visitors, 2)) if unique_visitors else 0,
    )

    return DailyReport(
        date=date,
        summary=summary,
        hourly_data=hourly,
        page_stats=pages,
        source_stats=sources,
        insights=_insights(hourly, pages, total_pv, bounce_rate, new_visitors, return_visitors),
    )
