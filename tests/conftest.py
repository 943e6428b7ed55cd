"""Shared fixtures and helpers for analytics tests."""

import asyncio
from datetime import datetime, timezone

from daily_analytics.models import CanonicalRecord


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def fixed_clock(*args, tz=timezone.utc):
    """Clock that always returns the given wall time."""
    moment = datetime(*args, tzinfo=tz)
    return lambda: moment


def pageview(visitor="v1", path="/", hour=10, referrer="direct", is_new=False, name=None, session="s1"):
    """Build a pageview record."""
    return CanonicalRecord(
        type="pageview",
        timestamp=1_700_000_000_000,
        visitor_hash=visitor,
        session_hash=session,
        is_new_visitor=is_new,
        page_path=path,
        page_name=name,
        referrer=referrer,
        hour=hour,
    )


def pageleave(duration, visitor="v1", path="/"):
    """Build a pageleave record."""
    return CanonicalRecord(
        type="pageleave",
        timestamp=1_700_000_000_000,
        visitor_hash=visitor,
        session_hash="s1",
        page_path=path,
        duration=duration,
        hour=10,
    )


def raw_event(i=0, **overrides):
    """Build a raw event body as the tracking script posts it."""
    event = {
        "type": "pageview",
        "timestamp": 1_700_000_000_000 + i,
        "visitorId": f"visitor-{i}",
        "sessionId": f"session-{i}",
        "isNewVisitor": True,
        "pagePath": "/home",
        "pageName": "Home",
        "referrer": "search_google",
    }
    event.update(overrides)
    return event
