"""
Event normalization: raw tracking events to privacy-safe records.
"""
from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Any

from pydantic import ValidationError

from .errors import EventValidationError
from .hashing import hash_id
from .models import CanonicalRecord, RawEvent
from .referrer import DEFAULT_REFERRER

REQUIRED_FIELDS = ("type", "timestamp", "visitor_id", "session_id")


def event_hour(timestamp_ms: float, tz: tzinfo | None = None) -> int:
    """Hour of day (0-23) for an epoch-milliseconds timestamp.

    Uses the server's local time zone when tz is None.
    """
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz).hour
    except (OverflowError, OSError, ValueError) as e:
        raise EventValidationError(f"Timestamp out of range: {timestamp_ms}") from e


def normalize(raw: Mapping[str, Any] | RawEvent, tz: tzinfo | None = None) -> CanonicalRecord:
    """Turn a raw event into a canonical record.

    Visitor and session ids are replaced by their hashes, a missing referrer
    becomes "direct" and the local hour is computed once, here.

    Args:
        raw: Event body as posted by the tracking script
        tz: Time zone for the hour bucket (server local time if None)

    Raises:
        EventValidationError: If type, timestamp, visitorId or sessionId is
            missing, or the timestamp isn't a usable epoch-milliseconds number
    """
    if not isinstance(raw, RawEvent):
        try:
            raw = RawEvent.model_validate(raw)
        except ValidationError as e:
            raise EventValidationError(f"Unreadable event: {e.error_count()} invalid field(s)") from e

    missing = [name for name in REQUIRED_FIELDS if getattr(raw, name) is None]
    if missing:
        raise EventValidationError(f"Missing required field(s): {', '.join(missing)}")

    return CanonicalRecord(
        type=raw.type,
        timestamp=raw.timestamp,
        visitor_hash=hash_id(raw.visitor_id),
        session_hash=hash_id(raw.session_id),
        is_new_visitor=raw.is_new_visitor,
        page_path=raw.page_path,
        page_name=raw.page_name,
        referrer=raw.referrer or DEFAULT_REFERRER,
        duration=raw.duration,
        hour=event_hour(raw.timestamp, tz),
    )
