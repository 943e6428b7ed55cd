"""
In-memory buffer of today's records.
"""
from collections.abc import Iterable

from .models import CanonicalRecord


class DailyBuffer:
    """Ordered, append-only records for one calendar day.

    Each operation is synchronous, so on a single event loop an append can
    never interleave with a snapshot or a clear. Only rotation clears it.
    """

    def __init__(self, day: str, records: Iterable[CanonicalRecord] = ()):
        self.day = day
        self._records: list[CanonicalRecord] = list(records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: CanonicalRecord) -> int:
        """Append a record and return the new length."""
        self._records.append(record)
        return len(self._records)

    def snapshot(self) -> list[CanonicalRecord]:
        """Copy of the records, safe to hold across awaits."""
        return list(self._records)

    def replace(self, records: Iterable[CanonicalRecord]) -> None:
        """Swap in records loaded from storage for the same day."""
        self._records = list(records)

    def clear(self, day: str, keep_from: int | None = None) -> None:
        """Start a new day.

        With keep_from, records at and after that index carry over to the new
        day instead of being dropped.
        """
        self._records = self._records[keep_from:] if keep_from is not None else []
        self.day = day
