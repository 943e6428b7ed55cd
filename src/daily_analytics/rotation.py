"""
Buffer persistence and day rotation.

The manager owns the day buffer and decides when it is written to storage:

- Size trigger: every `flush_every` appended records
- Time trigger: every `flush_interval` seconds while the buffer is non-empty
- Day boundary: once a day at `rotation_time` (00:05 local by default) the
  buffer is flushed one last time and cleared

A flush never clears the buffer, so a failed write only delays persistence
until the next trigger.
"""
import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any

from .buffer import DailyBuffer
from .errors import BatchNotFoundError, StorageError
from .models import CanonicalRecord, RawEvent
from .normalizer import normalize
from .storage import JsonFileStorage

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_EVERY = 50
DEFAULT_FLUSH_INTERVAL = 5 * 60  # seconds
DEFAULT_ROTATION_TIME = time(0, 5)


def next_occurrence(now: datetime, at: time) -> datetime:
    """Next wall-clock occurrence of `at` strictly after `now`, in now's zone."""
    target = now.replace(hour=at.hour, minute=at.minute, second=at.second, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def _seconds_between(start: datetime, end: datetime) -> float:
    # Aware datetimes sharing a tzinfo subtract as wall time, so go through UTC
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()


def seconds_until(now: datetime, at: time) -> float:
    """Seconds from `now` until the next wall-clock occurrence of `at`.

    An occurrence exactly at `now` counts as passed, so the result is always
    positive. Computed in UTC so DST shifts don't skew the delay.
    """
    return _seconds_between(now, next_occurrence(now, at))


class RotationManager:
    """Owns the day buffer's lifecycle: tracking, flushing and rotation."""

    def __init__(
        self,
        storage: JsonFileStorage,
        buffer: DailyBuffer | None = None,
        flush_every: int = DEFAULT_FLUSH_EVERY,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        rotation_time: time = DEFAULT_ROTATION_TIME,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.storage = storage
        self.flush_every = flush_every
        self.flush_interval = flush_interval
        self.rotation_time = rotation_time
        self.tz = tz
        self._clock = clock
        self.buffer = buffer if buffer is not None else DailyBuffer(self.today())

        self._write_lock = asyncio.Lock()
        self._tasks: list[asyncio.Task] = []

    # -------------------------------------------------------------------------
    # Clock
    # -------------------------------------------------------------------------

    def now(self) -> datetime:
        """Current time, aware, in the configured zone (server local if unset)."""
        if self._clock is not None:
            return self._clock()
        if self.tz is not None:
            return datetime.now(self.tz)
        return datetime.now().astimezone()

    def today(self) -> str:
        """Today's local date as YYYY-MM-DD."""
        return self.now().date().isoformat()

    # -------------------------------------------------------------------------
    # Buffer operations
    # -------------------------------------------------------------------------

    async def load_today(self) -> int:
        """Restore today's stored batch into the buffer.

        Returns:
            Number of records loaded (0 if nothing was stored or loading failed)
        """
        today = self.today()
        try:
            records = await self.storage.read(today)
        except BatchNotFoundError:
            logger.debug(f"No stored batch for {today}, starting empty")
            self.buffer.clear(today)
            return 0
        except StorageError as e:
            logger.error(f"Failed to load batch for {today}: {e}")
            self.buffer.clear(today)
            return 0

        self.buffer.clear(today)
        self.buffer.replace(records)
        logger.info(f"Loaded {len(records)} records for {today}")
        return len(records)

    async def track(self, raw: Mapping[str, Any] | RawEvent) -> CanonicalRecord:
        """Normalize an event, buffer it and flush on the size trigger.

        Raises:
            EventValidationError: If the event is missing required fields
        """
        record = normalize(raw, self.tz)
        size = self.buffer.append(record)
        if size % self.flush_every == 0:
            await self.flush()
        return record

    async def flush(self) -> bool:
        """Write the whole buffer to storage, replacing the day's batch.

        The buffer is copied before any I/O, and writes are serialized so an
        older snapshot can never overwrite a newer one.

        Returns:
            True if the batch was written, False if the write failed
        """
        async with self._write_lock:
            return await self._write(self.buffer.day, self.buffer.snapshot())

    async def _write(self, day: str, records: list[CanonicalRecord]) -> bool:
        # Caller holds _write_lock
        try:
            await self.storage.write(day, records)
        except StorageError as e:
            logger.error(f"Flush of {len(records)} records for {day} failed: {e}")
            return False
        logger.info(f"Flushed {len(records)} records for {day}")
        return True

    async def rotate(self) -> bool:
        """Flush the finished day and start the buffer on today.

        Records appended while the final write is in flight arrived after
        midnight, so they carry over to the new day. If the final flush fails
        the buffer is kept so nothing is lost. A buffer that already belongs
        to today (after a restart past midnight) is left alone.

        Returns:
            True if the buffer now belongs to today
        """
        today = self.today()
        if self.buffer.day == today:
            logger.debug(f"Buffer already on {today}, nothing to rotate")
            return True

        async with self._write_lock:
            finished_day = self.buffer.day
            records = self.buffer.snapshot()
            if records and not await self._write(finished_day, records):
                logger.error(f"Rotation of {finished_day} postponed, buffer kept")
                return False
            self.buffer.clear(today, keep_from=len(records))
        logger.info(f"Rotated {finished_day}, buffer reset for {today} with {len(self.buffer)} records")
        return True

    # -------------------------------------------------------------------------
    # Background tasks
    # -------------------------------------------------------------------------

    async def _flush_loop(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval)
            if len(self.buffer):
                await self.flush()

    async def _rotation_loop(self) -> None:
        deadline = next_occurrence(self.now(), self.rotation_time)
        while True:
            delay = max(_seconds_between(self.now(), deadline), 0)
            logger.debug(f"Next rotation in {delay:.0f}s")
            await asyncio.sleep(delay)
            while not await self.rotate():
                await asyncio.sleep(self.flush_interval)
            # The timer may wake slightly early, so never re-arm before the deadline
            deadline = next_occurrence(max(self.now(), deadline), self.rotation_time)

    async def start(self) -> None:
        """Load today's batch and start the periodic flush and rotation tasks."""
        await self.load_today()
        self._tasks = [
            asyncio.create_task(self._flush_loop(), name="analytics-flush"),
            asyncio.create_task(self._rotation_loop(), name="analytics-rotation"),
        ]

    async def stop(self) -> None:
        """Cancel background tasks and write out whatever is buffered."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if len(self.buffer):
            await self.flush()
