"""
Per-day batch storage on the local filesystem.

Each calendar day is one JSON file, <data_dir>/<YYYY-MM-DD>.json, holding the
full array of records for that day. Writes replace the whole batch.
"""
import asyncio
import json
import logging
import re
from collections.abc import Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .errors import BatchNotFoundError, StorageError
from .models import CanonicalRecord

logger = logging.getLogger(__name__)

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_batch_adapter = TypeAdapter(list[CanonicalRecord])


def is_date_key(value: str) -> bool:
    """Check that a value looks like YYYY-MM-DD (also keeps paths inside data_dir)."""
    return bool(DATE_KEY_PATTERN.match(value))


class JsonFileStorage:
    """Reads and writes day batches as JSON files.

    File I/O runs in a worker thread so the event loop keeps serving requests,
    and every call is bounded by `timeout` seconds.
    """

    def __init__(self, data_dir: str | Path, timeout: float = 30.0):
        self.data_dir = Path(data_dir)
        self.timeout = timeout

    def _path_for(self, day: str) -> Path:
        return self.data_dir / f"{day}.json"

    async def _run(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), self.timeout)
        except asyncio.TimeoutError as e:
            raise StorageError(f"Storage call timed out after {self.timeout}s") from e

    # -------------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # -------------------------------------------------------------------------

    def _write_sync(self, day: str, payload: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path_for(day)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)

    def _read_sync(self, day: str) -> str:
        return self._path_for(day).read_text(encoding="utf-8")

    def _list_sync(self) -> list[str]:
        if not self.data_dir.is_dir():
            return []
        return [p.stem for p in self.data_dir.glob("*.json") if is_date_key(p.stem)]

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def write(self, day: str, records: Sequence[CanonicalRecord]) -> None:
        """Replace the stored batch for a day.

        Raises:
            StorageError: If the batch can't be written
        """
        if not is_date_key(day):
            raise StorageError(f"Invalid batch key: {day!r}")

        payload = json.dumps(
            [r.model_dump(by_alias=True, exclude_none=True) for r in records],
            ensure_ascii=False,
            indent=2,
        )
        try:
            await self._run(self._write_sync, day, payload)
        except OSError as e:
            raise StorageError(f"Failed to write batch {day}: {e}") from e

    async def read(self, day: str) -> list[CanonicalRecord]:
        """Load the stored batch for a day.

        Raises:
            BatchNotFoundError: If nothing is stored for the day
            StorageError: If the batch exists but can't be read or parsed
        """
        if not is_date_key(day):
            raise BatchNotFoundError(day)

        try:
            text = await self._run(self._read_sync, day)
        except FileNotFoundError:
            raise BatchNotFoundError(day) from None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read batch {day}: {e}") from e

        try:
            return _batch_adapter.validate_json(text)
        except ValidationError as e:
            raise StorageError(f"Batch {day} is corrupt: {e.error_count()} error(s)") from e

    async def list_dates(self) -> list[str]:
        """List stored date keys, most recent first.

        Raises:
            StorageError: If the data directory can't be listed
        """
        try:
            dates = await self._run(self._list_sync)
        except OSError as e:
            raise StorageError(f"Failed to list batches: {e}") from e
        return sorted(dates, reverse=True)
