"""Hour-bucketed append-only event writer."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import IO, Any, Callable

from ..errors import DirectoryCreateError
from .clock import Bucket, bucket_of
from .codec import encode
from .dedup import DuplicateIndex, history_id_of

logger = logging.getLogger(__name__)

DEFAULT_HIGH_WATER_MARK = 16 * 1024


class WriteResult(str, Enum):
    WRITTEN = "written"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    BACKPRESSURE = "backpressure"

    @property
    def accepted(self) -> bool:
        """True when the event was appended to its bucket file."""
        return self in (WriteResult.WRITTEN, WriteResult.BACKPRESSURE)


def friendly_type(event: dict[str, Any]) -> str:
    name = str(event.get("type", "?"))
    subtype = event.get("subtype")
    if subtype:
        name += f".{subtype}"
    return name


class EventLogWriter:
    """Append events to `<log_root>/<YYYY-MM>/<YYYY-MM-DD_HH>.log`.

    Only one bucket file is open at a time. It is closed as soon as an event
    for another hour arrives, or when `close_active_file()` is called.

    Not safe for concurrent use: rotation (close then open) is not atomic
    against an interleaved call.
    """

    def __init__(
        self,
        log_root: str | Path,
        *,
        index: DuplicateIndex | None = None,
        now: Callable[[], datetime] | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        if high_water_mark <= 0:
            raise ValueError("high_water_mark must be > 0")
        self.log_root = Path(log_root)
        self.index = index if index is not None else DuplicateIndex()
        self.high_water_mark = high_water_mark
        self._now = now
        self._accepting = True
        self._active_bucket: Bucket | None = None
        self._active_file: IO[str] | None = None
        self._pending_bytes = 0

    @property
    def active_bucket(self) -> Bucket | None:
        return self._active_bucket

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    def path_for(self, bucket: Bucket) -> Path:
        return self.log_root / bucket.month_key / bucket.file_name

    def is_accepting(self) -> bool:
        return self._accepting

    def stop_accepting(self) -> None:
        """Reject every later `log_event` call. The open file stays open."""
        self._accepting = False

    def get_active_file_handle(self) -> IO[str] | None:
        return self._active_file

    def log_event(
        self,
        event: dict[str, Any],
        *,
        avoid_duplicates: bool = False,
        verbose: bool = True,
    ) -> WriteResult:
        """Append one event to the bucket for its `ts`.

        Returns REJECTED after `stop_accepting()`, DUPLICATE when
        `avoid_duplicates` is set and the event's `_history_id` is already in
        the bucket, BACKPRESSURE when the record was written but the
        undrained output reached `high_water_mark`, and WRITTEN otherwise.
        """
        if not self._accepting:
            logger.warning("Skipping event: %s", friendly_type(event))
            return WriteResult.REJECTED

        bucket = bucket_of(event.get("ts"), now=self._now)

        if self._active_bucket is not None and bucket != self._active_bucket:
            if verbose:
                logger.info("%s: Closing log", self._active_bucket.hour_key)
            self.close_active_file()

        handle = self._active_file
        if handle is None:
            handle = self._open_bucket(bucket, avoid_duplicates=avoid_duplicates, verbose=verbose)

        history_id = history_id_of(event) if avoid_duplicates else None
        if history_id is not None and self.index.contains(bucket.hour_key, history_id):
            if verbose:
                logger.info("%s: Skipping duplicate event: %s (%s)", bucket.hour_key, friendly_type(event), history_id)
            return WriteResult.DUPLICATE

        line = encode(event)
        if verbose:
            logger.info("%s: Writing event: %s", bucket.hour_key, friendly_type(event))

        handle.write(line)
        # Only ids that reached the file count as seen.
        if history_id is not None:
            self.index.mark(bucket.hour_key, history_id)
        self._pending_bytes += len(line)
        if self._pending_bytes >= self.high_water_mark:
            return WriteResult.BACKPRESSURE
        return WriteResult.WRITTEN

    def _open_bucket(self, bucket: Bucket, *, avoid_duplicates: bool, verbose: bool) -> IO[str]:
        if verbose:
            logger.info("%s: Opening log", bucket.hour_key)

        month_dir = self.log_root / bucket.month_key
        try:
            month_dir.mkdir(exist_ok=True)
        except OSError as exc:
            raise DirectoryCreateError(f"cannot create bucket directory {month_dir}: {exc}") from exc

        path = self.path_for(bucket)
        handle = path.open("a", encoding="utf-8")
        self._active_file = handle
        self._active_bucket = bucket
        self._pending_bytes = 0

        if avoid_duplicates and not self.index.is_hydrated(bucket.hour_key):
            result = self.index.hydrate(bucket.hour_key, path)
            logger.debug(
                "%s: hydrated %d history ids (%d lines skipped)",
                bucket.hour_key,
                result.ids_loaded,
                result.lines_skipped,
            )
        return handle

    def drain(self) -> None:
        """Flush buffered output and reset the backpressure counter."""
        if self._active_file is not None:
            self._active_file.flush()
        self._pending_bytes = 0

    def close_active_file(self) -> None:
        """Flush and close the open bucket file, if any."""
        handle = self._active_file
        self._active_file = None
        self._active_bucket = None
        self._pending_bytes = 0
        if handle is not None:
            handle.close()

    def __enter__(self) -> EventLogWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_active_file()
