"""Map event timestamps to hour buckets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from ..errors import InvalidTimestampError

HOUR_KEY_FORMAT = "%Y-%m-%d_%H"
LOG_SUFFIX = ".log"
HOUR_FILE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}_\d{2}\.log$")


@dataclass(frozen=True)
class Bucket:
    hour_key: str
    month_key: str

    @property
    def file_name(self) -> str:
        return self.hour_key + LOG_SUFFIX

    @property
    def relative_path(self) -> str:
        return f"{self.month_key}/{self.file_name}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_seconds(ts: Any) -> float:
    if isinstance(ts, bool):
        raise InvalidTimestampError(f"invalid ts: {ts!r}")
    if isinstance(ts, (int, float)):
        return float(ts)
    if isinstance(ts, str):
        try:
            return float(ts.strip())
        except ValueError as exc:
            raise InvalidTimestampError(f"invalid ts: {ts!r}") from exc
    raise InvalidTimestampError(f"invalid ts: {ts!r}")


def bucket_of(ts: Any = None, now: Callable[[], datetime] | None = None) -> Bucket:
    """Return the UTC hour bucket for `ts` (seconds since epoch).

    A missing timestamp (None or empty string) resolves to `now()`.
    """
    if ts is None or ts == "":
        moment = _ensure_utc((now or _utc_now)())
    else:
        seconds = _to_seconds(ts)
        try:
            moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidTimestampError(f"ts out of range: {ts!r}") from exc
    hour_key = moment.strftime(HOUR_KEY_FORMAT)
    return Bucket(hour_key=hour_key, month_key=hour_key[:7])


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
