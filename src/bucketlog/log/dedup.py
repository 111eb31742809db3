"""Per-bucket index of `_history_id` values already written."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import DecodingError
from .codec import decode

logger = logging.getLogger(__name__)

HISTORY_ID_FIELD = "_history_id"


def history_id_of(event: dict[str, Any]) -> str | None:
    """Return the event's history id, or None when it has no usable one."""
    value = event.get(HISTORY_ID_FIELD)
    if isinstance(value, str) and value:
        return value
    return None


@dataclass(frozen=True)
class HydrationResult:
    """Outcome of scanning a bucket file for history ids.

    Hydration is best-effort: unreadable files and malformed lines are
    recorded here instead of raised.
    """

    bucket_id: str
    ids_loaded: int = 0
    lines_skipped: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.lines_skipped == 0


class DuplicateIndex:
    """History ids seen per bucket, rebuilt from the bucket files themselves."""

    def __init__(self) -> None:
        self._seen: dict[str, set[str]] = {}
        self._results: dict[str, HydrationResult] = {}

    def is_hydrated(self, bucket_id: str) -> bool:
        return bucket_id in self._seen

    def hydrate(self, bucket_id: str, path: Path) -> HydrationResult:
        """Load every history id present in `path` into the bucket's index.

        Only the first call per bucket reads the file; later calls return the
        cached result.
        """
        cached = self._results.get(bucket_id)
        if cached is not None:
            return cached

        seen: set[str] = set()
        self._seen[bucket_id] = seen
        skipped = 0
        error: str | None = None
        try:
            with Path(path).open("r", encoding="utf-8") as handle:
                for line_number, line in enumerate(handle, start=1):
                    try:
                        record = decode(line)
                    except DecodingError as exc:
                        skipped += 1
                        logger.debug("%s:%d: ignoring undecodable line: %s", path, line_number, exc)
                        continue
                    if record is None:
                        continue
                    history_id = history_id_of(record)
                    if history_id is not None:
                        seen.add(history_id)
        except FileNotFoundError:
            pass
        except (OSError, UnicodeDecodeError) as exc:
            error = str(exc)
            logger.warning("%s: duplicate index hydration failed: %s", bucket_id, exc)

        if skipped:
            logger.warning("%s: skipped %d undecodable lines during hydration", bucket_id, skipped)

        result = HydrationResult(
            bucket_id=bucket_id,
            ids_loaded=len(seen),
            lines_skipped=skipped,
            error=error,
        )
        self._results[bucket_id] = result
        return result

    def contains(self, bucket_id: str, history_id: str) -> bool:
        seen = self._seen.get(bucket_id)
        if seen is None:
            return False
        return history_id in seen

    def mark(self, bucket_id: str, history_id: str) -> None:
        seen = self._seen.get(bucket_id)
        if seen is not None:
            seen.add(history_id)

    def __len__(self) -> int:
        return len(self._seen)
