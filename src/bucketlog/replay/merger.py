"""Chronological replay over the live log root and the history root."""

from __future__ import annotations

import inspect
import logging
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator, Union

from ..errors import ConfigurationError, DecodingError
from ..log.clock import HOUR_FILE_PATTERN
from ..log.codec import decode
from .listing import list_files

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)

EventConsumer = Callable[[dict[str, Any]], Union[Awaitable[Any], Any]]


@dataclass
class ReplayStats:
    files: int = 0
    records: int = 0
    blank_lines: int = 0


class HistoryReplayer:
    """Stream every record under both roots, ordered by file path then line.

    File paths are sorted as plain strings, which is chronological only when
    every file follows the `YYYY-MM/YYYY-MM-DD_HH.log` layout. Files that do
    not are still replayed, with a warning.
    """

    def __init__(self, log_path: str | Path, history_path: str | Path | None = None) -> None:
        self.log_path = Path(log_path)
        self.history_path = Path(history_path) if history_path is not None else None

    @classmethod
    def from_config(cls, config: AppConfig) -> HistoryReplayer:
        if config.history_path is None:
            raise ConfigurationError("history_path is required for replay")
        return cls(config.log_path, config.history_path)

    def list_replay_files(self) -> list[Path]:
        files = list_files(self.log_path)
        if self.history_path is not None:
            files.extend(list_files(self.history_path))
        files.sort(key=str)
        for path in files:
            if not HOUR_FILE_PATTERN.match(path.name):
                logger.warning("Replay file does not follow the hour naming convention: %s", path)
        return files

    def _iter_file(self, path: Path, stats: ReplayStats) -> Iterator[dict[str, Any]]:
        with path.open("rb") as handle:
            for line_number, raw in enumerate(handle, start=1):
                try:
                    event = decode(raw.decode("utf-8"))
                except UnicodeDecodeError as exc:
                    raise DecodingError(f"invalid UTF-8: {exc}", path=path, line_number=line_number) from exc
                except DecodingError as exc:
                    raise DecodingError(str(exc), path=path, line_number=line_number) from exc
                if event is None:
                    stats.blank_lines += 1
                    continue
                stats.records += 1
                yield event

    def _iter_all(self, stats: ReplayStats) -> Iterator[dict[str, Any]]:
        for path in self.list_replay_files():
            logger.debug("Replaying %s", path)
            stats.files += 1
            yield from self._iter_file(path, stats)

    def iter_events(self, stats: ReplayStats | None = None) -> Iterator[dict[str, Any]]:
        """Yield every replayed event in order."""
        return self._iter_all(stats if stats is not None else ReplayStats())

    async def replay(self, consumer: EventConsumer) -> ReplayStats:
        """Feed each event to `consumer`, awaiting it before reading on.

        Decode errors and consumer exceptions abort the whole replay.
        """
        stats = ReplayStats()
        with closing(self._iter_all(stats)) as events:
            for event in events:
                result = consumer(event)
                if inspect.isawaitable(result):
                    await result
        logger.info("Replayed %d records from %d files", stats.records, stats.files)
        return stats


async def replay(config: AppConfig, consumer: EventConsumer) -> ReplayStats:
    return await HistoryReplayer.from_config(config).replay(consumer)
