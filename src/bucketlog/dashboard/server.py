"""Minimal bucketlog status API."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable

from fastapi import FastAPI, Query

from ..config import AppConfig
from ..errors import DecodingError
from ..log.writer import EventLogWriter
from ..replay.merger import HistoryReplayer


def _writer_state(writer: EventLogWriter | None) -> dict[str, Any]:
    if writer is None:
        return {"attached": False, "accepting": None, "active_bucket": None}
    bucket = writer.active_bucket
    return {
        "attached": True,
        "accepting": writer.is_accepting(),
        "active_bucket": bucket.hour_key if bucket is not None else None,
        "pending_bytes": writer.pending_bytes,
    }


def create_app(
    config: AppConfig,
    *,
    writer_provider: Callable[[], EventLogWriter | None] | None = None,
) -> FastAPI:
    """Create the status app for a running writer or a log directory alone."""

    writer_provider = writer_provider or (lambda: None)
    replayer = HistoryReplayer(config.log_path, config.history_path)

    app = FastAPI(title="bucketlog", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True}

    @app.get("/state")
    async def state() -> dict[str, Any]:
        files = replayer.list_replay_files()
        return {
            "writer": _writer_state(writer_provider()),
            "log_path": str(config.log_path),
            "history_path": str(config.history_path) if config.history_path else None,
            "file_count": len(files),
            "first_file": str(files[0]) if files else None,
            "last_file": str(files[-1]) if files else None,
        }

    @app.get("/events")
    async def events(limit: int | None = Query(default=None, ge=1, le=5000)) -> dict[str, Any]:
        window = limit or config.dashboard.recent_event_limit
        recent: deque[dict[str, Any]] = deque(maxlen=window)
        try:
            recent.extend(replayer.iter_events())
        except DecodingError as exc:
            return {"success": False, "error": str(exc), "events": [], "count": 0}
        items = list(recent)
        return {"success": True, "events": items, "count": len(items)}

    @app.post("/control/stop")
    async def control_stop() -> dict[str, Any]:
        writer = writer_provider()
        if writer is None:
            return {"success": False, "error": "writer unavailable"}
        writer.stop_accepting()
        writer.close_active_file()
        return {"success": True, "accepting": False}

    return app
