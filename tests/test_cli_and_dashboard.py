from __future__ import annotations

import asyncio
import io
import json

from fastapi.testclient import TestClient

from bucketlog.cli import _ingest, main
from bucketlog.dashboard import create_app
from bucketlog.log.writer import EventLogWriter

JAN_1_00 = 1704067200
HOUR = 3600


def _write_config(tmp_path, *, history: bool = True):
    logs = tmp_path / "logs"
    files = tmp_path / "files"
    logs.mkdir()
    files.mkdir()
    lines = ["token: t", f"log_path: {logs}", f"file_storage_path: {files}"]
    if history:
        (tmp_path / "history").mkdir()
        lines.append(f"history_path: {tmp_path / 'history'}")
    lines += ["writer:", "  verbose: false"]
    cfg = tmp_path / "config.yaml"
    cfg.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return cfg, logs


def _stdout_json(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_cli_ingest_then_replay(tmp_path, capsys) -> None:
    cfg, logs = _write_config(tmp_path)
    source = tmp_path / "events.jsonl"
    source.write_text(
        "\n".join(
            json.dumps(e)
            for e in [
                {"type": "message", "ts": JAN_1_00 + HOUR, "_history_id": "b"},
                {"type": "message", "ts": JAN_1_00, "_history_id": "a"},
                {"type": "message", "ts": JAN_1_00, "_history_id": "a"},
            ]
        )
        + "\n\n",
        encoding="utf-8",
    )

    assert main(["--config", str(cfg), "-q", "ingest", str(source), "--avoid-duplicates"]) == 0
    assert _stdout_json(capsys) == {"duplicate": 1, "written": 2}
    assert (logs / "2024-01" / "2024-01-01_00.log").exists()
    assert (logs / "2024-01" / "2024-01-01_01.log").exists()

    assert main(["--config", str(cfg), "-q", "replay"]) == 0
    replayed = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [e["_history_id"] for e in replayed] == ["a", "b"]

    assert main(["--config", str(cfg), "-q", "replay", "--count"]) == 0
    assert _stdout_json(capsys) == {"blank_lines": 0, "files": 2, "records": 2}


def test_cli_files_lists_replay_order(tmp_path, capsys) -> None:
    cfg, logs = _write_config(tmp_path)
    with EventLogWriter(logs) as writer:
        writer.log_event({"type": "a", "ts": JAN_1_00 + HOUR}, verbose=False)
        writer.log_event({"type": "b", "ts": JAN_1_00}, verbose=False)

    assert main(["--config", str(cfg), "-q", "files"]) == 0
    listed = capsys.readouterr().out.split()
    assert [p.rsplit("/", 1)[-1] for p in listed] == ["2024-01-01_00.log", "2024-01-01_01.log"]


def test_cli_replay_without_history_path_fails(tmp_path) -> None:
    cfg, _ = _write_config(tmp_path, history=False)
    assert main(["--config", str(cfg), "-q", "replay"]) == 1


def test_cli_replay_reports_corrupt_log(tmp_path) -> None:
    cfg, logs = _write_config(tmp_path)
    bad = logs / "2024-01" / "2024-01-01_00.log"
    bad.parent.mkdir()
    bad.write_text("{nope\n", encoding="utf-8")

    assert main(["--config", str(cfg), "-q", "replay", "--count"]) == 1


def test_dashboard_state_events_and_stop(app_config) -> None:
    writer = EventLogWriter(app_config.log_path)
    for i in range(3):
        writer.log_event({"type": "tick", "i": i, "ts": JAN_1_00 + i * HOUR}, verbose=False)

    app = create_app(app_config, writer_provider=lambda: writer)
    with TestClient(app) as client:
        assert client.get("/health").json() == {"ok": True}

        state = client.get("/state").json()
        assert state["writer"]["accepting"] is True
        assert state["writer"]["active_bucket"] == "2024-01-01_02"
        assert state["file_count"] == 3

        writer.drain()
        events = client.get("/events", params={"limit": 2}).json()
        assert events["success"] is True
        assert [e["i"] for e in events["events"]] == [1, 2]

        stopped = client.post("/control/stop").json()
        assert stopped == {"success": True, "accepting": False}

    assert not writer.is_accepting()
    assert writer.get_active_file_handle() is None


def test_dashboard_without_writer(app_config) -> None:
    app = create_app(app_config)
    with TestClient(app) as client:
        state = client.get("/state").json()
        assert state["writer"]["attached"] is False
        assert state["file_count"] == 0
        assert client.post("/control/stop").json()["success"] is False


def test_cli_replay_reports_invalid_utf8(tmp_path, capsys) -> None:
    cfg, logs = _write_config(tmp_path)
    bad = logs / "2024-01" / "2024-01-01_00.log"
    bad.parent.mkdir()
    bad.write_bytes(b'{"n": 1}\n\xff\xfe\n')

    assert main(["--config", str(cfg), "-q", "replay", "--count"]) == 1
    assert capsys.readouterr().out == ""


def test_dashboard_events_reports_invalid_utf8(app_config) -> None:
    bad = app_config.log_path / "2024-01" / "2024-01-01_00.log"
    bad.parent.mkdir()
    bad.write_bytes(b'{"n": 1}\n\xff\xfe\n')

    with TestClient(create_app(app_config)) as client:
        response = client.get("/events")

    assert response.status_code == 200
    assert response.json()["success"] is False


class _StoppingStream:
    """Line source that stops the writer after handing out `stop_after` lines."""

    def __init__(self, writer: EventLogWriter, lines: list[str], stop_after: int) -> None:
        self._writer = writer
        self._source = io.StringIO("".join(lines))
        self._stop_after = stop_after
        self.served = 0

    def readline(self) -> str:
        line = self._source.readline()
        self.served += 1
        if self.served == self._stop_after:
            self._writer.stop_accepting()
        return line


def test_ingest_stops_when_writer_stops_accepting(app_config, caplog) -> None:
    lines = [json.dumps({"type": "tick", "i": i, "ts": JAN_1_00}) + "\n" for i in range(5)]
    caplog.set_level("WARNING", logger="bucketlog")

    with EventLogWriter(app_config.log_path) as writer:
        stream = _StoppingStream(writer, lines, stop_after=2)
        counts = asyncio.run(_ingest(writer, stream, avoid_duplicates=False, verbose=False))

    # The line read just before the stop is rejected, not written.
    assert counts == {"written": 1, "rejected": 1}
    assert stream.served == 2
    assert any("remaining input left unread" in r.getMessage() for r in caplog.records)
