from __future__ import annotations

from bucketlog.log.dedup import DuplicateIndex, history_id_of


def test_hydrate_missing_file_gives_empty_index(tmp_path) -> None:
    index = DuplicateIndex()
    result = index.hydrate("2024-01-01_00", tmp_path / "absent.log")

    assert result.ok
    assert result.ids_loaded == 0
    assert index.is_hydrated("2024-01-01_00")
    assert not index.contains("2024-01-01_00", "anything")


def test_hydrate_collects_history_ids_and_skips_bad_lines(tmp_path) -> None:
    path = tmp_path / "bucket.log"
    path.write_text(
        '{"type":"a","_history_id":"one"}\n'
        "\n"
        "not json at all\n"
        '{"type":"b"}\n'
        '{"type":"c","_history_id":"two"}\n'
        '{"type":"d","_history_id":42}\n',
        encoding="utf-8",
    )
    index = DuplicateIndex()
    result = index.hydrate("h", path)

    assert result.ids_loaded == 2
    assert result.lines_skipped == 1
    assert result.error is None
    assert index.contains("h", "one")
    assert index.contains("h", "two")
    assert not index.contains("h", "42")


def test_hydrate_reads_each_bucket_once(tmp_path) -> None:
    path = tmp_path / "bucket.log"
    path.write_text('{"_history_id":"first"}\n', encoding="utf-8")
    index = DuplicateIndex()
    first = index.hydrate("h", path)

    path.write_text('{"_history_id":"second"}\n', encoding="utf-8")
    second = index.hydrate("h", path)

    assert second is first
    assert index.contains("h", "first")
    assert not index.contains("h", "second")


def test_unhydrated_bucket_is_a_no_op() -> None:
    index = DuplicateIndex()
    index.mark("h", "x")

    assert not index.contains("h", "x")
    assert not index.is_hydrated("h")
    assert len(index) == 0


def test_mark_then_contains(tmp_path) -> None:
    index = DuplicateIndex()
    index.hydrate("h", tmp_path / "absent.log")
    index.mark("h", "x")

    assert index.contains("h", "x")
    assert not index.contains("other", "x")


def test_history_id_of() -> None:
    assert history_id_of({"_history_id": "abc"}) == "abc"
    assert history_id_of({"_history_id": ""}) is None
    assert history_id_of({"_history_id": 7}) is None
    assert history_id_of({}) is None
