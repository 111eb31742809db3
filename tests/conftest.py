"""Shared fixtures for bucketlog tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from bucketlog.config import AppConfig


@pytest.fixture
def log_root(tmp_path) -> Path:
    root = tmp_path / "logs"
    root.mkdir()
    return root


@pytest.fixture
def app_config(tmp_path, log_root) -> AppConfig:
    storage = tmp_path / "files"
    storage.mkdir()
    history = tmp_path / "history"
    history.mkdir()
    return AppConfig(
        token="test-token",
        log_path=log_root,
        file_storage_path=storage,
        history_path=history,
    )

