"""Recursive file listing for replay roots."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def list_files(root: str | Path) -> list[Path]:
    """Return every regular file below `root`. Order is not meaningful."""
    root_path = Path(root)
    if not root_path.is_dir():
        logger.warning("Replay root is not a directory, skipping: %s", root_path)
        return []

    files: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root_path):
        for name in filenames:
            candidate = Path(dirpath) / name
            if candidate.is_file():
                files.append(candidate)
    return files
