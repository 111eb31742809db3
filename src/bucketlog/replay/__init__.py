"""Replay of rotated log files."""

from .listing import list_files
from .merger import HistoryReplayer, ReplayStats, replay

__all__ = ["HistoryReplayer", "ReplayStats", "list_files", "replay"]
