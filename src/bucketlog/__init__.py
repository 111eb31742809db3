"""Hour-bucketed append-only event log with chronological replay."""

from .config import AppConfig, get_config, load_config
from .errors import (
    BucketLogError,
    ConfigurationError,
    DecodingError,
    DirectoryCreateError,
    EncodingError,
    InvalidTimestampError,
)
from .log import Bucket, DuplicateIndex, EventLogWriter, HydrationResult, WriteResult, bucket_of
from .replay import HistoryReplayer, ReplayStats, list_files, replay

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "Bucket",
    "BucketLogError",
    "ConfigurationError",
    "DecodingError",
    "DirectoryCreateError",
    "DuplicateIndex",
    "EncodingError",
    "EventLogWriter",
    "HistoryReplayer",
    "HydrationResult",
    "InvalidTimestampError",
    "ReplayStats",
    "WriteResult",
    "bucket_of",
    "get_config",
    "list_files",
    "load_config",
    "replay",
]
