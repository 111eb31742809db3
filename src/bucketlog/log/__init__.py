"""Hour-bucketed write path."""

from .clock import Bucket, bucket_of
from .codec import decode, encode
from .dedup import DuplicateIndex, HydrationResult
from .writer import EventLogWriter, WriteResult

__all__ = [
    "Bucket",
    "DuplicateIndex",
    "EventLogWriter",
    "HydrationResult",
    "WriteResult",
    "bucket_of",
    "decode",
    "encode",
]
