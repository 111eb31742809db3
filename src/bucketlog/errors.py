"""Exception taxonomy for the event log."""

from __future__ import annotations

from pathlib import Path


class BucketLogError(Exception):
    """Base class for errors raised by bucketlog."""


class EncodingError(BucketLogError, ValueError):
    """An event cannot be serialized to a single record line."""


class DecodingError(BucketLogError, ValueError):
    """A non-blank record line is not a valid JSON object."""

    def __init__(self, message: str, *, path: Path | None = None, line_number: int | None = None) -> None:
        self.path = path
        self.line_number = line_number
        if path is not None:
            location = f"{path}:{line_number}" if line_number is not None else str(path)
            message = f"{location}: {message}"
        super().__init__(message)


class InvalidTimestampError(BucketLogError, ValueError):
    """An event's `ts` field is not a number of seconds since the epoch."""


class DirectoryCreateError(BucketLogError, OSError):
    """A bucket's month directory could not be created."""


class ConfigurationError(BucketLogError):
    """A required configuration value is missing for the requested operation."""
