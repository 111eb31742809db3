"""One event per line: the on-disk record format."""

from __future__ import annotations

import json
from typing import Any

from ..errors import DecodingError, EncodingError


def encode(event: dict[str, Any]) -> str:
    """Serialize an event to a compact JSON line terminated by a newline."""
    if not isinstance(event, dict):
        raise EncodingError(f"event must be a JSON object, got {type(event).__name__}")
    try:
        text = json.dumps(event, ensure_ascii=True, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"event is not serializable: {exc}") from exc
    return text + "\n"


def decode(line: str) -> dict[str, Any] | None:
    """Parse one record line.

    Returns None for blank lines. Raises DecodingError for anything else that
    is not a JSON object.
    """
    if not line.strip():
        return None
    try:
        parsed = json.loads(line)
    except json.JSONDecodeError as exc:
        raise DecodingError(f"malformed record: {exc}") from exc
    if not isinstance(parsed, dict):
        raise DecodingError(f"record must be a JSON object, got {type(parsed).__name__}")
    return parsed
