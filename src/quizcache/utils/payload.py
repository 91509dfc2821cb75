"""JSON encoding of cached payloads.

Both cache tiers store the same document shape::

    {"content": "...", "tokens": 123, "timestamp": "2025-01-08T12:00:00+00:00"}
"""

import json
from datetime import datetime, timezone

from quizcache.entities import CachedPayload


def encode_payload(payload: CachedPayload) -> str:
    """Serialize a payload to its JSON document."""
    return json.dumps(
        {
            "content": payload.content,
            "tokens": payload.tokens_consumed,
            "timestamp": payload.produced_at.isoformat(),
        }
    )


def decode_payload(raw: str) -> CachedPayload:
    """Parse a payload JSON document.

    Raises:
        ValueError: If the document is not a valid payload
    """
    data = json.loads(raw)
    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        raise ValueError("Cached payload is missing string content")

    tokens = data.get("tokens")
    if tokens is None:
        tokens = 0
    elif isinstance(tokens, bool) or not isinstance(tokens, int):
        raise ValueError(f"Cached payload has non-integer tokens: {tokens!r}")

    timestamp = data.get("timestamp")
    if timestamp is not None and not isinstance(timestamp, str):
        raise ValueError(f"Cached payload has non-string timestamp: {timestamp!r}")

    produced_at = datetime.fromisoformat(timestamp) if timestamp else None
    if produced_at is None:
        produced_at = datetime.now(timezone.utc)
    elif produced_at.tzinfo is None:
        produced_at = produced_at.replace(tzinfo=timezone.utc)

    return CachedPayload(
        content=data["content"],
        tokens_consumed=tokens,
        produced_at=produced_at,
    )


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
