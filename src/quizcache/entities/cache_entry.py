"""Cache entry domain entities."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CachedPayload:
    """Payload stored under a fingerprint.

    Attributes:
        content: Normalized generated content
        tokens_consumed: Tokens spent producing the content
        produced_at: When the content was generated
    """

    content: str
    tokens_consumed: int
    produced_at: datetime


@dataclass(frozen=True)
class DurableCacheRecord:
    """Durable-tier cache entry kept for long-term reuse and audit.

    This is an internal representation used by services and repositories.

    Attributes:
        fingerprint: Cache key
        request_kind: Kind of request that produced the payload
        request_hash: Content hash of the prompt text
        payload: The cached payload
        expires_at: After this instant the record is treated as stale
    """

    fingerprint: str
    request_kind: str
    request_hash: str
    payload: CachedPayload
    expires_at: datetime

    def is_stale(self, now: datetime) -> bool:
        """Check whether the record has outlived its TTL."""
        return now >= self.expires_at
