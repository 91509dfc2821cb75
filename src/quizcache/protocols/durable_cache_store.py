"""Durable cache storage protocol.

Defines the interface for the long-term cache tier used for reuse after
fast-tier expiry and for auditing what was generated.

Implementations can include:
- SQLAlchemy over PostgreSQL or SQLite (default)
- Any document or relational store keyed by fingerprint
"""

from typing import Protocol, runtime_checkable

from quizcache.entities import DurableCacheRecord


@runtime_checkable
class DurableCacheStore(Protocol):
    """Protocol for durable cache backends.

    Implementations raise ``CacheUnavailableError`` when the backend cannot
    be reached.
    """

    async def get(self, fingerprint: str) -> DurableCacheRecord | None:
        """Fetch a record by fingerprint.

        Args:
            fingerprint: The cache key

        Returns:
            The record, stale or not, or None if absent
        """
        ...

    async def upsert(self, record: DurableCacheRecord) -> None:
        """Insert a record or overwrite the one with the same fingerprint.

        Args:
            record: The record to store
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...
