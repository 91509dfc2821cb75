"""Fast key-value store protocol.

Defines the interface for the low-latency TTL store shared by the cache
fast tier and the daily quota counters.

Implementations can include:
- Redis (default)
- Valkey / KeyDB
- Any store with get, set-with-expiry and atomic increment-with-expiry
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class FastStore(Protocol):
    """Protocol for fast TTL key-value stores.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.

    Implementations raise ``StoreUnavailableError`` when the backend cannot
    be reached; callers treat that as a degraded mode, never as a failure.

    Example:
        ```python
        from quizcache.protocols import FastStore

        store: FastStore = RedisFastStore.create()
        ```
    """

    async def get(self, key: str) -> str | None:
        """Read a value.

        Args:
            key: The key to read

        Returns:
            The stored value, or None if absent or expired
        """
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Write a value with an expiry.

        Args:
            key: The key to write
            value: The value to store
            ttl: Time-to-live in seconds
        """
        ...

    async def increment(self, key: str, amount: int, ttl: int) -> int:
        """Atomically increment a counter.

        The expiry is applied only when the counter has none, so the window
        is anchored at the first increment.

        Args:
            key: The counter key
            amount: Amount to add
            ttl: Expiry in seconds for a fresh counter

        Returns:
            The counter value after the increment
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...
