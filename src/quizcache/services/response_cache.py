"""Two-tier response cache.

This service coordinates the fast tier (TTL key-value store) and the durable
tier (relational audit store). Both tiers are optional and every tier error
is recovered here: reads degrade to a miss, writes are dropped with a log
line. Caching is an optimization, never a correctness requirement.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from quizcache.entities import CachedPayload, DurableCacheRecord
from quizcache.errors import StoreUnavailableError
from quizcache.protocols import DurableCacheStore, FastStore
from quizcache.utils import decode_payload, encode_payload

from .fingerprint import prompt_hash

logger = logging.getLogger(__name__)

RESPONSE_KEY_PREFIX = "ai:response:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseCache:
    """Content-addressed cache keyed by request fingerprint.

    This service depends on PROTOCOLS, not concrete implementations:
    - FastStore: Redis or any TTL key-value store
    - DurableCacheStore: SQL or any store keyed by fingerprint

    Example:
        ```python
        from quizcache.services import ResponseCache

        cache = ResponseCache(fast_store=RedisFastStore.create(), durable_store=None)
        payload = await cache.get(fingerprint)
        if payload is None:
            await cache.put(fingerprint, new_payload, ttl=604800, kind="hint", prompt_text=prompt)
        ```
    """

    def __init__(
        self,
        fast_store: FastStore | None = None,
        durable_store: DurableCacheStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the response cache.

        Args:
            fast_store: Fast TTL tier. None means the tier is disabled.
            durable_store: Durable audit tier. None means the tier is disabled.
            clock: Source of "now" for staleness checks
        """
        self._fast = fast_store
        self._durable = durable_store
        self._clock = clock

    @staticmethod
    def fast_key(fingerprint: str) -> str:
        """Key under which a fingerprint is stored in the fast tier."""
        return f"{RESPONSE_KEY_PREFIX}{fingerprint}"

    async def get(self, fingerprint: str) -> CachedPayload | None:
        """Look up a payload by fingerprint.

        Business logic:
        1. Read the fast tier
        2. On miss, read the durable tier
        3. A non-stale durable hit is copied back to the fast tier for its
           remaining lifetime

        Args:
            fingerprint: The cache key

        Returns:
            The cached payload, or None on miss or when no tier is reachable
        """
        payload = await self._get_fast(fingerprint)
        if payload is not None:
            logger.debug("Fast tier hit for %s", fingerprint)
            return payload

        record = await self._get_durable(fingerprint)
        if record is None:
            return None

        now = self._clock()
        if record.is_stale(now):
            logger.debug("Durable tier entry for %s is stale", fingerprint)
            return None

        remaining = int((record.expires_at - now).total_seconds())
        if remaining > 0:
            await self._set_fast(fingerprint, record.payload, remaining)
        logger.debug("Durable tier hit for %s, backfilled fast tier", fingerprint)
        return record.payload

    async def put(
        self,
        fingerprint: str,
        payload: CachedPayload,
        ttl: int,
        kind: str,
        prompt_text: str,
    ) -> None:
        """Store a payload in both tiers.

        Never raises for tier failures.

        Args:
            fingerprint: The cache key
            payload: Payload to store
            ttl: Lifetime in seconds
            kind: Request kind, kept on the durable entry
            prompt_text: Prompt whose content hash is kept on the durable entry
        """
        if ttl <= 0:
            return

        await self._set_fast(fingerprint, payload, ttl)

        if self._durable is None:
            return

        record = DurableCacheRecord(
            fingerprint=fingerprint,
            request_kind=kind,
            request_hash=prompt_hash(prompt_text),
            payload=payload,
            expires_at=self._clock() + timedelta(seconds=ttl),
        )
        try:
            await self._durable.upsert(record)
        except StoreUnavailableError as e:
            logger.warning("Durable cache write dropped for %s: %s", fingerprint, e)

    async def is_healthy(self) -> dict[str, bool | None]:
        """Report tier reachability.

        Returns:
            Mapping of tier name to health, None for disabled tiers
        """
        return {
            "fast_tier": await self._fast.health_check() if self._fast else None,
            "durable_tier": await self._durable.health_check() if self._durable else None,
        }

    async def _get_fast(self, fingerprint: str) -> CachedPayload | None:
        if self._fast is None:
            return None

        try:
            raw = await self._fast.get(self.fast_key(fingerprint))
        except StoreUnavailableError as e:
            logger.warning("Cache read error, treating as miss: %s", e)
            return None

        if raw is None:
            return None

        try:
            return decode_payload(raw)
        except ValueError as e:
            logger.warning("Ignoring corrupt fast tier entry for %s: %s", fingerprint, e)
            return None

    async def _get_durable(self, fingerprint: str) -> DurableCacheRecord | None:
        if self._durable is None:
            return None

        try:
            return await self._durable.get(fingerprint)
        except StoreUnavailableError as e:
            logger.warning("Durable cache read error, treating as miss: %s", e)
            return None

    async def _set_fast(self, fingerprint: str, payload: CachedPayload, ttl: int) -> None:
        if self._fast is None:
            return

        try:
            await self._fast.set(self.fast_key(fingerprint), encode_payload(payload), ttl)
        except StoreUnavailableError as e:
            logger.warning("Cache write error: %s", e)

    @property
    def fast_store(self) -> FastStore | None:
        """Get the fast tier (for testing)."""
        return self._fast

    @property
    def durable_store(self) -> DurableCacheStore | None:
        """Get the durable tier (for testing)."""
        return self._durable
