"""Tests for the two-tier response cache."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import InMemoryDurableStore, InMemoryFastStore
from quizcache.entities import CachedPayload, DurableCacheRecord
from quizcache.services import ResponseCache, prompt_hash

NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)
FINGERPRINT = "hint:" + "a" * 64


def payload(content: str = "Think about light.") -> CachedPayload:
    return CachedPayload(content=content, tokens_consumed=40, produced_at=NOW)


class TestResponseCacheFastTier:
    @pytest.mark.asyncio
    async def test_put_then_get_round_trips(self, fast_store: InMemoryFastStore) -> None:
        """Test a stored payload is returned from the fast tier."""
        cache = ResponseCache(fast_store=fast_store, clock=lambda: NOW)
        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="p")

        assert await cache.get(FINGERPRINT) == payload()
        assert fast_store.ttls[ResponseCache.fast_key(FINGERPRINT)] == 3600

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, fast_store: InMemoryFastStore) -> None:
        cache = ResponseCache(fast_store=fast_store)
        assert await cache.get(FINGERPRINT) is None

    @pytest.mark.asyncio
    async def test_unavailable_fast_tier_is_a_miss(self, fast_store: InMemoryFastStore) -> None:
        """Test store errors degrade to a miss instead of raising."""
        cache = ResponseCache(fast_store=fast_store, clock=lambda: NOW)
        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="p")
        fast_store.available = False

        assert await cache.get(FINGERPRINT) is None

    @pytest.mark.asyncio
    async def test_put_survives_unavailable_fast_tier(self, fast_store: InMemoryFastStore) -> None:
        fast_store.available = False
        cache = ResponseCache(fast_store=fast_store)
        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="p")

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, fast_store: InMemoryFastStore) -> None:
        fast_store.data[ResponseCache.fast_key(FINGERPRINT)] = "not json"
        cache = ResponseCache(fast_store=fast_store)
        assert await cache.get(FINGERPRINT) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            '{"content": "x", "tokens": [1]}',
            '{"content": "x", "tokens": {"n": 1}}',
            '{"content": "x", "tokens": "12"}',
            '{"content": "x", "tokens": 3, "timestamp": 1736337600}',
            '{"content": "x", "tokens": 3, "timestamp": "yesterday"}',
        ],
    )
    async def test_wrongly_typed_entry_is_a_miss(
        self, fast_store: InMemoryFastStore, raw: str
    ) -> None:
        """Test entries with mistyped fields fall through to a miss instead of raising."""
        fast_store.data[ResponseCache.fast_key(FINGERPRINT)] = raw
        cache = ResponseCache(fast_store=fast_store)
        assert await cache.get(FINGERPRINT) is None

    @pytest.mark.asyncio
    async def test_no_tiers_always_misses(self) -> None:
        cache = ResponseCache()
        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="p")
        assert await cache.get(FINGERPRINT) is None


class TestResponseCacheDurableTier:
    @pytest.mark.asyncio
    async def test_put_writes_audit_fields(self, durable_store: InMemoryDurableStore) -> None:
        """Test the durable entry keeps kind, prompt hash and expiry."""
        cache = ResponseCache(durable_store=durable_store, clock=lambda: NOW)
        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="the prompt")

        record = durable_store.records[FINGERPRINT]
        assert record.request_kind == "hint"
        assert record.request_hash == prompt_hash("the prompt")
        assert record.expires_at == NOW + timedelta(seconds=3600)

    @pytest.mark.asyncio
    async def test_durable_hit_backfills_fast_tier(
        self, fast_store: InMemoryFastStore, durable_store: InMemoryDurableStore
    ) -> None:
        """Test a fresh durable entry is copied to the fast tier for its remaining TTL."""
        durable_store.records[FINGERPRINT] = DurableCacheRecord(
            fingerprint=FINGERPRINT,
            request_kind="hint",
            request_hash="x",
            payload=payload(),
            expires_at=NOW + timedelta(seconds=600),
        )
        cache = ResponseCache(fast_store=fast_store, durable_store=durable_store, clock=lambda: NOW)

        assert await cache.get(FINGERPRINT) == payload()
        assert fast_store.ttls[ResponseCache.fast_key(FINGERPRINT)] == 600

    @pytest.mark.asyncio
    async def test_stale_durable_entry_is_a_miss(
        self, fast_store: InMemoryFastStore, durable_store: InMemoryDurableStore
    ) -> None:
        durable_store.records[FINGERPRINT] = DurableCacheRecord(
            fingerprint=FINGERPRINT,
            request_kind="hint",
            request_hash="x",
            payload=payload(),
            expires_at=NOW - timedelta(seconds=1),
        )
        cache = ResponseCache(fast_store=fast_store, durable_store=durable_store, clock=lambda: NOW)

        assert await cache.get(FINGERPRINT) is None
        assert fast_store.data == {}

    @pytest.mark.asyncio
    async def test_durable_write_failure_does_not_fail_put(
        self, fast_store: InMemoryFastStore, durable_store: InMemoryDurableStore
    ) -> None:
        """Test the fast tier is still written when the durable tier is down."""
        durable_store.available = False
        cache = ResponseCache(fast_store=fast_store, durable_store=durable_store, clock=lambda: NOW)

        await cache.put(FINGERPRINT, payload(), ttl=3600, kind="hint", prompt_text="p")

        assert await cache.get(FINGERPRINT) == payload()

    @pytest.mark.asyncio
    async def test_health_reports_disabled_tiers_as_none(self, fast_store: InMemoryFastStore) -> None:
        cache = ResponseCache(fast_store=fast_store)
        assert await cache.is_healthy() == {"fast_tier": True, "durable_tier": None}
