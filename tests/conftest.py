"""Pytest configuration and in-memory fakes for quizcache tests."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from quizcache.entities import (
    DurableCacheRecord,
    GenerationOptions,
    GenerationResponse,
    UserQuota,
)
from quizcache.errors import (
    CacheUnavailableError,
    QuotaStoreUnavailableError,
    StoreUnavailableError,
    UserNotFoundError,
)
from quizcache.services import (
    GenerationClient,
    QuotaLedger,
    ResponseCache,
    ResponseOrchestrator,
    RetryPolicy,
)


class InMemoryFastStore:
    """FastStore backed by a dict; ``available=False`` simulates an outage."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailableError("fast store down")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl

    async def increment(self, key: str, amount: int, ttl: int) -> int:
        self._check()
        new_value = int(self.data.get(key, "0")) + amount
        self.data[key] = str(new_value)
        self.ttls.setdefault(key, ttl)
        return new_value

    async def health_check(self) -> bool:
        return self.available


class InMemoryDurableStore:
    """DurableCacheStore backed by a dict."""

    def __init__(self) -> None:
        self.records: dict[str, DurableCacheRecord] = {}
        self.available = True

    async def get(self, fingerprint: str) -> DurableCacheRecord | None:
        if not self.available:
            raise CacheUnavailableError("durable store down")
        return self.records.get(fingerprint)

    async def upsert(self, record: DurableCacheRecord) -> None:
        if not self.available:
            raise CacheUnavailableError("durable store down")
        self.records[record.fingerprint] = record

    async def health_check(self) -> bool:
        return self.available


class InMemoryUserStore:
    """UserStore with per-user limits and cumulative counters."""

    def __init__(self, users: dict[str, int] | None = None) -> None:
        self.limits: dict[str, int] = dict(users or {})
        self.cumulative: dict[str, int] = {user_id: 0 for user_id in self.limits}
        self.available = True

    async def get_user_limit(self, user_id: str) -> UserQuota:
        if not self.available:
            raise QuotaStoreUnavailableError("user store down")
        if user_id not in self.limits:
            raise UserNotFoundError(user_id)
        return UserQuota(
            limit=self.limits[user_id],
            cumulative_used=self.cumulative[user_id],
            created_at=datetime(2025, 1, 8, tzinfo=timezone.utc),
        )

    async def increment_cumulative(self, user_id: str, tokens: int) -> None:
        if not self.available:
            raise QuotaStoreUnavailableError("user store down")
        if user_id not in self.limits:
            raise UserNotFoundError(user_id)
        self.cumulative[user_id] += tokens


class ScriptedProvider:
    """GenerationProvider that replays a script of responses and exceptions.

    When the script runs out, the last entry is repeated.
    """

    def __init__(self, *outcomes: GenerationResponse | Exception | str) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, GenerationOptions]] = []
        self.closed = False

    @property
    def model_name(self) -> str:
        return "scripted"

    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        self.calls.append((prompt, options))
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, str):
            return GenerationResponse(content=outcome, tokens_consumed=42)
        return outcome

    async def is_available(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fast_store() -> InMemoryFastStore:
    return InMemoryFastStore()


@pytest.fixture
def durable_store() -> InMemoryDurableStore:
    return InMemoryDurableStore()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore({"user-1": 10000, "user-2": 500})


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(
    fast_store: InMemoryFastStore,
    durable_store: InMemoryDurableStore,
    user_store: InMemoryUserStore,
    recording_sleep: RecordingSleep,
) -> Callable[..., ResponseOrchestrator]:
    """Build an orchestrator over the in-memory fakes around a given provider."""

    def _make(provider: ScriptedProvider, **kwargs) -> ResponseOrchestrator:
        kwargs.setdefault("retry_policy", RetryPolicy(max_attempts=3, backoff_seconds=1.0, sleep=recording_sleep))
        kwargs.setdefault("enforce_quota", False)
        kwargs.setdefault("batched_kinds", ())
        return ResponseOrchestrator(
            cache=ResponseCache(fast_store=fast_store, durable_store=durable_store),
            ledger=QuotaLedger(fast_store=fast_store, user_store=user_store, default_daily_limit=10000),
            client=GenerationClient(provider=provider, timeout=5.0, max_tokens_per_request=1000),
            **kwargs,
        )

    return _make
