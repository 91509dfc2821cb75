"""Cache-first, quota-aware acquisition of generated content.

ResponseOrchestrator is the coordinating core of the package. For every
request it derives the fingerprint, consults the two-tier cache, checks the
user's quota headroom, calls the provider (directly or through the request
batcher), validates and repairs the output with bounded retries, then writes
through to the cache and the ledger.
"""

import asyncio
import json
import logging
import math
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from quizcache.config import settings
from quizcache.entities import (
    CachedPayload,
    GeneratedCard,
    GenerationRequest,
    GenerationResponse,
    GenerationResult,
    HeadroomCheck,
    RequestKind,
)
from quizcache.errors import (
    BatcherClosedError,
    ProviderTransientError,
    QuizCacheError,
    QuotaExceededError,
    ValidationFailureError,
)

from .card_repair import (
    FALLBACK_POOL_SIZE,
    cards_from_json,
    cards_to_json,
    fallback_cards,
    parse_card_array,
    parse_improvement,
    validate_cards,
)
from .fingerprint import fingerprint_request
from .generation_client import GenerationCall, GenerationClient
from .quota_ledger import QuotaLedger
from .request_batcher import RequestBatcher
from .response_cache import ResponseCache

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule for generation attempts.

    Attributes:
        max_attempts: Total attempts, including the first
        backoff_seconds: Delay after the first failed attempt
        multiplier: Growth factor applied to each further delay
        sleep: Awaitable used for the delay; tests inject a recorder
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    multiplier: float = 1.0
    sleep: Sleep = asyncio.sleep

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.generation_max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * self.multiplier ** (attempt - 1)


@dataclass(frozen=True)
class _Acquired:
    content: str
    tokens: int
    cards: list[GeneratedCard] | None = None
    degraded: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def estimate_tokens(prompt_text: str, max_tokens: int, ceiling: int) -> int:
    """Approximate cost of a request: a quarter token per character plus the budget.

    Args:
        prompt_text: The full prompt
        max_tokens: Completion budget
        ceiling: Per-request maximum

    Returns:
        ``min(ceil(len(prompt_text) / 4) + max_tokens, ceiling)``
    """
    return min(math.ceil(len(prompt_text) / 4) + max_tokens, ceiling)


class ResponseOrchestrator:
    """Coordinates cache, quota ledger and generation for one request at a time.

    Many ``obtain`` calls may run concurrently; the orchestrator holds no
    per-request state. Concurrent misses on the same fingerprint are not
    de-duplicated: each calls the provider and the last cache write wins.

    Example:
        ```python
        orchestrator = ResponseOrchestrator(
            cache=ResponseCache(fast_store=store),
            ledger=QuotaLedger(fast_store=store, user_store=users),
            client=GenerationClient(provider=provider),
        )
        result = await orchestrator.obtain(request)
        if result.from_cache:
            ...
        ```
    """

    def __init__(
        self,
        cache: ResponseCache,
        ledger: QuotaLedger,
        client: GenerationClient,
        batcher: RequestBatcher | None = None,
        batched_kinds: Iterable[RequestKind | str] | None = None,
        retry_policy: RetryPolicy | None = None,
        enforce_quota: bool | None = None,
        max_tokens_per_request: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            cache: Two-tier response cache
            ledger: Per-user quota ledger
            client: Generation client
            batcher: Optional request batcher in front of the client
            batched_kinds: Kinds routed through the batcher. Defaults to settings.
            retry_policy: Attempts and backoff. Defaults to settings.
            enforce_quota: Raise QuotaExceededError instead of only logging.
                Defaults to settings.
            max_tokens_per_request: Ceiling for the cost estimate. Defaults to settings.
            clock: Source of ``produced_at`` timestamps
        """
        self._cache = cache
        self._ledger = ledger
        self._client = client
        self._batcher = batcher
        kinds = batched_kinds if batched_kinds is not None else settings.batched_kinds
        self._batched_kinds = frozenset(RequestKind(kind) for kind in kinds)
        self._retry = retry_policy or RetryPolicy.from_settings()
        self._enforce_quota = settings.enforce_quota if enforce_quota is None else enforce_quota
        self._max_tokens = max_tokens_per_request or settings.max_tokens_per_request
        self._clock = clock

    async def obtain(self, request: GenerationRequest) -> GenerationResult:
        """Return content for a request, from cache or from the provider.

        Business logic:
        1. Fingerprint the request and look it up in the cache; a hit is
           returned without touching the quota ledger
        2. Estimate the cost and check the user's headroom
        3. Generate, validate and repair with bounded retries
        4. Write the payload to the cache (never for fallback content)
        5. Record consumed tokens against the user

        Args:
            request: The semantic generation request

        Returns:
            GenerationResult with normalized content

        Raises:
            QuotaExceededError: Only when quota enforcement is enabled
            UserNotFoundError: If the requesting user has no record
            ProviderTransientError: For non-cards kinds
            ProviderPermanentError: Never retried, for every kind
            ValidationFailureError: For non-cards kinds after all attempts
        """
        fingerprint = fingerprint_request(request)

        cached = await self._from_cache(request, fingerprint)
        if cached is not None:
            return cached

        logger.info("Cache miss for %s", fingerprint)
        estimate = self.estimate_tokens(request)
        quota = await self._check_quota(request, estimate)

        acquired = await self._acquire(request, estimate)

        if acquired.degraded:
            logger.warning("Serving fallback content for %s, not caching", fingerprint)
        else:
            payload = CachedPayload(
                content=acquired.content,
                tokens_consumed=acquired.tokens,
                produced_at=self._clock(),
            )
            await self._cache.put(
                fingerprint,
                payload,
                ttl=request.options.ttl,
                kind=request.kind.value,
                prompt_text=request.prompt_text,
            )

        if request.requesting_user_id is not None:
            await self._ledger.record(request.requesting_user_id, acquired.tokens)

        return GenerationResult(
            content=acquired.content,
            tokens_consumed=acquired.tokens,
            from_cache=False,
            fingerprint=fingerprint,
            cards=tuple(acquired.cards) if acquired.cards is not None else None,
            degraded=acquired.degraded,
            quota=quota,
        )

    def estimate_tokens(self, request: GenerationRequest) -> int:
        """Estimated cost of a request, clipped to the per-request ceiling."""
        return estimate_tokens(request.prompt_text, request.options.max_tokens, self._max_tokens)

    async def _from_cache(
        self, request: GenerationRequest, fingerprint: str
    ) -> GenerationResult | None:
        payload = await self._cache.get(fingerprint)
        if payload is None:
            return None

        cards = None
        if request.kind is RequestKind.CARDS:
            try:
                cards = tuple(cards_from_json(payload.content, request.difficulty or 3))
            except ValidationFailureError as e:
                logger.warning("Cached cards for %s are unreadable, regenerating: %s", fingerprint, e)
                return None

        logger.info("Cache hit for %s", fingerprint)
        return GenerationResult(
            content=payload.content,
            tokens_consumed=payload.tokens_consumed,
            from_cache=True,
            fingerprint=fingerprint,
            cards=cards,
        )

    async def _check_quota(self, request: GenerationRequest, estimate: int) -> HeadroomCheck | None:
        user_id = request.requesting_user_id
        if user_id is None:
            return None

        check = await self._ledger.check_headroom(user_id, estimate)
        if check.would_exceed:
            logger.warning(
                "User %s would exceed daily limit (%d used + %d estimated > %d)",
                user_id,
                check.current_usage,
                estimate,
                check.daily_limit,
            )
            if self._enforce_quota:
                raise QuotaExceededError(check.current_usage, check.daily_limit, estimate)
        return check

    async def _acquire(self, request: GenerationRequest, estimate: int) -> _Acquired:
        max_attempts = self._retry.max_attempts
        tokens_spent = 0
        last_error: QuizCacheError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._generate(request)
            except ProviderTransientError as e:
                if request.kind is not RequestKind.CARDS:
                    raise
                last_error = e
                logger.warning(
                    "Generation attempt %d/%d for %s failed: %s",
                    attempt,
                    max_attempts,
                    request.kind.value,
                    e,
                )
            else:
                tokens_spent += (
                    response.tokens_consumed if response.tokens_consumed is not None else estimate
                )
                try:
                    content, cards = self._validate(request, response.content)
                    return _Acquired(content=content, tokens=tokens_spent, cards=cards)
                except ValidationFailureError as e:
                    last_error = e
                    logger.warning(
                        "Invalid %s output on attempt %d/%d: %s",
                        request.kind.value,
                        attempt,
                        max_attempts,
                        e,
                    )

            if attempt < max_attempts:
                await self._retry.sleep(self._retry.delay_for(attempt))

        if request.kind is RequestKind.CARDS:
            count = request.card_count or FALLBACK_POOL_SIZE
            cards = fallback_cards(count, request.topic, request.difficulty or 3)
            logger.error(
                "Generation failed after %d attempts, using %d fallback cards: %s",
                max_attempts,
                len(cards),
                last_error,
            )
            return _Acquired(
                content=cards_to_json(cards), tokens=tokens_spent, cards=cards, degraded=True
            )

        logger.error(
            "Generation of %s failed validation after %d attempts", request.kind.value, max_attempts
        )
        if last_error is None:
            raise ValidationFailureError(f"No valid {request.kind.value} output")
        raise last_error

    async def _generate(self, request: GenerationRequest) -> GenerationResponse:
        if (
            self._batcher is not None
            and not self._batcher.closed
            and request.kind in self._batched_kinds
        ):
            try:
                return await self._batcher.submit(
                    GenerationCall(request.prompt_text, request.options)
                )
            except BatcherClosedError:
                logger.info("Batcher closed before dispatch, calling provider directly")
        return await self._client.generate(request.prompt_text, request.options)

    def _validate(
        self, request: GenerationRequest, content: str
    ) -> tuple[str, list[GeneratedCard] | None]:
        if request.kind is RequestKind.CARDS:
            cards = validate_cards(
                parse_card_array(content),
                default_difficulty=request.difficulty or 3,
                limit=request.card_count,
            )
            return cards_to_json(cards), cards

        if request.kind is RequestKind.IMPROVEMENT:
            improvement = parse_improvement(content)
            normalized = json.dumps(
                {
                    "front": improvement.front,
                    "back": improvement.back,
                    "changes": improvement.changes,
                },
                ensure_ascii=False,
            )
            return normalized, None

        text = content.strip()
        if not text:
            raise ValidationFailureError(f"Empty {request.kind.value} response", raw_content=content)
        return text, None

    @property
    def cache(self) -> ResponseCache:
        """Get the response cache (for testing)."""
        return self._cache

    @property
    def ledger(self) -> QuotaLedger:
        """Get the quota ledger (for testing)."""
        return self._ledger

    @property
    def client(self) -> GenerationClient:
        """Get the generation client (for testing)."""
        return self._client

    @property
    def batcher(self) -> RequestBatcher | None:
        return self._batcher
