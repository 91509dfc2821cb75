"""Per-user token quota accounting.

Daily usage lives in the fast tier as a counter that expires 24 hours after
the first consumption of the window. Lifetime usage lives in the durable user
record and is authoritative. The two writes are not transactional; the daily
figure is an approximation and the ledger never blocks on it.
"""

import logging

from quizcache.config import settings
from quizcache.entities import HeadroomCheck, UsageSnapshot, UserQuota
from quizcache.errors import StoreUnavailableError, UserNotFoundError
from quizcache.protocols import FastStore, UserStore

logger = logging.getLogger(__name__)

DAILY_WINDOW_SECONDS = 86400


class QuotaLedger:
    """Tracks daily and cumulative token consumption per user.

    Example:
        ```python
        ledger = QuotaLedger(fast_store=store, user_store=users)
        check = await ledger.check_headroom("user-1", estimated_tokens=350)
        if not check.would_exceed:
            ...
        await ledger.record("user-1", 312)
        ```
    """

    def __init__(
        self,
        fast_store: FastStore | None,
        user_store: UserStore,
        default_daily_limit: int | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            fast_store: Store for daily counters. None disables daily tracking.
            user_store: Durable user records (limits, cumulative usage)
            default_daily_limit: Limit used when user records cannot be read.
                Defaults to settings.
        """
        self._fast = fast_store
        self._users = user_store
        self._default_limit = default_daily_limit or settings.daily_token_limit

    @staticmethod
    def daily_key(user_id: str) -> str:
        """Fast-tier key of a user's daily counter."""
        return f"tokens:user:{user_id}:daily"

    async def check_headroom(self, user_id: str, estimated_tokens: int) -> HeadroomCheck:
        """Check whether a request would push the user past their daily limit.

        Args:
            user_id: The user identifier
            estimated_tokens: Estimated cost of the pending request

        Returns:
            HeadroomCheck; ``would_exceed`` is False whenever usage is unknown

        Raises:
            UserNotFoundError: If the user has no record
        """
        quota = await self._load_quota(user_id)
        current = await self._read_daily(user_id)
        usage_known = current is not None
        current_usage = current or 0

        would_exceed = usage_known and current_usage + estimated_tokens > quota.limit
        return HeadroomCheck(
            current_usage=current_usage,
            daily_limit=quota.limit,
            estimated_tokens=estimated_tokens,
            would_exceed=would_exceed,
            usage_known=usage_known,
        )

    async def record(self, user_id: str, tokens: int) -> None:
        """Record consumed tokens in both tiers.

        Neither write is allowed to fail the caller; the generation has
        already happened by the time this runs.

        Args:
            user_id: The user identifier
            tokens: Tokens consumed
        """
        if tokens <= 0:
            return

        if self._fast is not None:
            try:
                new_total = await self._fast.increment(
                    self.daily_key(user_id), tokens, DAILY_WINDOW_SECONDS
                )
                logger.debug("User %s daily usage now %d", user_id, new_total)
            except StoreUnavailableError as e:
                logger.warning("Daily usage not recorded for user %s: %s", user_id, e)

        try:
            await self._users.increment_cumulative(user_id, tokens)
        except (StoreUnavailableError, UserNotFoundError) as e:
            logger.error(
                "Cumulative usage not recorded for user %s (%d tokens): %s", user_id, tokens, e
            )

    async def usage_snapshot(self, user_id: str) -> UsageSnapshot:
        """Report a user's usage.

        Args:
            user_id: The user identifier

        Returns:
            UsageSnapshot combining durable totals and today's counter

        Raises:
            UserNotFoundError: If the user has no record
        """
        quota = await self._load_quota(user_id)
        today = await self._read_daily(user_id) or 0

        return UsageSnapshot(
            total_consumed=quota.cumulative_used,
            today_consumed=today,
            daily_limit=quota.limit,
            remaining_today=max(0, quota.limit - today),
            member_since=quota.created_at,
        )

    async def _load_quota(self, user_id: str) -> UserQuota:
        try:
            return await self._users.get_user_limit(user_id)
        except StoreUnavailableError as e:
            logger.warning(
                "User record unavailable for %s, using default limit %d: %s",
                user_id,
                self._default_limit,
                e,
            )
            return UserQuota(limit=self._default_limit, cumulative_used=0)

    async def _read_daily(self, user_id: str) -> int | None:
        if self._fast is None:
            return None

        try:
            raw = await self._fast.get(self.daily_key(user_id))
        except StoreUnavailableError as e:
            logger.warning("Quota store unavailable, allowing by default: %s", e)
            return None

        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            logger.warning("Ignoring non-integer daily counter for user %s: %r", user_id, raw)
            return None
