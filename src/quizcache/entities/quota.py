"""Quota ledger entities."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserQuota:
    """A user's durable quota record.

    Attributes:
        limit: Configured daily token limit
        cumulative_used: Lifetime tokens consumed (monotonic)
        created_at: When the user record was created, if known
    """

    limit: int
    cumulative_used: int
    created_at: datetime | None = None


@dataclass(frozen=True)
class HeadroomCheck:
    """Outcome of QuotaLedger.check_headroom.

    ``usage_known`` is False when the fast-tier counter could not be read; in
    that case ``current_usage`` is 0 and ``would_exceed`` is always False.
    """

    current_usage: int
    daily_limit: int
    estimated_tokens: int
    would_exceed: bool
    usage_known: bool = True


@dataclass(frozen=True)
class UsageSnapshot:
    """Read-only usage report combining the fast and durable tiers."""

    total_consumed: int
    today_consumed: int
    daily_limit: int
    remaining_today: int
    member_since: datetime | None = None
