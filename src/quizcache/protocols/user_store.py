"""User quota record protocol.

The core does not own the user schema; it only needs a user's configured
daily limit and an authoritative cumulative usage counter.
"""

from typing import Protocol, runtime_checkable

from quizcache.entities import UserQuota


@runtime_checkable
class UserStore(Protocol):
    """Protocol for the persistent user record store.

    Implementations raise ``UserNotFoundError`` for unknown users and
    ``QuotaStoreUnavailableError`` when the backend cannot be reached.
    """

    async def get_user_limit(self, user_id: str) -> UserQuota:
        """Read a user's limit and cumulative usage.

        Args:
            user_id: The user identifier

        Returns:
            The user's quota record
        """
        ...

    async def increment_cumulative(self, user_id: str, tokens: int) -> None:
        """Add tokens to the user's lifetime usage.

        Args:
            user_id: The user identifier
            tokens: Tokens to add (non-negative)
        """
        ...
