"""SQLAlchemy implementation of UserStore."""

import asyncio

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from quizcache.entities import UserQuota
from quizcache.errors import QuotaStoreUnavailableError, UserNotFoundError
from quizcache.utils import as_utc

from .sql_models import UserRecord


class SqlUserRepository:
    """Reads limits from and accumulates usage into the ``users`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def get_user_limit(self, user_id: str) -> UserQuota:
        """Read a user's daily limit and lifetime usage.

        Args:
            user_id: The user identifier

        Returns:
            The user's quota record

        Raises:
            UserNotFoundError: If the user has no row
            QuotaStoreUnavailableError: If the database cannot be read
        """
        try:
            row = await asyncio.to_thread(self._get_sync, user_id)
        except SQLAlchemyError as e:
            raise QuotaStoreUnavailableError(f"User record read failed: {e}", e) from e

        if row is None:
            raise UserNotFoundError(user_id)
        return row

    async def increment_cumulative(self, user_id: str, tokens: int) -> None:
        """Add tokens to ``users.tokens_used`` with a single UPDATE.

        Args:
            user_id: The user identifier
            tokens: Tokens to add

        Raises:
            UserNotFoundError: If no row was updated
            QuotaStoreUnavailableError: If the database cannot be written
        """
        if tokens < 0:
            raise ValueError("Cumulative usage never decreases; tokens must be >= 0")

        try:
            updated = await asyncio.to_thread(self._increment_sync, user_id, tokens)
        except SQLAlchemyError as e:
            raise QuotaStoreUnavailableError(f"User usage update failed: {e}", e) from e

        if updated == 0:
            raise UserNotFoundError(user_id)

    def _get_sync(self, user_id: str) -> UserQuota | None:
        with self._session_factory() as session:
            row = session.scalars(select(UserRecord).where(UserRecord.id == user_id)).first()
            if row is None:
                return None
            return UserQuota(
                limit=row.daily_token_limit,
                cumulative_used=row.tokens_used or 0,
                created_at=as_utc(row.created_at) if row.created_at else None,
            )

    def _increment_sync(self, user_id: str, tokens: int) -> int:
        with self._session_factory() as session:
            result = session.execute(
                update(UserRecord)
                .where(UserRecord.id == user_id)
                .values(tokens_used=UserRecord.tokens_used + tokens)
            )
            session.commit()
            return result.rowcount
