"""SQLAlchemy implementation of DurableCacheStore.

Stores one row per fingerprint in the ``ai_cache`` table. Rows are never
deleted here; readers compare ``expires_at`` to decide staleness.
"""

import asyncio
import logging

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from quizcache.entities import DurableCacheRecord
from quizcache.errors import CacheUnavailableError
from quizcache.utils import as_utc, decode_payload, encode_payload

from .sql_models import AICacheRecord

logger = logging.getLogger(__name__)


class SqlDurableCacheRepository:
    """Durable cache tier backed by a relational database.

    Session work is synchronous SQLAlchemy, run in a worker thread so the
    event loop is never blocked.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the repository.

        Args:
            session_factory: SQLAlchemy session factory bound to the database
        """
        self._session_factory = session_factory

    async def get(self, fingerprint: str) -> DurableCacheRecord | None:
        """Fetch a record by fingerprint.

        Args:
            fingerprint: The cache key

        Returns:
            The record, or None if absent or unreadable
        """
        try:
            return await asyncio.to_thread(self._get_sync, fingerprint)
        except SQLAlchemyError as e:
            raise CacheUnavailableError(f"Durable cache read failed: {e}", e) from e

    async def upsert(self, record: DurableCacheRecord) -> None:
        """Insert or overwrite the row for ``record.fingerprint``.

        Args:
            record: The record to store
        """
        try:
            await asyncio.to_thread(self._upsert_sync, record)
        except SQLAlchemyError as e:
            raise CacheUnavailableError(f"Durable cache write failed: {e}", e) from e

    async def health_check(self) -> bool:
        """Check if the database is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await asyncio.to_thread(self._ping_sync)
            return True
        except SQLAlchemyError as e:
            logger.warning("Durable cache health check failed: %s", e)
            return False

    def _get_sync(self, fingerprint: str) -> DurableCacheRecord | None:
        with self._session_factory() as session:
            row = session.scalars(
                select(AICacheRecord).where(AICacheRecord.cache_key == fingerprint)
            ).first()
            if row is None or row.response is None or row.expires_at is None:
                return None

            try:
                payload = decode_payload(row.response)
            except ValueError as e:
                logger.warning("Ignoring unreadable durable cache row %s: %s", fingerprint, e)
                return None

            return DurableCacheRecord(
                fingerprint=row.cache_key,
                request_kind=row.request_type or "",
                request_hash=row.request_hash or "",
                payload=payload,
                expires_at=as_utc(row.expires_at),
            )

    def _upsert_sync(self, record: DurableCacheRecord) -> None:
        with self._session_factory() as session:
            try:
                self._write_row(session, record)
                session.commit()
            except IntegrityError:
                # Concurrent insert of the same fingerprint; last writer wins.
                session.rollback()
                self._write_row(session, record)
                session.commit()

    @staticmethod
    def _write_row(session: Session, record: DurableCacheRecord) -> None:
        row = session.scalars(
            select(AICacheRecord).where(AICacheRecord.cache_key == record.fingerprint)
        ).first()
        if row is None:
            row = AICacheRecord(cache_key=record.fingerprint)
            session.add(row)

        row.request_type = record.request_kind
        row.request_hash = record.request_hash
        row.response = encode_payload(record.payload)
        row.tokens_used = record.payload.tokens_consumed
        row.created_at = record.payload.produced_at
        row.expires_at = record.expires_at
        session.flush()

    def _ping_sync(self) -> None:
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))
