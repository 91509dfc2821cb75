"""SQLAlchemy models for the durable tier.

Only the columns the acquisition layer reads or writes are mapped. The
``users`` table is owned by the application's CRUD layer; ``init_database``
exists for development and tests.
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(Base):
    """User quota columns."""

    __tablename__ = "users"

    id = Column(String(50), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    tokens_used = Column(Integer, nullable=False, default=0)
    daily_token_limit = Column(Integer, nullable=False, default=10000)


class AICacheRecord(Base):
    """Durable copy of generated responses, keyed by fingerprint."""

    __tablename__ = "ai_cache"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    cache_key = Column(String(255), unique=True, nullable=False)
    request_type = Column(String(50))
    request_hash = Column(String(255))
    response = Column(Text)
    tokens_used = Column(Integer)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_ai_cache_request_type", "request_type"),
        Index("ix_ai_cache_expires_at", "expires_at"),
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(engine: Engine) -> None:
    """Create the mapped tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
