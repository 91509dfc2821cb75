import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis.asyncio as aioredis
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

load_dotenv()

VALID_PROVIDERS = ("openai", "ollama")
VALID_ENFORCEMENT = ("advisory", "enforce")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Fast tier (Redis)
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    fast_tier_enabled: bool = _env_bool("FAST_TIER_ENABLED", "true")

    # Durable tier / user records
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///quizcache.db")

    # Generation provider
    generation_provider: str = os.getenv("GENERATION_PROVIDER", "openai")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")

    # Generation limits and retry
    max_tokens_per_request: int = int(os.getenv("MAX_TOKENS_PER_REQUEST", "1000"))
    generation_timeout: float = float(os.getenv("GENERATION_TIMEOUT", "30"))
    generation_max_attempts: int = int(os.getenv("GENERATION_MAX_ATTEMPTS", "3"))
    retry_backoff_seconds: float = float(os.getenv("RETRY_BACKOFF_SECONDS", "1.0"))

    # Quota
    daily_token_limit: int = int(os.getenv("DAILY_TOKEN_LIMIT", "10000"))
    quota_enforcement: str = os.getenv("QUOTA_ENFORCEMENT", "advisory")

    # Batching
    batching_enabled: bool = _env_bool("BATCHING_ENABLED", "false")
    batched_kinds: tuple[str, ...] = field(
        default_factory=lambda: _env_list("BATCHED_KINDS", "cards,hint,explanation,improvement")
    )
    batch_window_seconds: float = float(os.getenv("BATCH_WINDOW_SECONDS", "1.0"))
    batch_max_size: int = int(os.getenv("BATCH_MAX_SIZE", "10"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = _env_bool("API_RELOAD", "true")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def enforce_quota(self) -> bool:
        """Check if quota checks should block generation.

        Returns:
            True when QUOTA_ENFORCEMENT is "enforce", False when advisory
        """
        return self.quota_enforcement == "enforce"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.generation_provider not in VALID_PROVIDERS:
            raise ValueError(
                f"GENERATION_PROVIDER must be one of {list(VALID_PROVIDERS)}, "
                f"got {self.generation_provider!r}"
            )

        if self.quota_enforcement not in VALID_ENFORCEMENT:
            raise ValueError(
                f"QUOTA_ENFORCEMENT must be one of {list(VALID_ENFORCEMENT)}, "
                f"got {self.quota_enforcement!r}"
            )

        if self.max_tokens_per_request <= 0:
            raise ValueError("MAX_TOKENS_PER_REQUEST must be positive")

        if self.generation_max_attempts < 1:
            raise ValueError("GENERATION_MAX_ATTEMPTS must be at least 1")

        if not 0 < self.batch_max_size <= 100:
            raise ValueError("BATCH_MAX_SIZE must be between 1 and 100")

        if self.batch_window_seconds <= 0:
            raise ValueError("BATCH_WINDOW_SECONDS must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the application process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_redis_client() -> aioredis.Redis | None:
    """Create an async Redis client, or None when the fast tier is disabled."""
    if not settings.fast_tier_enabled:
        return None
    return aioredis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )


def get_engine(database_url: str | None = None) -> Engine:
    """Create the SQLAlchemy engine for the durable tier."""
    url = database_url or settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=False)
