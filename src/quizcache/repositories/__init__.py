"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the relational database,
LLM APIs) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis → Valkey, OpenAI → Ollama, etc.)
- Unit testing with in-memory implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from .ollama_provider import OllamaGenerationProvider
from .openai_provider import OpenAIGenerationProvider
from .redis_fast_store import RedisFastStore
from .sql_cache_repository import SqlDurableCacheRepository
from .sql_models import AICacheRecord, UserRecord, create_session_factory, init_database
from .sql_user_repository import SqlUserRepository

__all__ = [
    "AICacheRecord",
    "OllamaGenerationProvider",
    "OpenAIGenerationProvider",
    "RedisFastStore",
    "SqlDurableCacheRepository",
    "SqlUserRepository",
    "UserRecord",
    "create_session_factory",
    "init_database",
]
