"""Quiz Cache - Cache-first, quota-aware AI generation for study cards.

This package provides a layered architecture for acquiring AI responses:

Layers:
    - protocols: Interface contracts (FastStore, DurableCacheStore, UserStore, GenerationProvider)
    - repositories: Data access implementations (Redis, SQLAlchemy, OpenAI, Ollama)
    - services: Business logic (ResponseOrchestrator and its collaborators)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from quizcache.services import StudyAssistant

    result = await assistant.generate_cards("Photosynthesis", count=5, difficulty=3)
    ```

For HTTP API:
    ```python
    from quizcache.api.app import app
    ```
"""

from quizcache.config import get_redis_client, settings
from quizcache.entities import (
    GeneratedCard,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    RequestKind,
)
from quizcache.errors import (
    ProviderPermanentError,
    ProviderTransientError,
    QuizCacheError,
    QuotaExceededError,
    ValidationFailureError,
)
from quizcache.handlers import AIHandler
from quizcache.protocols import DurableCacheStore, FastStore, GenerationProvider, UserStore
from quizcache.repositories import RedisFastStore
from quizcache.services import (
    GenerationClient,
    QuotaLedger,
    RequestBatcher,
    ResponseCache,
    ResponseOrchestrator,
    StudyAssistant,
)

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "DurableCacheStore",
    "FastStore",
    "GenerationProvider",
    "UserStore",
    # Services (business logic)
    "GenerationClient",
    "QuotaLedger",
    "RequestBatcher",
    "ResponseCache",
    "ResponseOrchestrator",
    "StudyAssistant",
    # Handlers (HTTP)
    "AIHandler",
    # Repositories (data access)
    "RedisFastStore",
    # Entities (domain models)
    "GeneratedCard",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResult",
    "RequestKind",
    # Errors
    "ProviderPermanentError",
    "ProviderTransientError",
    "QuizCacheError",
    "QuotaExceededError",
    "ValidationFailureError",
]
