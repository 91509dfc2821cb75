"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis → Valkey, OpenAI → Ollama, etc.)
- Unit testing with in-memory implementations
- Clear separation of concerns

Usage:
    ```python
    from quizcache.protocols import FastStore, GenerationProvider

    # Type hints work with any implementation
    store: FastStore = RedisFastStore.create()
    provider: GenerationProvider = OpenAIGenerationProvider.create()
    ```
"""

from .durable_cache_store import DurableCacheStore
from .fast_store import FastStore
from .generation_provider import GenerationProvider
from .user_store import UserStore

__all__ = [
    "DurableCacheStore",
    "FastStore",
    "GenerationProvider",
    "UserStore",
]
