"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Request

from quizcache.config import configure_logging, get_engine, settings
from quizcache.handlers import AIHandler
from quizcache.protocols import GenerationProvider
from quizcache.repositories import (
    OllamaGenerationProvider,
    OpenAIGenerationProvider,
    RedisFastStore,
    SqlDurableCacheRepository,
    SqlUserRepository,
    create_session_factory,
    init_database,
)
from quizcache.services import (
    GenerationClient,
    QuotaLedger,
    RequestBatcher,
    ResponseCache,
    ResponseOrchestrator,
    StudyAssistant,
)

logger = logging.getLogger(__name__)


def create_provider(name: str | None = None) -> GenerationProvider:
    """Build the configured generation provider.

    Args:
        name: "openai" or "ollama". Defaults to settings.generation_provider.

    Returns:
        The provider adapter

    Raises:
        ProviderAuthError: If OpenAI is selected without an API key
        ValueError: For an unknown provider name
    """
    name = name or settings.generation_provider
    if name == "openai":
        return OpenAIGenerationProvider.create()
    if name == "ollama":
        return OllamaGenerationProvider.create()
    raise ValueError(f"Unknown generation provider: {name!r}")


def get_handler(request: Request) -> AIHandler:
    """Dependency injection for AIHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AIHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "ai_handler", None)
    if handler is None:
        raise RuntimeError("AIHandler not initialized. Check lifespan setup.")
    return handler


def get_user_id(x_user_id: Annotated[str, Header(min_length=1)]) -> str:
    """Requesting user, as set by the authentication layer in front of this API."""
    return x_user_id.strip()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Repositories (Redis fast tier, SQL durable tier, provider)
    2. Core services (cache, ledger, client, batcher, orchestrator)
    3. Handler (HTTP endpoints) - stored in app.state.ai_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the batcher, the provider and the store connections
    """
    configure_logging()

    fast_store = RedisFastStore.create()
    if fast_store is None:
        logger.warning("Fast tier disabled, every request will miss the cache")
    elif not await fast_store.health_check():
        logger.warning("Redis unreachable at %s, running in degraded mode", settings.redis_url)

    engine = get_engine()
    init_database(engine)
    session_factory = create_session_factory(engine)
    durable_store = SqlDurableCacheRepository(session_factory)
    user_store = SqlUserRepository(session_factory)

    provider = create_provider()
    client = GenerationClient(provider=provider)
    batcher = RequestBatcher(dispatch=client.generate_many) if settings.batching_enabled else None

    cache = ResponseCache(fast_store=fast_store, durable_store=durable_store)
    ledger = QuotaLedger(fast_store=fast_store, user_store=user_store)
    orchestrator = ResponseOrchestrator(cache=cache, ledger=ledger, client=client, batcher=batcher)
    assistant = StudyAssistant(orchestrator=orchestrator, ledger=ledger)

    app.state.ai_handler = AIHandler(assistant=assistant, cache=cache, client=client)
    app.state.assistant = assistant

    logger.info(
        "quizcache started: provider=%s model=%s batching=%s quota=%s",
        settings.generation_provider,
        provider.model_name,
        settings.batching_enabled,
        settings.quota_enforcement,
    )

    yield

    if batcher is not None:
        await batcher.close()
    await client.close()
    if fast_store is not None:
        await fast_store.close()
    engine.dispose()

    del app.state.ai_handler
    del app.state.assistant
    logger.info("quizcache shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[AIHandler, Depends(get_handler)]
UserIdDep = Annotated[str, Depends(get_user_id)]
