"""Service layer for business logic.

This layer contains the response acquisition core. Services depend on
protocols (interfaces), not concrete implementations, making them testable
and flexible.

Architecture:
    Handler -> StudyAssistant -> ResponseOrchestrator -> ResponseCache / QuotaLedger / GenerationClient
    (HTTP)  -> (Application)  -> (Core)               -> (Protocols -> Repositories)

Usage:
    ```python
    from quizcache.services import ResponseCache, QuotaLedger, GenerationClient, ResponseOrchestrator

    orchestrator = ResponseOrchestrator(
        cache=ResponseCache(fast_store=store, durable_store=durable),
        ledger=QuotaLedger(fast_store=store, user_store=users),
        client=GenerationClient(provider=provider),
    )
    result = await orchestrator.obtain(request)
    ```
"""

from .card_repair import (
    FALLBACK_POOL_SIZE,
    cards_from_json,
    cards_to_json,
    fallback_cards,
    parse_card_array,
    parse_improvement,
    repair_json_array,
    validate_card,
    validate_cards,
)
from .fingerprint import compute_fingerprint, fingerprint_request, prompt_hash
from .generation_client import GenerationCall, GenerationClient
from .orchestrator import ResponseOrchestrator, RetryPolicy, estimate_tokens
from .prompts import KIND_DEFAULTS, KindDefaults
from .quota_ledger import QuotaLedger
from .request_batcher import RequestBatcher
from .response_cache import ResponseCache
from .study_assistant import StudyAssistant

__all__ = [
    "FALLBACK_POOL_SIZE",
    "KIND_DEFAULTS",
    "GenerationCall",
    "GenerationClient",
    "KindDefaults",
    "QuotaLedger",
    "RequestBatcher",
    "ResponseCache",
    "ResponseOrchestrator",
    "RetryPolicy",
    "StudyAssistant",
    "cards_from_json",
    "cards_to_json",
    "compute_fingerprint",
    "estimate_tokens",
    "fallback_cards",
    "fingerprint_request",
    "parse_card_array",
    "parse_improvement",
    "prompt_hash",
    "repair_json_array",
    "validate_card",
    "validate_cards",
]
