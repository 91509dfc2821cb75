"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CachedPayload, DurableCacheRecord
from .card import CardImprovement, GeneratedCard
from .generation import (
    GenerationOptions,
    GenerationRequest,
    GenerationResponse,
    GenerationResult,
    RequestKind,
)
from .quota import HeadroomCheck, UsageSnapshot, UserQuota

__all__ = [
    "CachedPayload",
    "DurableCacheRecord",
    "CardImprovement",
    "GeneratedCard",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResponse",
    "GenerationResult",
    "RequestKind",
    "HeadroomCheck",
    "UsageSnapshot",
    "UserQuota",
]
