"""Generation request and result entities."""

from dataclasses import dataclass, field
from enum import Enum

from .card import GeneratedCard
from .quota import HeadroomCheck


class RequestKind(str, Enum):
    """Kinds of generation the acquisition layer serves."""

    CARDS = "cards"
    HINT = "hint"
    EXPLANATION = "explanation"
    IMPROVEMENT = "improvement"


@dataclass(frozen=True)
class GenerationOptions:
    """Provider configuration for a single generation request.

    Attributes:
        max_tokens: Completion token budget requested from the provider
        temperature: Sampling temperature
        structured_output: Ask the provider for JSON object output
        ttl: Cache lifetime in seconds for the produced payload
        system_prompt: Optional system instruction sent with the prompt
    """

    max_tokens: int = 500
    temperature: float = 0.7
    structured_output: bool = False
    ttl: int = 604800
    system_prompt: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """A semantic generation request, the input to fingerprinting.

    ``card_count``, ``topic`` and ``difficulty`` are only meaningful for the
    cards kind; they size the fallback set and default card fields. They are
    already part of ``prompt_text`` and are not fingerprinted separately.
    """

    kind: RequestKind
    prompt_text: str
    options: GenerationOptions = field(default_factory=GenerationOptions)
    requesting_user_id: str | None = None
    card_count: int | None = None
    topic: str | None = None
    difficulty: int | None = None


@dataclass(frozen=True)
class GenerationResponse:
    """Raw text returned by the provider for one call.

    Attributes:
        content: Generated text
        tokens_consumed: Provider-reported total tokens, None when not reported
    """

    content: str
    tokens_consumed: int | None = None


@dataclass(frozen=True)
class GenerationResult:
    """Normalized outcome of ResponseOrchestrator.obtain.

    Attributes:
        content: Normalized payload text (JSON array text for the cards kind)
        tokens_consumed: Tokens attributed to this payload
        from_cache: True when served from either cache tier
        fingerprint: Cache key the payload is stored under
        cards: Validated cards for the cards kind, None otherwise
        degraded: True when built-in fallback content was served
        quota: Headroom check recorded for this request, if one was made
    """

    content: str
    tokens_consumed: int
    from_cache: bool
    fingerprint: str
    cards: tuple[GeneratedCard, ...] | None = None
    degraded: bool = False
    quota: HeadroomCheck | None = None
