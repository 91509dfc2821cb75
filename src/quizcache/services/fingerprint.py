"""Deterministic fingerprints for generation requests.

A fingerprint is the cache key for a request: ``"{kind}:{sha256 hex}"`` over
a canonical JSON rendering of (prompt, kind, options). Canonical means keys
are sorted at every level and volatile fields are dropped, so two requests
that are equal by value always share a fingerprint.
"""

import hashlib
import json
from collections.abc import Mapping
from dataclasses import asdict
from enum import Enum
from typing import Any

from quizcache.entities import GenerationOptions, GenerationRequest, RequestKind

# Fields that vary per call without changing what the provider produces.
VOLATILE_OPTION_KEYS = frozenset(
    {
        "ttl",
        "timestamp",
        "requested_at",
        "request_id",
        "requesting_user_id",
        "user_id",
    }
)


def normalize_options(options: GenerationOptions | Mapping[str, Any] | None) -> dict[str, Any]:
    """Reduce options to the fields that influence generated content."""
    if options is None:
        return {}
    raw = asdict(options) if isinstance(options, GenerationOptions) else dict(options)
    return {
        key: value
        for key, value in raw.items()
        if key not in VOLATILE_OPTION_KEYS and value is not None
    }


def canonical_json(prompt_text: str, kind: RequestKind | str, options: Any) -> str:
    kind_value = kind.value if isinstance(kind, Enum) else str(kind)
    document = {
        "prompt": prompt_text,
        "kind": kind_value,
        "options": normalize_options(options),
    }
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_fingerprint(
    prompt_text: str,
    kind: RequestKind | str,
    options: GenerationOptions | Mapping[str, Any] | None = None,
) -> str:
    """Compute the cache key for a (prompt, kind, options) triple.

    Args:
        prompt_text: The full prompt sent to the provider
        kind: Request kind
        options: Typed options or a plain mapping; key order is irrelevant

    Returns:
        ``"{kind}:{64 hex chars}"``
    """
    kind_value = kind.value if isinstance(kind, Enum) else str(kind)
    digest = hashlib.sha256(canonical_json(prompt_text, kind, options).encode("utf-8"))
    return f"{kind_value}:{digest.hexdigest()}"


def fingerprint_request(request: GenerationRequest) -> str:
    """Compute the cache key for a GenerationRequest."""
    return compute_fingerprint(request.prompt_text, request.kind, request.options)


def prompt_hash(prompt_text: str) -> str:
    """Content hash of a prompt, kept on durable entries for audit."""
    return hashlib.md5(prompt_text.encode("utf-8")).hexdigest()
