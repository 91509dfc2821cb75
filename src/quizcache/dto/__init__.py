"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import ExplainRequest, GenerateQuizRequest, HintRequest, ImproveCardRequest
from .responses import (
    CardContent,
    ExplanationResponse,
    GenerateQuizResponse,
    HealthCheckResponse,
    HintResponse,
    ImproveCardResponse,
    ImprovedCard,
    QuizCardItem,
    UsageItem,
    UsageResponse,
)

__all__ = [
    "ExplainRequest",
    "GenerateQuizRequest",
    "HintRequest",
    "ImproveCardRequest",
    "CardContent",
    "ExplanationResponse",
    "GenerateQuizResponse",
    "HealthCheckResponse",
    "HintResponse",
    "ImproveCardResponse",
    "ImprovedCard",
    "QuizCardItem",
    "UsageItem",
    "UsageResponse",
]
