"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from .requests import CamelModel


class UsageItem(CamelModel):
    """Token usage figures for one user."""

    total_tokens_used: int = Field(..., description="Lifetime tokens consumed", ge=0)
    today_tokens_used: int = Field(..., description="Tokens consumed in the current window", ge=0)
    daily_limit: int = Field(..., description="Configured daily token limit", ge=0)
    remaining_today: int = Field(..., description="Tokens left today", ge=0)
    member_since: datetime | None = Field(None, description="When the user record was created")


class UsageResponse(CamelModel):
    """Response DTO for GET /ai/usage."""

    usage: UsageItem


class HintResponse(CamelModel):
    """Response DTO for POST /ai/hint."""

    hint: str = Field(..., description="Hint text")
    level: int = Field(..., description="Hint level 1-3")
    card_id: str | None = None


class ExplanationResponse(CamelModel):
    """Response DTO for POST /ai/explain."""

    explanation: str = Field(..., description="Explanation text")
    card_id: str | None = None


class QuizCardItem(BaseModel):
    """One generated quiz card, in the card table's column naming."""

    front: str
    back: str
    difficulty: int = Field(..., ge=1, le=5)
    is_quiz: bool
    options: list[str] = Field(default_factory=list)
    correct_option: int = Field(0, ge=0, le=3)


class GenerateQuizResponse(CamelModel):
    """Response DTO for POST /ai/generate-quiz."""

    quiz: list[QuizCardItem]
    topic: str
    tokens_used: int = Field(..., description="Tokens charged for this request", ge=0)
    remaining_tokens: int = Field(..., description="Tokens left today", ge=0)
    from_cache: bool = Field(False, description="Whether the quiz was served from cache")
    degraded: bool = Field(False, description="Whether generic fallback cards were served")


class CardContent(BaseModel):
    front: str
    back: str


class ImprovedCard(CardContent):
    changes: str = ""


class ImproveCardResponse(CamelModel):
    """Response DTO for POST /ai/improve-card."""

    improved: ImprovedCard
    original: CardContent
    improvement_type: str


class HealthCheckResponse(CamelModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'degraded'")
    fast_tier_healthy: bool | None = Field(
        None, description="Whether the fast tier is reachable (None when disabled)"
    )
    durable_tier_healthy: bool | None = Field(
        None, description="Whether the durable tier is reachable (None when disabled)"
    )
    provider_healthy: bool = Field(..., description="Whether the generation provider is reachable")
