"""Request DTOs for API endpoints.

Field names are snake_case in Python and camelCase on the wire
(``questionCount``, ``userAnswer``); both spellings are accepted.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases and stripped strings."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class HintRequest(CamelModel):
    """Request DTO for a progressive hint."""

    card_id: str | None = Field(None, description="Card the hint is for")
    level: int = Field(..., description="1 = subtle, 2 = moderate, 3 = strong", ge=1, le=3)
    front: str = Field(..., description="Card question", min_length=1, max_length=1000)
    back: str = Field(..., description="Card answer", min_length=1, max_length=1000)


class ExplainRequest(CamelModel):
    """Request DTO for explaining an incorrect answer."""

    card_id: str | None = Field(None, description="Card being explained")
    front: str = Field(..., description="Card question", min_length=1, max_length=1000)
    back: str = Field(..., description="Correct answer", min_length=1, max_length=1000)
    user_answer: str | None = Field(
        None, description="What the user answered", max_length=1000
    )


class GenerateQuizRequest(CamelModel):
    """Request DTO for generating quiz cards from a topic."""

    topic: str = Field(..., description="Quiz topic", min_length=1, max_length=500)
    question_count: int = Field(..., description="Number of questions", ge=1, le=20)
    difficulty: int = Field(3, description="Difficulty level 1-5", ge=1, le=5)


class ImproveCardRequest(CamelModel):
    """Request DTO for improving an existing card."""

    front: str = Field(..., description="Card question", min_length=1, max_length=1000)
    back: str = Field(..., description="Card answer", min_length=1, max_length=1000)
    improvement_type: Literal["clarity", "difficulty", "accuracy"] = Field(
        ..., description="What to improve"
    )
