"""HTTP handlers for AI study operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from quizcache.dto import (
    CardContent,
    ExplainRequest,
    ExplanationResponse,
    GenerateQuizRequest,
    GenerateQuizResponse,
    HealthCheckResponse,
    HintRequest,
    HintResponse,
    ImproveCardRequest,
    ImproveCardResponse,
    ImprovedCard,
    QuizCardItem,
    UsageItem,
    UsageResponse,
)
from quizcache.errors import (
    ProviderPermanentError,
    ProviderTransientError,
    QuizCacheError,
    QuotaExceededError,
    UserNotFoundError,
    ValidationFailureError,
)
from quizcache.services import GenerationClient, ResponseCache, StudyAssistant

logger = logging.getLogger(__name__)

TOKEN_LIMIT_EXCEEDED = "TOKEN_LIMIT_EXCEEDED"


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """Map a quizcache error onto an HTTP status.

    Args:
        error: The error raised by the service layer
        action: Short description used in the detail, e.g. "generate hint"

    Returns:
        HTTPException to raise from the route
    """
    if isinstance(error, QuotaExceededError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"message": str(error), "type": TOKEN_LIMIT_EXCEEDED},
        )
    if isinstance(error, UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ProviderTransientError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to {action}: AI service temporarily unavailable",
        )
    if isinstance(error, (ProviderPermanentError, ValidationFailureError)):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to {action}: {error}",
        )
    if isinstance(error, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


class AIHandler:
    """HTTP handlers for the /ai endpoints.

    This handler delegates business logic to StudyAssistant
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = AIHandler(assistant=assistant, cache=cache, client=client)

        @app.post("/ai/hint", response_model=HintResponse)
        async def hint(request: HintRequest, user_id: UserIdDep):
            return await handler.hint(request, user_id)
        ```
    """

    def __init__(
        self,
        assistant: StudyAssistant,
        cache: ResponseCache,
        client: GenerationClient,
    ) -> None:
        """Initialize the AI handler.

        Args:
            assistant: Study operations service (required).
            cache: Response cache, for health reporting (required).
            client: Generation client, for health reporting (required).
        """
        self._assistant = assistant
        self._cache = cache
        self._client = client

    async def usage(self, user_id: str) -> UsageResponse:
        """Handle GET /ai/usage requests."""
        try:
            snapshot = await self._assistant.usage(user_id)
        except (QuizCacheError, ValueError) as e:
            logger.error("Get token usage failed for %s: %s", user_id, e)
            raise to_http_exception(e, "get token usage") from e

        return UsageResponse(
            usage=UsageItem(
                total_tokens_used=snapshot.total_consumed,
                today_tokens_used=snapshot.today_consumed,
                daily_limit=snapshot.daily_limit,
                remaining_today=snapshot.remaining_today,
                member_since=snapshot.member_since,
            )
        )

    async def hint(self, request: HintRequest, user_id: str) -> HintResponse:
        """Handle POST /ai/hint requests.

        Raises:
            HTTPException: 429 over quota, 503 provider unavailable,
                502 unusable provider output
        """
        try:
            hint = await self._assistant.generate_hint(
                request.front, request.back, request.level, user_id=user_id
            )
        except (QuizCacheError, ValueError) as e:
            logger.error("Generate hint failed: %s", e)
            raise to_http_exception(e, "generate hint") from e

        return HintResponse(hint=hint, level=request.level, card_id=request.card_id)

    async def explain(self, request: ExplainRequest, user_id: str) -> ExplanationResponse:
        """Handle POST /ai/explain requests."""
        try:
            explanation = await self._assistant.generate_explanation(
                request.front, request.back, request.user_answer, user_id=user_id
            )
        except (QuizCacheError, ValueError) as e:
            logger.error("Generate explanation failed: %s", e)
            raise to_http_exception(e, "generate explanation") from e

        return ExplanationResponse(explanation=explanation, card_id=request.card_id)

    async def generate_quiz(
        self, request: GenerateQuizRequest, user_id: str
    ) -> GenerateQuizResponse:
        """Handle POST /ai/generate-quiz requests.

        Provider outages do not fail this endpoint: fallback cards are
        returned with ``degraded`` set.
        """
        try:
            result = await self._assistant.generate_cards(
                request.topic,
                request.question_count,
                request.difficulty,
                user_id=user_id,
            )
            snapshot = await self._assistant.usage(user_id)
        except (QuizCacheError, ValueError) as e:
            logger.error("Generate quiz failed: %s", e)
            raise to_http_exception(e, "generate quiz") from e

        quiz = [
            QuizCardItem(
                front=card.front,
                back=card.back,
                difficulty=card.difficulty,
                is_quiz=card.is_quiz,
                options=list(card.options),
                correct_option=card.correct_option_index,
            )
            for card in result.cards or ()
        ]
        return GenerateQuizResponse(
            quiz=quiz,
            topic=request.topic,
            tokens_used=0 if result.from_cache else result.tokens_consumed,
            remaining_tokens=snapshot.remaining_today,
            from_cache=result.from_cache,
            degraded=result.degraded,
        )

    async def improve_card(self, request: ImproveCardRequest, user_id: str) -> ImproveCardResponse:
        """Handle POST /ai/improve-card requests."""
        try:
            improvement = await self._assistant.improve_card(
                request.front, request.back, request.improvement_type, user_id=user_id
            )
        except (QuizCacheError, ValueError) as e:
            logger.error("Improve card failed: %s", e)
            raise to_http_exception(e, "improve card") from e

        return ImproveCardResponse(
            improved=ImprovedCard(
                front=improvement.front, back=improvement.back, changes=improvement.changes
            ),
            original=CardContent(front=request.front, back=request.back),
            improvement_type=request.improvement_type,
        )

    async def health(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        tiers = await self._cache.is_healthy()
        provider_healthy = await self._client.is_available()

        healthy = provider_healthy and all(value is not False for value in tiers.values())
        return HealthCheckResponse(
            status="healthy" if healthy else "degraded",
            fast_tier_healthy=tiers["fast_tier"],
            durable_tier_healthy=tiers["durable_tier"],
            provider_healthy=provider_healthy,
        )
