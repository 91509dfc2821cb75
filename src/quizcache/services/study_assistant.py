"""Application-facing study operations.

StudyAssistant turns the four request kinds (cards, hint, explanation,
improvement) into typed GenerationRequests, runs them through the
orchestrator and hands back domain values.
"""

import logging

from quizcache.entities import (
    CardImprovement,
    GenerationRequest,
    GenerationResult,
    RequestKind,
    UsageSnapshot,
)

from .card_repair import parse_improvement
from .orchestrator import ResponseOrchestrator
from .prompts import (
    KIND_DEFAULTS,
    build_cards_prompt,
    build_explanation_prompt,
    build_hint_prompt,
    build_improvement_prompt,
    cards_token_budget,
)
from .quota_ledger import QuotaLedger

logger = logging.getLogger(__name__)


class StudyAssistant:
    """Generates quiz cards, hints, explanations and card improvements.

    Example:
        ```python
        assistant = StudyAssistant(orchestrator=orchestrator, ledger=ledger)
        result = await assistant.generate_cards("Photosynthesis", count=5, difficulty=3)
        for card in result.cards:
            print(card.front, card.options)
        ```
    """

    def __init__(self, orchestrator: ResponseOrchestrator, ledger: QuotaLedger) -> None:
        """Initialize the assistant.

        Args:
            orchestrator: Response orchestrator (required).
            ledger: Quota ledger used for usage reports (required).
        """
        self._orchestrator = orchestrator
        self._ledger = ledger

    async def generate_cards(
        self,
        topic: str,
        count: int,
        difficulty: int = 3,
        user_id: str | None = None,
    ) -> GenerationResult:
        """Generate multiple choice quiz cards for a topic.

        Never fails because of provider outages or malformed output: after
        the retry budget is spent, generic study cards are returned with
        ``degraded=True``.

        Args:
            topic: Subject of the quiz
            count: Number of cards requested (at least 1)
            difficulty: Difficulty level 1-5
            user_id: Requesting user, for quota accounting

        Returns:
            GenerationResult whose ``cards`` holds at most ``count`` cards
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        if not 1 <= difficulty <= 5:
            raise ValueError("difficulty must be between 1 and 5")

        topic = topic.strip()
        request = GenerationRequest(
            kind=RequestKind.CARDS,
            prompt_text=build_cards_prompt(topic, count, difficulty),
            options=KIND_DEFAULTS[RequestKind.CARDS].options(max_tokens=cards_token_budget(count)),
            requesting_user_id=user_id,
            card_count=count,
            topic=topic,
            difficulty=difficulty,
        )
        result = await self._orchestrator.obtain(request)
        logger.info(
            "Generated %d cards for topic %r (cached=%s, degraded=%s)",
            len(result.cards or ()),
            topic,
            result.from_cache,
            result.degraded,
        )
        return result

    async def generate_hint(
        self, front: str, back: str, level: int, user_id: str | None = None
    ) -> str:
        """Generate a progressive hint; level 1 is subtle, level 3 is strong."""
        request = GenerationRequest(
            kind=RequestKind.HINT,
            prompt_text=build_hint_prompt(front.strip(), back.strip(), level),
            options=KIND_DEFAULTS[RequestKind.HINT].options(),
            requesting_user_id=user_id,
        )
        result = await self._orchestrator.obtain(request)
        return result.content.strip()

    async def generate_explanation(
        self,
        front: str,
        back: str,
        user_answer: str | None = None,
        user_id: str | None = None,
    ) -> str:
        """Explain why the correct answer is right and what the user missed."""
        answer = user_answer.strip() if user_answer else None
        request = GenerationRequest(
            kind=RequestKind.EXPLANATION,
            prompt_text=build_explanation_prompt(front.strip(), back.strip(), answer),
            options=KIND_DEFAULTS[RequestKind.EXPLANATION].options(),
            requesting_user_id=user_id,
        )
        result = await self._orchestrator.obtain(request)
        return result.content.strip()

    async def improve_card(
        self,
        front: str,
        back: str,
        improvement_type: str,
        user_id: str | None = None,
    ) -> CardImprovement:
        """Rewrite a card for clarity, difficulty or accuracy.

        Raises:
            ValueError: For an unknown improvement type
        """
        request = GenerationRequest(
            kind=RequestKind.IMPROVEMENT,
            prompt_text=build_improvement_prompt(front.strip(), back.strip(), improvement_type),
            options=KIND_DEFAULTS[RequestKind.IMPROVEMENT].options(),
            requesting_user_id=user_id,
        )
        result = await self._orchestrator.obtain(request)
        return parse_improvement(result.content)

    async def usage(self, user_id: str) -> UsageSnapshot:
        """Report a user's token usage."""
        return await self._ledger.usage_snapshot(user_id)

    @property
    def orchestrator(self) -> ResponseOrchestrator:
        """Get the orchestrator (for testing)."""
        return self._orchestrator
