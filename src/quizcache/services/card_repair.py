"""Parsing, repair and validation of generated card output.

Providers are asked for a bare JSON array of cards but regularly wrap it in
Markdown fences, prefix it with prose, or stop mid-array when they hit their
token budget. ``repair_json_array`` recovers what it can before parsing;
``validate_cards`` then turns raw dicts into GeneratedCard entities.

Quiz option policy: a card without ``options`` gets an empty list and a card
without a correct index gets 0. A card whose options are present but are not
exactly four strings, or whose index is outside [0, 3], is rejected.
"""

import json
import logging
import re
from typing import Any

from quizcache.entities import CardImprovement, GeneratedCard
from quizcache.errors import ValidationFailureError

logger = logging.getLogger(__name__)

QUIZ_OPTION_COUNT = 4
MAX_FRONT_LENGTH = 500
MAX_BACK_LENGTH = 1000

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")

FALLBACK_CARD_TEMPLATES: tuple[tuple[str, str], ...] = (
    (
        "What is {topic}?",
        "Summarize {topic} in one or two sentences using your study materials.",
    ),
    (
        "Why is {topic} important?",
        "Name one reason {topic} matters and one place it is applied.",
    ),
    (
        "What are the key terms in {topic}?",
        "List three key terms from {topic} and define each in your own words.",
    ),
    (
        "How would you explain {topic} to a beginner?",
        "Explain {topic} with a simple analogy, then check it against your notes.",
    ),
    (
        "What is a common misconception about {topic}?",
        "Identify one frequent mistake about {topic} and state the correct idea.",
    ),
    (
        "What is an example of {topic}?",
        "Describe one concrete example of {topic} and which feature it shows.",
    ),
    (
        "How does {topic} connect to what you already know?",
        "Relate {topic} to a concept you have already studied.",
    ),
    (
        "What question about {topic} would appear on an exam?",
        "Write one exam-style question about {topic} and answer it from memory.",
    ),
)

FALLBACK_POOL_SIZE = len(FALLBACK_CARD_TEMPLATES)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, e.g. ```json ... ```."""
    cleaned = text.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def _last_element_end(text: str) -> int:
    """Index of the ``}`` closing the last complete top-level element, or -1."""
    depth = 0
    in_string = False
    escaped = False
    end = -1
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
            if depth == 1 and char == "}":
                end = index
    return end


def repair_json_array(text: str) -> str:
    """Best-effort normalization of a malformed JSON array.

    Text that already parses as a JSON array is returned unchanged.
    Otherwise: strip fences, drop anything before the first ``[``, drop
    trailing commas, and if that still does not parse, cut after the last
    complete top-level object and close the array.

    Args:
        text: Raw provider output

    Returns:
        Text that is more likely to parse; callers still have to parse it
    """
    try:
        if isinstance(json.loads(text), list):
            return text
    except ValueError:
        pass

    cleaned = strip_code_fences(text)

    start = cleaned.find("[")
    if start > 0:
        cleaned = cleaned[start:]

    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    if not cleaned.startswith("["):
        return cleaned

    try:
        json.loads(cleaned)
        return cleaned
    except ValueError:
        pass

    # Truncated output can still end in "]" when the cut follows an inner array.
    end = _last_element_end(cleaned)
    if end == -1:
        return cleaned
    return cleaned[: end + 1] + "]"


def _loads_array(text: str) -> list | None:
    try:
        data = json.loads(text)
    except ValueError:
        return None

    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        # JSON-object mode wraps the array, e.g. {"cards": [...]}
        for key in ("cards", "questions", "flashcards"):
            if isinstance(data.get(key), list):
                return data[key]
    return None


def parse_card_array(text: str) -> list[Any]:
    """Parse provider output as a non-empty JSON array, repairing if needed.

    Raises:
        ValidationFailureError: If no non-empty array can be recovered
    """
    items = _loads_array(text)
    if not items:
        items = _loads_array(repair_json_array(text))

    if not items:
        raise ValidationFailureError("Response is not a non-empty JSON array", raw_content=text)
    return items


def _clean_text(value: Any, limit: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:limit]


def _coerce_difficulty(value: Any, default: int) -> int:
    try:
        difficulty = int(value)
    except (TypeError, ValueError):
        return default
    return min(max(difficulty, 1), 5)


def validate_card(raw: Any, default_difficulty: int = 3) -> GeneratedCard | None:
    """Build a GeneratedCard from a raw dict, or None if it is invalid."""
    if not isinstance(raw, dict):
        return None

    front = _clean_text(raw.get("front"), MAX_FRONT_LENGTH)
    back = _clean_text(raw.get("back"), MAX_BACK_LENGTH)
    if not front or not back:
        return None

    options = raw.get("options")
    if options is None:
        options = []
    if not isinstance(options, list):
        return None

    is_quiz = bool(raw.get("is_quiz", raw.get("isQuiz", bool(options))))

    index = raw.get("correct_option", raw.get("correct_option_index", raw.get("correctOptionIndex")))
    if index is None:
        index = 0
    if isinstance(index, bool) or not isinstance(index, int):
        return None

    if options:
        if len(options) != QUIZ_OPTION_COUNT or not all(isinstance(o, str) and o.strip() for o in options):
            return None
        if not 0 <= index < QUIZ_OPTION_COUNT:
            return None

    return GeneratedCard(
        front=front,
        back=back,
        difficulty=_coerce_difficulty(raw.get("difficulty"), default_difficulty),
        is_quiz=is_quiz,
        options=tuple(o.strip() for o in options),
        correct_option_index=index,
    )


def validate_cards(
    items: list[Any],
    default_difficulty: int = 3,
    limit: int | None = None,
) -> list[GeneratedCard]:
    """Validate raw card dicts, dropping invalid ones.

    Raises:
        ValidationFailureError: If no card survives validation
    """
    cards: list[GeneratedCard] = []
    for position, raw in enumerate(items):
        card = validate_card(raw, default_difficulty)
        if card is None:
            logger.debug("Dropping invalid generated card at position %d: %r", position, raw)
            continue
        cards.append(card)

    if limit is not None:
        cards = cards[:limit]

    if not cards:
        raise ValidationFailureError("No valid cards in generated output")

    if len(cards) < len(items):
        logger.info("Kept %d of %d generated cards after validation", len(cards), len(items))
    return cards


def card_to_dict(card: GeneratedCard) -> dict[str, Any]:
    return {
        "front": card.front,
        "back": card.back,
        "difficulty": card.difficulty,
        "is_quiz": card.is_quiz,
        "options": list(card.options),
        "correct_option": card.correct_option_index,
    }


def cards_to_json(cards: list[GeneratedCard]) -> str:
    """Serialize validated cards to the normalized cached content."""
    return json.dumps([card_to_dict(card) for card in cards], ensure_ascii=False)


def cards_from_json(content: str, default_difficulty: int = 3) -> list[GeneratedCard]:
    """Rebuild cards from normalized cached content."""
    return validate_cards(parse_card_array(content), default_difficulty)


def fallback_cards(count: int, topic: str | None = None, difficulty: int = 3) -> list[GeneratedCard]:
    """Generic study cards served when generation keeps failing.

    Returns:
        ``min(count, FALLBACK_POOL_SIZE)`` cards
    """
    subject = (topic or "this topic").strip() or "this topic"
    size = max(0, min(count, FALLBACK_POOL_SIZE))
    return [
        GeneratedCard(
            front=front.format(topic=subject),
            back=back.format(topic=subject),
            difficulty=_coerce_difficulty(difficulty, 3),
        )
        for front, back in FALLBACK_CARD_TEMPLATES[:size]
    ]


def parse_improvement(text: str) -> CardImprovement:
    """Parse improvement output ``{"front", "back", "changes"}``.

    Raises:
        ValidationFailureError: If the output is not a usable improvement
    """
    try:
        data = json.loads(strip_code_fences(text))
    except ValueError as e:
        raise ValidationFailureError(f"Improvement is not valid JSON: {e}", raw_content=text) from e

    if not isinstance(data, dict):
        raise ValidationFailureError("Improvement is not a JSON object", raw_content=text)

    front = _clean_text(data.get("front"), MAX_FRONT_LENGTH)
    back = _clean_text(data.get("back"), MAX_BACK_LENGTH)
    if not front or not back:
        raise ValidationFailureError("Improvement is missing front or back", raw_content=text)

    changes = data.get("changes")
    return CardImprovement(front=front, back=back, changes=changes.strip() if isinstance(changes, str) else "")
