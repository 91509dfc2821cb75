"""Prompt builders and per-kind generation defaults.

Each request kind has a ``KindDefaults`` value with its token budget,
temperature, cache lifetime and structured-output hint. The builders return
the exact prompt text that is fingerprinted and sent to the provider.
"""

from dataclasses import dataclass

from quizcache.entities import GenerationOptions, RequestKind

DAY_SECONDS = 86400

CARDS_SYSTEM_PROMPT = (
    "You are a quiz question generator specializing in multiple choice questions. "
    "You must return only valid JSON arrays containing quiz objects with is_quiz:true, "
    "options array, and correct_option index. Never include explanatory text or markdown "
    "formatting. The response must start with [ and end with ]. Each question must have "
    "exactly 4 options with only one correct answer."
)

HINT_LEVELS = {
    1: "very subtle hint that doesn't give away the answer",
    2: "moderate hint that provides some guidance",
    3: "strong hint that makes the answer more obvious",
}

IMPROVEMENT_GOALS = {
    "clarity": "Make this flashcard clearer and easier to understand",
    "difficulty": "Adjust the difficulty level to be more appropriate",
    "accuracy": "Improve the accuracy and correctness of the information",
}

NO_ANSWER = "No answer provided"


@dataclass(frozen=True)
class KindDefaults:
    """Default generation options for one request kind.

    Attributes:
        max_tokens: Completion token budget
        temperature: Sampling temperature
        ttl: Cache lifetime in seconds
        structured_output: Ask the provider for a JSON object
        system_prompt: Kind-specific system instruction, if any
    """

    max_tokens: int
    temperature: float
    ttl: int
    structured_output: bool = False
    system_prompt: str | None = None

    def options(self, max_tokens: int | None = None) -> GenerationOptions:
        """Build GenerationOptions, optionally overriding the token budget."""
        return GenerationOptions(
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            temperature=self.temperature,
            structured_output=self.structured_output,
            ttl=self.ttl,
            system_prompt=self.system_prompt,
        )


KIND_DEFAULTS: dict[RequestKind, KindDefaults] = {
    # JSON object mode cannot return a bare array, so cards stay unstructured.
    RequestKind.CARDS: KindDefaults(
        max_tokens=1000,
        temperature=0.7,
        ttl=30 * DAY_SECONDS,
        system_prompt=CARDS_SYSTEM_PROMPT,
    ),
    RequestKind.HINT: KindDefaults(max_tokens=50, temperature=0.6, ttl=30 * DAY_SECONDS),
    RequestKind.EXPLANATION: KindDefaults(max_tokens=100, temperature=0.5, ttl=7 * DAY_SECONDS),
    RequestKind.IMPROVEMENT: KindDefaults(
        max_tokens=300, temperature=0.7, ttl=3600, structured_output=True
    ),
}


def cards_token_budget(count: int) -> int:
    """A hundred tokens per card, capped at the cards default."""
    return min(count * 100, KIND_DEFAULTS[RequestKind.CARDS].max_tokens)


def build_cards_prompt(topic: str, count: int, difficulty: int) -> str:
    return f"""Create exactly {count} multiple choice quiz questions for the topic "{topic}" at difficulty level {difficulty}/5.

You must return ONLY a JSON array (starting with [ and ending with ]) containing quiz question objects. Do not include any explanatory text, markdown formatting, or other content.

Each quiz question object must have exactly these fields:
- "front": The question (max 200 chars)
- "back": Brief explanation of why the correct answer is correct (max 200 chars)
- "difficulty": Number from 1-5
- "is_quiz": true (boolean)
- "options": Array of exactly 4 answer choices (each max 100 chars)
- "correct_option": The index (0-3) of the correct answer in the options array

IMPORTANT:
- Each question must have exactly 4 options
- Only ONE option should be correct
- The other 3 options should be plausible but incorrect
- Mix up the position of the correct answer (don't always make it the same index)

Example response:
[
  {{
    "front": "What is the capital of France?",
    "back": "Paris has been France's capital since 987 AD and is its largest city.",
    "difficulty": 2,
    "is_quiz": true,
    "options": ["London", "Berlin", "Paris", "Madrid"],
    "correct_option": 2
  }}
]

Topic: {topic}
Count: {count}
Difficulty: {difficulty}"""


def build_hint_prompt(front: str, back: str, level: int) -> str:
    """Build a progressive hint prompt.

    Raises:
        ValueError: If level is not 1, 2 or 3
    """
    if level not in HINT_LEVELS:
        raise ValueError(f"Hint level must be 1-3, got {level}")

    return f"""For this flashcard question: "{front}"
Answer: "{back}"

Provide a level {level} hint ({HINT_LEVELS[level]}).

Return ONLY the hint text, maximum 100 characters."""


def build_explanation_prompt(front: str, back: str, user_answer: str | None = None) -> str:
    return f"""Question: "{front}"
Correct answer: "{back}"
User's answer: "{user_answer or NO_ANSWER}"

Explain why the correct answer is right and what the user might have missed. Be encouraging and educational.

Maximum 300 characters."""


def build_improvement_prompt(front: str, back: str, improvement_type: str) -> str:
    """Build a card improvement prompt.

    Raises:
        ValueError: If improvement_type is not clarity, difficulty or accuracy
    """
    goal = IMPROVEMENT_GOALS.get(improvement_type)
    if goal is None:
        raise ValueError(
            f"Improvement type must be one of {sorted(IMPROVEMENT_GOALS)}, got {improvement_type!r}"
        )

    return f"""{goal} for this flashcard:

Question: "{front}"
Answer: "{back}"

Return improved version as JSON:
{{
  "front": "improved question",
  "back": "improved answer",
  "changes": "brief description of what was improved"
}}"""
