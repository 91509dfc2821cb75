"""Flashcard domain entities."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GeneratedCard:
    """A flashcard produced by the cards generation path.

    Attributes:
        front: Question side
        back: Answer or explanation side
        difficulty: Difficulty level 1-5
        is_quiz: Whether the card is a multiple choice question
        options: Answer choices (exactly 4 for a valid quiz, or empty)
        correct_option_index: Index of the correct choice in ``options``
    """

    front: str
    back: str
    difficulty: int = 3
    is_quiz: bool = False
    options: tuple[str, ...] = field(default_factory=tuple)
    correct_option_index: int = 0


@dataclass(frozen=True)
class CardImprovement:
    """Improved version of a flashcard returned by the improvement kind."""

    front: str
    back: str
    changes: str = ""
