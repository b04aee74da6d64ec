"""
BKT Constants and Parameters

Slip/guess/transit parameter sets per item type, plus mastery display
thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final


class ItemType(str, Enum):
    """Kind of reviewable item (selects the BKT parameter set)."""
    FLASHCARD = "flashcard"
    QUIZ = "quiz"


@dataclass(frozen=True)
class BktParameters:
    """
    Four-parameter BKT model.

    p_init:    prior probability the concept is known before any attempt
    p_transit: probability of learning the concept between attempts
    p_slip:    probability of answering wrong despite knowing
    p_guess:   probability of answering right without knowing
    """
    p_init: float
    p_transit: float
    p_slip: float
    p_guess: float

    def __post_init__(self):
        for name in ("p_init", "p_transit", "p_slip", "p_guess"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value!r}")


# Self-graded flashcards guess less than multiple-choice quizzes, and the
# learner commits to an answer before seeing it, so transit is higher.
BKT_PARAMETERS: Final[dict[ItemType, BktParameters]] = {
    ItemType.FLASHCARD: BktParameters(p_init=0.0, p_transit=0.18, p_slip=0.10, p_guess=0.20),
    ItemType.QUIZ: BktParameters(p_init=0.0, p_transit=0.126, p_slip=0.10, p_guess=0.25),
}


# ---- Mastery thresholds ----

MASTERED_THRESHOLD: Final[float] = 0.80
LEARNING_THRESHOLD: Final[float] = 0.50
MIN_ATTEMPTS_FOR_MASTERY: Final[int] = 5
