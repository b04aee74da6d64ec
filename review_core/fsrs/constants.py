"""
FSRS Constants and Parameters

All configurable parameters for the memory model in one place.
The defaults are grouped in a frozen dataclass so callers can tune a copy
(``dataclasses.replace``) without touching the module-level defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


# ---- Feedback Grades ----

class Grade(IntEnum):
    """Learner's self-reported recall quality."""
    AGAIN = 1   # Forgot
    HARD = 2    # Recalled with high effort
    GOOD = 3    # Recalled normally
    EASY = 4    # Recalled fluently


class ReviewState(str, Enum):
    """Lifecycle stage of a scheduled item."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# ---- Global Constants ----

R_TARGET = 0.90   # Recall probability reached after `stability` days
S_MIN = 0.5       # Minimum stability (days)
D_MIN = 1.0       # Minimum difficulty
D_MAX = 10.0      # Maximum difficulty


@dataclass(frozen=True)
class FsrsParameters:
    """
    Coefficients of the stability/difficulty update rules.

    Stability growth on success:
        SInc = 1 + exp(stability_gain) * (D_MAX + 1 - D) * S^(-stability_damping)
                 * (exp(spacing_effect * (1 - R)) - 1) * grade_multiplier[grade]

    Stability decay on lapse:
        S_new = max(S_MIN, S * min(1 - lapse_decay * R, 1 - lapse_min_decay))
    """
    r_target: float = R_TARGET
    s_min: float = S_MIN
    d_min: float = D_MIN
    d_max: float = D_MAX

    # Initial memory state for a first review, keyed by grade
    initial_stability: dict[Grade, float] = field(default_factory=lambda: {
        Grade.AGAIN: 0.5,
        Grade.HARD: 1.2,
        Grade.GOOD: 2.5,
        Grade.EASY: 4.5,
    })
    initial_difficulty: dict[Grade, float] = field(default_factory=lambda: {
        Grade.AGAIN: 6.5,
        Grade.HARD: 5.8,
        Grade.GOOD: 5.0,
        Grade.EASY: 4.2,
    })

    # Success
    stability_gain: float = 0.2
    stability_damping: float = 0.15
    spacing_effect: float = 1.4
    grade_multiplier: dict[Grade, float] = field(default_factory=lambda: {
        Grade.HARD: 0.4,
        Grade.GOOD: 1.0,
        Grade.EASY: 1.6,
    })

    # Failure
    lapse_decay: float = 0.6
    lapse_min_decay: float = 0.2

    # Difficulty moves up on AGAIN/HARD, down on GOOD/EASY
    difficulty_delta: dict[Grade, float] = field(default_factory=lambda: {
        Grade.AGAIN: +0.6,
        Grade.HARD: +0.3,
        Grade.GOOD: -0.1,
        Grade.EASY: -0.4,
    })

    # Intervals
    interval_modifier: float = 1.0
    min_interval_days: float = 1.0
    max_interval_days: float = 365.0
    relearn_min_minutes: float = 10.0
    relearn_fraction: float = 0.25   # Share of decayed stability used for the relearning step


DEFAULT_PARAMETERS = FsrsParameters()
