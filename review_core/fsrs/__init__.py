"""
FSRS - Free Spaced Repetition Scheduler

Per-item memory model of the review core.

This package implements the spaced repetition engine with:
- Forgetting curve: R = R_TARGET ^ (Δt/S)
- Interpretable memory state (Stability, Difficulty, Retrievability)
- Pure updates: (state, grade, now) -> (new state, due_at)

Quick start:
    from review_core import fsrs

    state = fsrs.SchedulingState.new("card-1")
    state, due_at = fsrs.advance(state, fsrs.Grade.GOOD)
"""

from review_core.fsrs.constants import (
    D_MAX,
    D_MIN,
    DEFAULT_PARAMETERS,
    R_TARGET,
    S_MIN,
    FsrsParameters,
    Grade,
    ReviewState,
)
from review_core.fsrs.memory_state import (
    SchedulingState,
    calculate_retrievability,
    elapsed_days,
    retrievability_at,
)
from review_core.fsrs.scheduler import (
    advance,
    relearning_interval,
    review_interval,
    to_grade,
)


__all__ = [
    # Core algorithm
    "advance",
    "to_grade",
    "review_interval",
    "relearning_interval",

    # Enums
    "Grade",
    "ReviewState",

    # Memory state
    "SchedulingState",
    "calculate_retrievability",
    "elapsed_days",
    "retrievability_at",

    # Parameters
    "FsrsParameters",
    "DEFAULT_PARAMETERS",
    "R_TARGET",
    "S_MIN",
    "D_MIN",
    "D_MAX",
]
