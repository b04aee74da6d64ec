"""
Scheduler - FSRS Algorithm Logic

Pure scheduling and state updates (no database calls).

Main workflow:
1. Load scheduling state (caller's responsibility)
2. Initialize memory for new items, or measure retrievability
3. Apply the lapse or success update rules
4. Return the new state and its due timestamp

Database I/O is handled by the persistence package.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from review_core.errors import InvalidGradeError
from review_core.fsrs import updates
from review_core.fsrs.constants import DEFAULT_PARAMETERS, FsrsParameters, Grade, ReviewState
from review_core.fsrs.memory_state import SchedulingState, retrievability_at


def to_grade(value: int) -> Grade:
    """Validate a raw grade value (1-4)."""
    if isinstance(value, bool):
        raise InvalidGradeError(f"Invalid grade: {value!r}")
    try:
        return Grade(value)
    except ValueError as exc:
        raise InvalidGradeError(f"Invalid grade: {value!r} (expected 1-4)") from exc


def advance(
    state: SchedulingState,
    grade: int,
    now: Optional[datetime] = None,
    params: FsrsParameters = DEFAULT_PARAMETERS
) -> Tuple[SchedulingState, datetime]:
    """
    Process one graded review and return the new state and its due timestamp.

    The input state is never modified; identical (state, grade, now) always
    yield identical results.

    Args:
        state: Current scheduling state (may be new)
        grade: 1=forgot, 2=hard, 3=good, 4=easy
        now: Review timestamp (defaults to now, UTC)
        params: Model coefficients

    Returns:
        Tuple of (new_state, due_at) where due_at >= now
    """
    grade = to_grade(grade)
    if now is None:
        now = datetime.now(timezone.utc)

    if state.is_new:
        stability = params.initial_stability[grade]
        difficulty = updates.clip_difficulty(params.initial_difficulty[grade], params)
        review_state = ReviewState.LEARNING
        if grade != Grade.AGAIN:
            stability = max(stability, state.stability)
    else:
        retrievability = retrievability_at(state, now, params.r_target)
        if grade == Grade.AGAIN:
            stability = updates.update_stability_on_failure(state.stability, retrievability, params)
        else:
            stability = updates.update_stability_on_success(
                state.stability, state.difficulty, retrievability, grade, params
            )
        difficulty = updates.update_difficulty(state.difficulty, grade, params)
        review_state = state.review_state

    if grade == Grade.AGAIN:
        repetitions = 0
        lapses = state.lapses + 1
        review_state = ReviewState.RELEARNING
        interval = relearning_interval(stability, params)
    else:
        repetitions = state.repetitions + 1
        lapses = state.lapses
        review_state = ReviewState.REVIEW
        interval = review_interval(stability, params)

    due_at = now + interval
    new_state = replace(
        state,
        stability=stability,
        difficulty=difficulty,
        repetitions=repetitions,
        lapses=lapses,
        review_state=review_state,
        due_at=due_at,
        last_reviewed_at=now,
    )
    return new_state, due_at


def review_interval(stability: float, params: FsrsParameters = DEFAULT_PARAMETERS) -> timedelta:
    """
    Interval after a successful review: grows with stability, capped.
    """
    days = stability * params.interval_modifier
    days = max(params.min_interval_days, min(params.max_interval_days, days))
    return timedelta(days=days)


def relearning_interval(stability: float, params: FsrsParameters = DEFAULT_PARAMETERS) -> timedelta:
    """
    Interval after a lapse: between the relearning minimum and one day.
    """
    minutes = stability * params.relearn_fraction * 24 * 60
    minutes = max(params.relearn_min_minutes, min(24 * 60, minutes))
    return timedelta(minutes=minutes)
