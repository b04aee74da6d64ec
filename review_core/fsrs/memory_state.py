"""
Memory State - Scheduling State and Retrievability

Defines the per-item scheduling state and derived quantities.

Key concepts:
- Stability (S): Days until recall probability decays to R_TARGET
- Difficulty (D): How hard the item is to stabilize (1-10 scale)
- Retrievability (R): Probability of successful recall at time t
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from review_core.fsrs.constants import R_TARGET, ReviewState


SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class SchedulingState:
    """
    Memory state for a single reviewable item of one learner.

    Instances are immutable; the scheduler returns a new state per review.
    """
    item_id: str
    stability: float = 1.0
    difficulty: float = 5.0
    repetitions: int = 0
    lapses: int = 0
    review_state: ReviewState = ReviewState.NEW
    due_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.stability > 0:
            raise ValueError(f"stability must be positive, got {self.stability!r}")
        if self.repetitions < 0 or self.lapses < 0:
            raise ValueError("repetitions and lapses must be non-negative")
        if not isinstance(self.review_state, ReviewState):
            object.__setattr__(self, "review_state", ReviewState(self.review_state))

    @classmethod
    def new(cls, item_id: str) -> "SchedulingState":
        """Initialize state for an item that has never been reviewed."""
        return cls(item_id=item_id)

    @property
    def is_new(self) -> bool:
        return self.review_state == ReviewState.NEW or self.last_reviewed_at is None

    def is_due(self, now: datetime) -> bool:
        """Never-reviewed items (no due date) are immediately due."""
        return self.due_at is None or self.due_at <= now


def calculate_retrievability(
    stability: float,
    elapsed_days: float,
    r_target: float = R_TARGET
) -> float:
    """
    Calculate retrievability using the power-of-target forgetting curve.

    Formula: R = R_TARGET ^ (Δt / S)

    Interpretation:
    - Immediately after review: R = 1.0
    - After `stability` days: R = R_TARGET
    - Smooth decay in between and beyond

    Args:
        stability: Current stability in days
        elapsed_days: Time since last review in days
        r_target: Recall probability reached after `stability` days

    Returns:
        Retrievability between 0 and 1
    """
    if elapsed_days <= 0:
        return 1.0
    return r_target ** (elapsed_days / stability)


def elapsed_days(since: Optional[datetime], now: datetime) -> float:
    """Days between `since` and `now` (0 when never reviewed)."""
    if since is None:
        return 0.0
    return max(0.0, (now - since).total_seconds() / SECONDS_PER_DAY)


def retrievability_at(
    state: SchedulingState,
    now: datetime,
    r_target: float = R_TARGET
) -> float:
    """Current recall probability of an item (1.0 for new items)."""
    if state.is_new:
        return 1.0
    return calculate_retrievability(
        state.stability,
        elapsed_days(state.last_reviewed_at, now),
        r_target
    )
