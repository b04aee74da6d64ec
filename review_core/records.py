"""
Session-level records written by the review session.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from review_core.bkt.constants import ItemType


@dataclass(frozen=True)
class ReviewSession:
    """
    One sitting of reviews. Closed exactly once when the queue is exhausted.
    """
    id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    total_reviews: int = 0
    correct_reviews: int = 0
    duration_seconds: int = 0

    @property
    def is_closed(self) -> bool:
        return self.ended_at is not None

    def close(self, ended_at: datetime, total_reviews: int, correct_reviews: int) -> "ReviewSession":
        if self.is_closed:
            raise ValueError(f"Session {self.id} is already closed")
        duration = max(0, round((ended_at - self.started_at).total_seconds()))
        return replace(
            self,
            ended_at=ended_at,
            total_reviews=total_reviews,
            correct_reviews=correct_reviews,
            duration_seconds=duration,
        )


@dataclass(frozen=True)
class ReviewEvent:
    """
    Log entry for one grading action (append-only).

    event_id is the idempotency key of the append: "<session_id>:<position>".
    """
    event_id: str
    session_id: str
    item_id: str
    grade: int
    created_at: datetime
    item_type: ItemType = ItemType.FLASHCARD
    response_time_ms: Optional[int] = None

    @property
    def is_correct(self) -> bool:
        return self.grade >= 3


@dataclass(frozen=True)
class DailyActivity:
    """Same-day aggregate contributed by one session."""
    activity_date: date
    reviews_count: int
    correct_count: int
    time_spent_seconds: int
    sessions_count: int = 1
    session_id: Optional[str] = None


@dataclass(frozen=True)
class LearnerStats:
    """Lifetime aggregate (or one session's contribution to it)."""
    total_reviews: int
    total_time_seconds: int
    total_sessions: int
    last_study_date: Optional[date] = None
    session_id: Optional[str] = None
