"""
Pydantic payload models for the review REST API.

Each payload mirrors one domain record and converts to and from it, so the
HTTP adapter never builds request bodies by hand.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from review_core.bkt.constants import ItemType
from review_core.bkt.engine import MasteryState
from review_core.fsrs.constants import ReviewState
from review_core.fsrs.memory_state import SchedulingState
from review_core.persistence.service import as_utc
from review_core.records import DailyActivity, LearnerStats, ReviewEvent, ReviewSession


class SchedulingStatePayload(BaseModel):
    """Body of POST scheduling-states and items of GET scheduling-states."""
    item_id: str = Field(..., min_length=1)
    stability: float = Field(..., gt=0)
    difficulty: float
    repetitions: int = Field(default=0, ge=0)
    lapses: int = Field(default=0, ge=0)
    review_state: ReviewState = ReviewState.NEW
    due_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None

    @field_validator("due_at", "last_reviewed_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Timestamps without an offset are UTC, as in the SQL store."""
        return as_utc(value)

    @classmethod
    def from_domain(cls, state: SchedulingState) -> "SchedulingStatePayload":
        return cls(
            item_id=state.item_id,
            stability=state.stability,
            difficulty=state.difficulty,
            repetitions=state.repetitions,
            lapses=state.lapses,
            review_state=state.review_state,
            due_at=state.due_at,
            last_reviewed_at=state.last_reviewed_at,
        )

    def to_domain(self) -> SchedulingState:
        return SchedulingState(**self.model_dump())


class MasteryStatePayload(BaseModel):
    """Body of POST mastery-states and items of GET mastery-states."""
    concept_id: str = Field(..., min_length=1)
    keyword_id: Optional[str] = None
    p_know: float = Field(..., ge=0.0, le=1.0)
    p_transit: float = Field(..., ge=0.0, le=1.0)
    p_slip: float = Field(..., ge=0.0, le=1.0)
    p_guess: float = Field(..., ge=0.0, le=1.0)
    delta: float = 0.0
    total_attempts: int = Field(default=0, ge=0)
    correct_attempts: int = Field(default=0, ge=0)
    last_attempt_at: Optional[datetime] = None

    @field_validator("last_attempt_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @classmethod
    def from_domain(cls, state: MasteryState) -> "MasteryStatePayload":
        return cls(
            concept_id=state.concept_id,
            keyword_id=state.keyword_id,
            p_know=state.p_know,
            p_transit=state.p_transit,
            p_slip=state.p_slip,
            p_guess=state.p_guess,
            delta=state.delta,
            total_attempts=state.total_attempts,
            correct_attempts=state.correct_attempts,
            last_attempt_at=state.last_attempt_at,
        )

    def to_domain(self) -> MasteryState:
        return MasteryState(**self.model_dump())


class SessionPayload(BaseModel):
    """Body of POST sessions and PUT sessions/{id}."""
    id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    total_reviews: int = Field(default=0, ge=0)
    correct_reviews: int = Field(default=0, ge=0)
    duration_seconds: int = Field(default=0, ge=0)

    @classmethod
    def from_domain(cls, session: ReviewSession) -> "SessionPayload":
        return cls(
            id=session.id,
            started_at=session.started_at,
            ended_at=session.ended_at,
            total_reviews=session.total_reviews,
            correct_reviews=session.correct_reviews,
            duration_seconds=session.duration_seconds,
        )


class ReviewEventPayload(BaseModel):
    """Body of POST review-events."""
    event_id: str
    session_id: str
    item_id: str
    item_type: ItemType = ItemType.FLASHCARD
    grade: int = Field(..., ge=1, le=4)
    response_time_ms: Optional[int] = Field(default=None, ge=0)
    created_at: datetime

    @classmethod
    def from_domain(cls, event: ReviewEvent) -> "ReviewEventPayload":
        return cls(
            event_id=event.event_id,
            session_id=event.session_id,
            item_id=event.item_id,
            item_type=event.item_type,
            grade=int(event.grade),
            response_time_ms=event.response_time_ms,
            created_at=event.created_at,
        )


class DailyActivityPayload(BaseModel):
    """Body of POST daily-activity."""
    activity_date: date
    session_id: str
    reviews_count: int = Field(..., ge=0)
    correct_count: int = Field(..., ge=0)
    time_spent_seconds: int = Field(..., ge=0)
    sessions_count: int = Field(default=1, ge=0)

    @classmethod
    def from_domain(cls, activity: DailyActivity) -> "DailyActivityPayload":
        return cls(
            activity_date=activity.activity_date,
            session_id=activity.session_id,
            reviews_count=activity.reviews_count,
            correct_count=activity.correct_count,
            time_spent_seconds=activity.time_spent_seconds,
            sessions_count=activity.sessions_count,
        )


class LearnerStatsPayload(BaseModel):
    """Body of POST learner-stats."""
    session_id: str
    total_reviews: int = Field(..., ge=0)
    total_time_seconds: int = Field(..., ge=0)
    total_sessions: int = Field(..., ge=0)
    last_study_date: Optional[date] = None

    @classmethod
    def from_domain(cls, stats: LearnerStats) -> "LearnerStatsPayload":
        return cls(
            session_id=stats.session_id,
            total_reviews=stats.total_reviews,
            total_time_seconds=stats.total_time_seconds,
            total_sessions=stats.total_sessions,
            last_study_date=stats.last_study_date,
        )
