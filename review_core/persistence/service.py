"""
Persistence service contract and its SQL implementation.

Every call is scoped to one learner; the caller resolves identity before
constructing the service. All writes are idempotent upserts.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from review_core import config
from review_core.bkt.constants import ItemType
from review_core.bkt.engine import MasteryState
from review_core.errors import PersistenceError
from review_core.fsrs.constants import ReviewState
from review_core.fsrs.memory_state import SchedulingState
from review_core.persistence import database
from review_core.persistence.models import (
    DailyActivityRow,
    LearnerStatsRow,
    MasteryStateRow,
    ReviewEventRow,
    ReviewSessionRow,
    SchedulingStateRow,
)
from review_core.records import DailyActivity, LearnerStats, ReviewEvent, ReviewSession

logger = logging.getLogger(__name__)


class PersistenceService(Protocol):
    """Storage operations consumed by the review core."""

    def get_scheduling_states(self) -> list[SchedulingState]: ...

    def upsert_scheduling_state(self, state: SchedulingState) -> None: ...

    def get_mastery_states(
        self,
        concept_id: Optional[str] = None,
        keyword_id: Optional[str] = None
    ) -> list[MasteryState]: ...

    def upsert_mastery_state(self, state: MasteryState) -> None: ...

    def create_session(self, session: ReviewSession) -> str: ...

    def close_session(self, session: ReviewSession) -> None: ...

    def append_review_event(self, event: ReviewEvent) -> None: ...

    def upsert_daily_activity(self, activity: DailyActivity) -> None: ...

    def upsert_learner_stats(self, stats: LearnerStats) -> None: ...


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite returns naive datetimes; stored values are always UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---- Row <-> domain conversion ----

def scheduling_state_from_row(row: SchedulingStateRow) -> SchedulingState:
    return SchedulingState(
        item_id=row.item_id,
        stability=row.stability if row.stability and row.stability > 0 else 1.0,
        difficulty=row.difficulty if row.difficulty is not None else 5.0,
        repetitions=row.repetitions or 0,
        lapses=row.lapses or 0,
        review_state=ReviewState(row.review_state or "new"),
        due_at=as_utc(row.due_at),
        last_reviewed_at=as_utc(row.last_reviewed_at),
    )


def mastery_state_from_row(row: MasteryStateRow) -> MasteryState:
    return MasteryState(
        concept_id=row.concept_id,
        keyword_id=row.keyword_id,
        p_know=row.p_know,
        p_transit=row.p_transit,
        p_slip=row.p_slip,
        p_guess=row.p_guess,
        total_attempts=row.total_attempts or 0,
        correct_attempts=row.correct_attempts or 0,
        last_attempt_at=as_utc(row.last_attempt_at),
        delta=row.delta or 0.0,
    )


class SqlPersistenceService:
    """
    PersistenceService backed by the SQLAlchemy models.

    Aggregates (daily activity, lifetime stats) are stored as one row per
    contributing session and summed at query time, so retried upserts never
    double count.
    """

    def __init__(self, learner_id: Optional[str] = None, engine: Optional[Engine] = None):
        self.learner_id = learner_id or config.get_default_learner_id()
        self._engine = engine or database.get_engine()
        self._sessionmaker = database.get_sessionmaker(self._engine)

    # ---- Scheduling states ----

    def get_scheduling_states(self) -> list[SchedulingState]:
        session = self._sessionmaker()
        try:
            rows = session.query(SchedulingStateRow).filter(
                SchedulingStateRow.learner_id == self.learner_id
            ).order_by(SchedulingStateRow.item_id).all()
            return [scheduling_state_from_row(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load scheduling states: {exc}") from exc
        finally:
            session.close()

    def upsert_scheduling_state(self, state: SchedulingState) -> None:
        session = self._sessionmaker()
        try:
            row = session.get(SchedulingStateRow, (self.learner_id, state.item_id))
            if row is None:
                row = SchedulingStateRow(learner_id=self.learner_id, item_id=state.item_id)
                session.add(row)
            row.stability = state.stability
            row.difficulty = state.difficulty
            row.repetitions = state.repetitions
            row.lapses = state.lapses
            row.review_state = state.review_state.value
            row.due_at = state.due_at
            row.last_reviewed_at = state.last_reviewed_at
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to save scheduling state {state.item_id}: {exc}") from exc
        finally:
            session.close()

    # ---- Mastery states ----

    def get_mastery_states(
        self,
        concept_id: Optional[str] = None,
        keyword_id: Optional[str] = None
    ) -> list[MasteryState]:
        session = self._sessionmaker()
        try:
            query = session.query(MasteryStateRow).filter(
                MasteryStateRow.learner_id == self.learner_id
            )
            if concept_id is not None:
                query = query.filter(MasteryStateRow.concept_id == concept_id)
            if keyword_id is not None:
                query = query.filter(MasteryStateRow.keyword_id == keyword_id)
            rows = query.order_by(MasteryStateRow.concept_id).all()
            return [mastery_state_from_row(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load mastery states: {exc}") from exc
        finally:
            session.close()

    def upsert_mastery_state(self, state: MasteryState) -> None:
        session = self._sessionmaker()
        try:
            row = session.get(MasteryStateRow, (self.learner_id, state.concept_id))
            if row is None:
                row = MasteryStateRow(learner_id=self.learner_id, concept_id=state.concept_id)
                session.add(row)
            row.keyword_id = state.keyword_id
            row.p_know = state.p_know
            row.p_transit = state.p_transit
            row.p_slip = state.p_slip
            row.p_guess = state.p_guess
            row.delta = state.delta
            row.total_attempts = state.total_attempts
            row.correct_attempts = state.correct_attempts
            row.last_attempt_at = state.last_attempt_at
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to save mastery state {state.concept_id}: {exc}") from exc
        finally:
            session.close()

    # ---- Sessions ----

    def create_session(self, review_session: ReviewSession) -> str:
        session = self._sessionmaker()
        try:
            row = session.get(ReviewSessionRow, review_session.id)
            if row is None:
                session.add(ReviewSessionRow(
                    id=review_session.id,
                    learner_id=self.learner_id,
                    started_at=review_session.started_at,
                ))
                session.commit()
            return review_session.id
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to create session {review_session.id}: {exc}") from exc
        finally:
            session.close()

    def close_session(self, review_session: ReviewSession) -> None:
        session = self._sessionmaker()
        try:
            row = session.get(ReviewSessionRow, review_session.id)
            if row is None or row.learner_id != self.learner_id:
                raise PersistenceError(f"Unknown session {review_session.id}", status_code=404)
            row.ended_at = review_session.ended_at
            row.total_reviews = review_session.total_reviews
            row.correct_reviews = review_session.correct_reviews
            row.duration_seconds = review_session.duration_seconds
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to close session {review_session.id}: {exc}") from exc
        finally:
            session.close()

    def get_session(self, session_id: str) -> Optional[ReviewSession]:
        session = self._sessionmaker()
        try:
            row = session.get(ReviewSessionRow, session_id)
            if row is None or row.learner_id != self.learner_id:
                return None
            return ReviewSession(
                id=row.id,
                started_at=as_utc(row.started_at),
                ended_at=as_utc(row.ended_at),
                total_reviews=row.total_reviews,
                correct_reviews=row.correct_reviews,
                duration_seconds=row.duration_seconds,
            )
        finally:
            session.close()

    # ---- Review events ----

    def append_review_event(self, event: ReviewEvent) -> None:
        session = self._sessionmaker()
        try:
            if session.get(ReviewEventRow, event.event_id) is not None:
                # Already appended by an earlier attempt
                return
            session.add(ReviewEventRow(
                event_id=event.event_id,
                learner_id=self.learner_id,
                session_id=event.session_id,
                item_id=event.item_id,
                item_type=ItemType(event.item_type).value,
                grade=int(event.grade),
                response_time_ms=event.response_time_ms,
                created_at=event.created_at,
            ))
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to append review event {event.event_id}: {exc}") from exc
        finally:
            session.close()

    def get_review_events(
        self,
        session_id: Optional[str] = None,
        since: Optional[datetime] = None
    ) -> list[ReviewEvent]:
        """Review events of the learner, oldest first."""
        session = self._sessionmaker()
        try:
            query = session.query(ReviewEventRow).filter(
                ReviewEventRow.learner_id == self.learner_id
            )
            if session_id is not None:
                query = query.filter(ReviewEventRow.session_id == session_id)
            if since is not None:
                query = query.filter(ReviewEventRow.created_at >= since)
            rows = query.order_by(ReviewEventRow.created_at, ReviewEventRow.event_id).all()
            return [
                ReviewEvent(
                    event_id=row.event_id,
                    session_id=row.session_id,
                    item_id=row.item_id,
                    item_type=ItemType(row.item_type),
                    grade=row.grade,
                    response_time_ms=row.response_time_ms,
                    created_at=as_utc(row.created_at),
                )
                for row in rows
            ]
        finally:
            session.close()

    # ---- Aggregates ----

    def upsert_daily_activity(self, activity: DailyActivity) -> None:
        if not activity.session_id:
            raise ValueError("Daily activity needs the contributing session_id")

        session = self._sessionmaker()
        try:
            key = (self.learner_id, activity.activity_date, activity.session_id)
            row = session.get(DailyActivityRow, key)
            if row is None:
                row = DailyActivityRow(
                    learner_id=self.learner_id,
                    activity_date=activity.activity_date,
                    session_id=activity.session_id,
                )
                session.add(row)
            row.reviews_count = activity.reviews_count
            row.correct_count = activity.correct_count
            row.time_spent_seconds = activity.time_spent_seconds
            row.sessions_count = activity.sessions_count
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to save daily activity: {exc}") from exc
        finally:
            session.close()

    def get_daily_activity(self, activity_date: date) -> DailyActivity:
        """Sum of every session's contribution to one day."""
        session = self._sessionmaker()
        try:
            reviews, correct, seconds, sessions = session.query(
                func.coalesce(func.sum(DailyActivityRow.reviews_count), 0),
                func.coalesce(func.sum(DailyActivityRow.correct_count), 0),
                func.coalesce(func.sum(DailyActivityRow.time_spent_seconds), 0),
                func.coalesce(func.sum(DailyActivityRow.sessions_count), 0),
            ).filter(
                DailyActivityRow.learner_id == self.learner_id,
                DailyActivityRow.activity_date == activity_date,
            ).one()
            return DailyActivity(
                activity_date=activity_date,
                reviews_count=int(reviews),
                correct_count=int(correct),
                time_spent_seconds=int(seconds),
                sessions_count=int(sessions),
            )
        finally:
            session.close()

    def upsert_learner_stats(self, stats: LearnerStats) -> None:
        if not stats.session_id:
            raise ValueError("Learner stats need the contributing session_id")

        session = self._sessionmaker()
        try:
            row = session.get(LearnerStatsRow, (self.learner_id, stats.session_id))
            if row is None:
                row = LearnerStatsRow(learner_id=self.learner_id, session_id=stats.session_id)
                session.add(row)
            row.total_reviews = stats.total_reviews
            row.total_time_seconds = stats.total_time_seconds
            row.total_sessions = stats.total_sessions
            row.last_study_date = stats.last_study_date
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Failed to save learner stats: {exc}") from exc
        finally:
            session.close()

    def get_learner_stats(self) -> LearnerStats:
        """Lifetime totals over every closed session."""
        session = self._sessionmaker()
        try:
            reviews, seconds, sessions, last_date = session.query(
                func.coalesce(func.sum(LearnerStatsRow.total_reviews), 0),
                func.coalesce(func.sum(LearnerStatsRow.total_time_seconds), 0),
                func.coalesce(func.sum(LearnerStatsRow.total_sessions), 0),
                func.max(LearnerStatsRow.last_study_date),
            ).filter(
                LearnerStatsRow.learner_id == self.learner_id
            ).one()
            return LearnerStats(
                total_reviews=int(reviews),
                total_time_seconds=int(seconds),
                total_sessions=int(sessions),
                last_study_date=last_date,
            )
        finally:
            session.close()
