"""
SQLAlchemy ORM Models for the review database

Defines scheduling state, mastery state, sessions, review events and the
per-session aggregate contributions. Every table is scoped by learner_id.
"""

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SchedulingStateRow(Base):
    """
    Persistent memory state for a single item of one learner.
    """
    __tablename__ = 'scheduling_states'

    learner_id = Column(String(255), primary_key=True, nullable=False)
    item_id = Column(String(255), primary_key=True, nullable=False)

    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    repetitions = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    review_state = Column(String(20), nullable=False, default="new")

    due_at = Column(DateTime(timezone=True), nullable=True)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<SchedulingStateRow({self.learner_id}, {self.item_id}, {self.review_state})>"


class MasteryStateRow(Base):
    """
    BKT estimate for one concept of one learner.
    """
    __tablename__ = 'mastery_states'

    learner_id = Column(String(255), primary_key=True, nullable=False)
    concept_id = Column(String(255), primary_key=True, nullable=False)
    keyword_id = Column(String(255), nullable=True)

    p_know = Column(Float, nullable=False)
    p_transit = Column(Float, nullable=False)
    p_slip = Column(Float, nullable=False)
    p_guess = Column(Float, nullable=False)
    delta = Column(Float, nullable=False, default=0.0)

    total_attempts = Column(Integer, nullable=False, default=0)
    correct_attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<MasteryStateRow({self.learner_id}, {self.concept_id}, p_know={self.p_know:.2f})>"


class ReviewSessionRow(Base):
    """
    One review session; ended_at is set when the session closes.
    """
    __tablename__ = 'review_sessions'

    id = Column(String(64), primary_key=True)
    learner_id = Column(String(255), nullable=False)

    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    total_reviews = Column(Integer, nullable=False, default=0)
    correct_reviews = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=False, default=0)


class ReviewEventRow(Base):
    """
    Log entry for a single grading action.
    """
    __tablename__ = 'review_events'
    __table_args__ = (
        Index('idx_review_events_learner_time', 'learner_id', 'created_at'),
    )

    event_id = Column(String(128), primary_key=True)
    learner_id = Column(String(255), nullable=False)
    session_id = Column(String(64), nullable=False)
    item_id = Column(String(255), nullable=False)
    item_type = Column(String(20), nullable=False)

    grade = Column(Integer, nullable=False)  # 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<ReviewEventRow({self.event_id}, {self.item_id}, grade={self.grade})>"


class DailyActivityRow(Base):
    """
    One session's contribution to a day's activity (summed at query time).
    """
    __tablename__ = 'daily_activity'

    learner_id = Column(String(255), primary_key=True, nullable=False)
    activity_date = Column(Date, primary_key=True, nullable=False)
    session_id = Column(String(64), primary_key=True, nullable=False)

    reviews_count = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    sessions_count = Column(Integer, nullable=False, default=0)


class LearnerStatsRow(Base):
    """
    One session's contribution to lifetime statistics (summed at query time).
    """
    __tablename__ = 'learner_stats'

    learner_id = Column(String(255), primary_key=True, nullable=False)
    session_id = Column(String(64), primary_key=True, nullable=False)

    total_reviews = Column(Integer, nullable=False, default=0)
    total_time_seconds = Column(Integer, nullable=False, default=0)
    total_sessions = Column(Integer, nullable=False, default=0)
    last_study_date = Column(Date, nullable=True)
