"""
Service layer to assemble learner dashboards and session summaries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from review_core.analytics.metrics import (
    build_day_index,
    compute_average_daily_minutes,
    compute_daily_activity,
    compute_grade_distribution,
    compute_retained_count,
    compute_retention_percent,
    compute_session_minutes_daily,
    compute_streaks,
    study_days,
)
from review_core.analytics.queries import load_review_events_df, scheduling_states_df
from review_core.analytics.types import LearnerDashboard, SessionSummary
from review_core.fsrs.constants import R_TARGET
from review_core.fsrs.memory_state import SchedulingState
from review_core.persistence.service import SqlPersistenceService
from review_core.records import ReviewEvent, ReviewSession


def build_learner_dashboard(
    service: SqlPersistenceService,
    now: Optional[datetime] = None
) -> LearnerDashboard:
    """
    Build all KPI values and series of the learner's progress page.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    events_df = load_review_events_df(service)
    day_index = build_day_index(events_df)
    minutes_daily = compute_session_minutes_daily(events_df, day_index)
    current_streak, longest_streak = compute_streaks(study_days(events_df), now.date())
    states_df = scheduling_states_df(service.get_scheduling_states(), now)

    return LearnerDashboard(
        total_reviews=len(events_df),
        retention_percent=compute_retention_percent(events_df),
        current_streak=current_streak,
        longest_streak=longest_streak,
        average_daily_minutes=compute_average_daily_minutes(minutes_daily),
        retained_items=compute_retained_count(states_df, R_TARGET),
        daily_activity=compute_daily_activity(events_df, day_index),
        study_minutes_daily=minutes_daily,
    )


def summarize_session(
    session: ReviewSession,
    events: Sequence[ReviewEvent],
    states: Sequence[SchedulingState] = ()
) -> SessionSummary:
    """
    Recap of one closed session.

    `events` may contain other sessions' events; only this session's count.
    `states` are the scheduling states after the session; the earliest due
    date among the reviewed items is the next-review hint.
    """
    grades = [e.grade for e in events if e.session_id == session.id]
    reviewed = {e.item_id for e in events if e.session_id == session.id}
    due_dates = [s.due_at for s in states if s.item_id in reviewed and s.due_at is not None]

    total = session.total_reviews or len(grades)
    correct = session.correct_reviews if session.total_reviews else sum(1 for g in grades if g >= 3)
    return SessionSummary(
        session_id=session.id,
        total_reviews=total,
        correct_reviews=correct,
        correct_percent=round(correct / total * 100.0, 1) if total else 0.0,
        duration_seconds=session.duration_seconds,
        grade_distribution=compute_grade_distribution(grades),
        next_review_at=min(due_dates) if due_dates else None,
    )
