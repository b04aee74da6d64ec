"""
Tests for learner analytics.
"""

from datetime import date, timedelta

import pytest

from review_core.analytics import build_learner_dashboard, summarize_session
from review_core.analytics.metrics import (
    build_day_index,
    compute_average_daily_minutes,
    compute_daily_activity,
    compute_grade_distribution,
    compute_retention_percent,
    compute_session_minutes_daily,
    compute_streaks,
    study_days,
)
from review_core.analytics.queries import review_events_df
from review_core.fsrs import Grade, SchedulingState, advance
from review_core.records import ReviewEvent, ReviewSession


def event(session_id, position, item_id, grade, created_at):
    return ReviewEvent(
        event_id=f"{session_id}:{position}",
        session_id=session_id,
        item_id=item_id,
        grade=grade,
        created_at=created_at,
    )


@pytest.fixture
def events(now):
    day_two = now + timedelta(days=2)
    return [
        event("s1", 0, "a", 3, now),
        event("s1", 1, "b", 1, now + timedelta(minutes=4)),
        event("s1", 2, "b", 4, now + timedelta(minutes=10)),
        event("s2", 0, "c", 2, day_two),
        event("s2", 1, "a", 3, day_two + timedelta(minutes=5)),
    ]


def test_empty_events_frame():
    df = review_events_df([])
    assert df.empty
    assert "day_utc" in df.columns
    assert len(build_day_index(df)) == 0
    assert compute_retention_percent(df) == 0.0
    assert study_days(df) == []


def test_daily_activity_fills_gaps(events):
    df = review_events_df(events)
    day_index = build_day_index(df)
    daily = compute_daily_activity(df, day_index)

    assert len(daily) == 3
    assert daily["reviews"].tolist() == [3, 0, 2]
    assert daily["correct"].tolist() == [2, 0, 1]
    assert daily["sessions"].tolist() == [1, 0, 1]
    assert daily["retention_pct"].iloc[0] == pytest.approx(200 / 3)
    assert daily["retention_pct"].iloc[1] == 0.0


def test_retention_percent(events):
    assert compute_retention_percent(review_events_df(events)) == pytest.approx(60.0)


def test_session_minutes_and_average(events):
    df = review_events_df(events)
    minutes = compute_session_minutes_daily(df, build_day_index(df))
    assert minutes.tolist() == pytest.approx([10.0, 0.0, 5.0])
    assert compute_average_daily_minutes(minutes) == pytest.approx(7.5)


@pytest.mark.parametrize("days, today, expected", [
    ([], date(2026, 3, 10), (0, 0)),
    ([date(2026, 3, 10)], date(2026, 3, 10), (1, 1)),
    ([date(2026, 3, 8), date(2026, 3, 9)], date(2026, 3, 10), (2, 2)),
    ([date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 9)], date(2026, 3, 9), (1, 3)),
    ([date(2026, 3, 1), date(2026, 3, 2)], date(2026, 3, 10), (0, 2)),
    ([date(2026, 3, 9), date(2026, 3, 9), date(2026, 3, 10)], date(2026, 3, 10), (2, 2)),
])
def test_streaks(days, today, expected):
    assert compute_streaks(days, today) == expected


def test_grade_distribution_has_every_grade():
    assert compute_grade_distribution([1, 3, 3]) == {1: 1, 2: 0, 3: 2, 4: 0}


def test_summarize_session(events, now):
    session = ReviewSession(id="s1", started_at=now).close(now + timedelta(minutes=10), 3, 2)
    state_a, _ = advance(SchedulingState.new("a"), Grade.GOOD, now)
    state_b, _ = advance(SchedulingState.new("b"), Grade.EASY, now + timedelta(minutes=10))
    unrelated = SchedulingState(item_id="z", due_at=now)

    summary = summarize_session(session, events, [state_a, state_b, unrelated])
    assert summary.total_reviews == 3
    assert summary.correct_reviews == 2
    assert summary.correct_percent == pytest.approx(66.7)
    assert summary.grade_distribution == {1: 1, 2: 0, 3: 1, 4: 1}
    assert summary.duration_seconds == 600
    assert summary.next_review_at == state_a.due_at


def test_learner_dashboard_from_sql(sql_service, events, now):
    for e in events:
        sql_service.append_review_event(e)
    state, _ = advance(SchedulingState.new("a"), Grade.GOOD, now)
    sql_service.upsert_scheduling_state(state)
    sql_service.upsert_scheduling_state(SchedulingState.new("never-seen"))

    dashboard = build_learner_dashboard(sql_service, now=now + timedelta(days=2, hours=1))
    assert dashboard.total_reviews == 5
    assert dashboard.retention_percent == pytest.approx(60.0)
    assert dashboard.current_streak == 1
    assert dashboard.longest_streak == 1
    assert dashboard.average_daily_minutes == pytest.approx(7.5)
    assert dashboard.retained_items == 1
    assert dashboard.daily_activity["reviews"].sum() == 5
