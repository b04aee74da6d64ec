"""
Metric computations for learner dashboards.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

import pandas as pd

from review_core.fsrs.constants import Grade


CORRECT_GRADE = int(Grade.GOOD)


def build_day_index(events_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the event range.
    """
    if events_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = events_df["day_utc"].min()
    end = events_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D", tz="UTC")


def compute_daily_activity(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.DataFrame:
    """
    Per-day reviews, correct reviews, sessions and retention percentage.

    Days without reviews are present with zeros (retention 0).
    """
    columns = ["reviews", "correct", "sessions", "retention_pct"]
    if events_df.empty or len(day_index) == 0:
        return pd.DataFrame(columns=columns, index=day_index)

    scoped = events_df.assign(correct=events_df["grade"] >= CORRECT_GRADE)
    daily = scoped.groupby("day_utc").agg(
        reviews=("grade", "size"),
        correct=("correct", "sum"),
        sessions=("session_id", "nunique"),
    )
    daily = daily.reindex(day_index, fill_value=0).astype("int64")
    daily["retention_pct"] = (
        (daily["correct"] / daily["reviews"].where(daily["reviews"] > 0)) * 100.0
    ).fillna(0.0)
    return daily[columns]


def compute_retention_percent(events_df: pd.DataFrame) -> float:
    """
    Share of reviews graded good or easy, in percent (0 without reviews).
    """
    if events_df.empty:
        return 0.0
    return float((events_df["grade"] >= CORRECT_GRADE).mean() * 100.0)


def compute_session_minutes_daily(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Daily study time in minutes, as the sum of per-session spans
    (last - first event of each session).
    """
    if events_df.empty or len(day_index) == 0:
        return pd.Series(dtype="float64")

    spans = events_df.dropna(subset=["session_id"]).groupby("session_id").agg(
        session_start=("timestamp", "min"),
        session_end=("timestamp", "max"),
    )
    if spans.empty:
        return pd.Series(0.0, index=day_index, dtype="float64")

    spans["minutes"] = (spans["session_end"] - spans["session_start"]).dt.total_seconds() / 60.0
    spans["day_utc"] = spans["session_start"].dt.floor("D")

    daily = spans.groupby("day_utc")["minutes"].sum()
    return daily.reindex(day_index, fill_value=0.0).astype("float64")


def compute_average_daily_minutes(minutes_daily: pd.Series) -> float:
    """
    Mean study minutes over the days the learner actually studied.
    """
    active = minutes_daily[minutes_daily > 0]
    if active.empty:
        return 0.0
    return float(active.mean())


def compute_streaks(study_days: Iterable[date], today: date) -> tuple[int, int]:
    """
    Current and longest run of consecutive study days.

    The current streak is still alive when the last study day was today or
    yesterday.
    """
    days = sorted(set(study_days))
    if not days:
        return 0, 0

    longest = run = 1
    for previous, day in zip(days, days[1:]):
        run = run + 1 if day - previous == timedelta(days=1) else 1
        longest = max(longest, run)

    current = 0
    if today - days[-1] <= timedelta(days=1):
        current = 1
        for previous, day in zip(reversed(days[:-1]), reversed(days[1:])):
            if day - previous != timedelta(days=1):
                break
            current += 1
    return current, longest


def study_days(events_df: pd.DataFrame) -> list[date]:
    """Distinct UTC days with at least one review."""
    if events_df.empty:
        return []
    return sorted({ts.date() for ts in events_df["day_utc"]})


def compute_grade_distribution(grades: Iterable[int]) -> dict[int, int]:
    """Count of each grade 1-4 (all four keys present)."""
    distribution = {int(g): 0 for g in Grade}
    for grade in grades:
        distribution[int(grade)] += 1
    return distribution


def compute_retained_count(states_df: pd.DataFrame, r_target: float) -> int:
    """
    Reviewed items whose retrievability is still at or above the target.
    """
    if states_df.empty:
        return 0
    reviewed = states_df[states_df["review_state"] != "new"]
    return int((reviewed["retrievability"] >= r_target).sum())
