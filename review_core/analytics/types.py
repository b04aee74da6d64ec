"""
Types for learner dashboards and session summaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd


@dataclass(frozen=True)
class LearnerDashboard:
    """
    Precomputed KPIs and daily series for one learner.
    """
    total_reviews: int
    retention_percent: float
    current_streak: int
    longest_streak: int
    average_daily_minutes: float
    retained_items: int
    daily_activity: pd.DataFrame
    study_minutes_daily: pd.Series


@dataclass(frozen=True)
class SessionSummary:
    """
    End-of-session recap shown to the learner.
    """
    session_id: str
    total_reviews: int
    correct_reviews: int
    correct_percent: float
    duration_seconds: int
    grade_distribution: dict[int, int]
    next_review_at: Optional[datetime]
