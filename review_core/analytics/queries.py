"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import pandas as pd

from review_core.fsrs.memory_state import SchedulingState, retrievability_at
from review_core.persistence.service import SqlPersistenceService
from review_core.records import ReviewEvent


EVENT_COLUMNS = ["item_id", "item_type", "grade", "timestamp", "session_id", "day_utc"]
STATE_COLUMNS = ["item_id", "review_state", "stability", "lapses", "due_at", "retrievability"]


def review_events_df(events: Sequence[ReviewEvent]) -> pd.DataFrame:
    """
    Turn review events into a dataframe sorted by time, with a UTC day column.
    """
    if not events:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    df = pd.DataFrame([
        {
            "item_id": e.item_id,
            "item_type": str(getattr(e.item_type, "value", e.item_type)),
            "grade": int(e.grade),
            "timestamp": e.created_at,
            "session_id": e.session_id,
        }
        for e in events
    ])
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df = df.dropna(subset=["item_id", "timestamp"])
    df["day_utc"] = df["timestamp"].dt.floor("D")
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def load_review_events_df(
    service: SqlPersistenceService,
    since: Optional[datetime] = None
) -> pd.DataFrame:
    """
    Load the learner's review events into a dataframe.
    """
    return review_events_df(service.get_review_events(since=since))


def scheduling_states_df(states: Sequence[SchedulingState], now: datetime) -> pd.DataFrame:
    """
    Current scheduling snapshots with their retrievability at `now`.
    """
    if not states:
        return pd.DataFrame(columns=STATE_COLUMNS)

    return pd.DataFrame([
        {
            "item_id": s.item_id,
            "review_state": s.review_state.value,
            "stability": s.stability,
            "lapses": s.lapses,
            "due_at": s.due_at,
            "retrievability": retrievability_at(s, now),
        }
        for s in states
    ])
