"""
Shared fixtures: fixed clock, file-backed SQLite database, in-memory
persistence and content catalog.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from review_core.content.catalog import ContentItem, InMemoryContentCatalog
from review_core.errors import PersistenceError
from review_core.persistence import database
from review_core.persistence.service import SqlPersistenceService
from review_core.session.tracking import TrackingWriter


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def tick(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingPersistence:
    """In-memory PersistenceService that records every write."""

    def __init__(self, states=(), mastery=()):
        self._lock = threading.Lock()
        self.scheduling = {s.item_id: s for s in states}
        self.mastery = {m.concept_id: m for m in mastery}
        self.events = []
        self.created_sessions = []
        self.closed_sessions = []
        self.daily = {}
        self.stats = {}
        self.scheduling_writes = []
        self.fail_loads = False

    def get_scheduling_states(self):
        if self.fail_loads:
            raise PersistenceError("backend unavailable", status_code=503)
        return list(self.scheduling.values())

    def upsert_scheduling_state(self, state):
        with self._lock:
            self.scheduling[state.item_id] = state
            self.scheduling_writes.append(state)

    def get_mastery_states(self, concept_id=None, keyword_id=None):
        return [
            m for m in self.mastery.values()
            if (concept_id is None or m.concept_id == concept_id)
            and (keyword_id is None or m.keyword_id == keyword_id)
        ]

    def upsert_mastery_state(self, state):
        with self._lock:
            self.mastery[state.concept_id] = state

    def create_session(self, session):
        with self._lock:
            self.created_sessions.append(session)
        return session.id

    def close_session(self, session):
        with self._lock:
            self.closed_sessions.append(session)

    def append_review_event(self, event):
        with self._lock:
            if all(e.event_id != event.event_id for e in self.events):
                self.events.append(event)

    def upsert_daily_activity(self, activity):
        with self._lock:
            self.daily[(activity.activity_date, activity.session_id)] = activity

    def upsert_learner_stats(self, stats):
        with self._lock:
            self.stats[stats.session_id] = stats


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_item():
    def _make(item_id, concept_id=None, item_type="flashcard", **kwargs):
        return ContentItem(
            item_id=item_id,
            front=f"front of {item_id}",
            back=f"back of {item_id}",
            item_type=item_type,
            concept_id=concept_id,
            **kwargs,
        )
    return _make


@pytest.fixture
def catalog():
    return InMemoryContentCatalog()


@pytest.fixture
def recording_persistence():
    return RecordingPersistence


@pytest.fixture
def writer():
    w = TrackingWriter(max_attempts=3, backoff_seconds=0)
    yield w
    w.shutdown()


@pytest.fixture
def engine(tmp_path):
    engine = database.get_engine(f"sqlite:///{tmp_path / 'review.db'}")
    database.init_db(engine)
    yield engine
    database.dispose_engines()


@pytest.fixture
def sql_service(engine):
    return SqlPersistenceService(learner_id="learner-1", engine=engine)
