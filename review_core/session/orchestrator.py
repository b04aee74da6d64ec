"""
Review Session Orchestrator

Drives the session state machine against real collaborators:
- loads the due queue from persistence and the content catalog
- stamps events with the clock and measures response times
- hands every write effect to the background TrackingWriter

All learner input (buttons, keyboard) goes through reveal() and grade().
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

from review_core.content.catalog import ContentCatalog
from review_core.persistence.service import PersistenceService
from review_core.records import ReviewSession
from review_core.session import machine
from review_core.session.machine import (
    AbandonRequested,
    CloseSession,
    Effect,
    FetchDueQueue,
    GradeDispatched,
    GradeSubmitted,
    LoadFailed,
    LoadRequested,
    Phase,
    QueueLoaded,
    RecordReviewEvent,
    RevealRequested,
    SessionState,
    StartRequested,
    UpsertDailyActivity,
    UpsertLearnerStats,
    WriteMasteryState,
    WriteSchedulingState,
)
from review_core.session.tracking import TrackingWriter
from review_core.session_builders.due_queue import build_queue
from review_core.session_builders.queue_types import QueuePriority, ReviewQueueItem

logger = logging.getLogger(__name__)

REVEAL_KEYS = frozenset({" ", "space", "enter", "return", "\n", "\r"})
GRADE_KEYS = {"1": 1, "2": 2, "3": 3, "4": 4}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewSessionOrchestrator:
    """
    One learner's review session.

    Typical flow:
        orchestrator.load()
        if orchestrator.can_start():
            orchestrator.start()
            orchestrator.reveal()
            orchestrator.grade(3)
            ...
    """

    def __init__(
        self,
        persistence: PersistenceService,
        catalog: ContentCatalog,
        writer: Optional[TrackingWriter] = None,
        clock: Optional[Callable[[], datetime]] = None,
        priority: QueuePriority = "due",
        batch_size: Optional[int] = None
    ):
        self.persistence = persistence
        self.catalog = catalog
        self.priority = priority
        self.batch_size = batch_size
        self._clock = clock or utc_now
        self._owns_writer = writer is None
        self.writer = writer or TrackingWriter()

        self._lock = threading.RLock()
        self._state = machine.initial_state()
        self._shown_at: Optional[datetime] = None

    # ---- State ----

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def current_item(self) -> Optional[ReviewQueueItem]:
        return self._state.current

    @property
    def due_count(self) -> int:
        return self._state.due_count

    @property
    def load_error(self) -> Optional[str]:
        return self._state.load_error

    @property
    def session(self) -> Optional[ReviewSession]:
        return self._state.session

    def can_start(self) -> bool:
        return machine.can_start(self._state)

    def can_grade(self) -> bool:
        return machine.can_grade(self._state)

    # ---- Learner actions ----

    def load(self) -> SessionState:
        """Fetch the due queue. Failures leave the session IDLE with load_error set."""
        with self._lock:
            for effect in self._dispatch(LoadRequested()):
                if isinstance(effect, FetchDueQueue):
                    self._fetch_due_queue()
            return self._state

    def start(self) -> SessionState:
        with self._lock:
            now = self._clock()
            self._dispatch(StartRequested(session_id=uuid.uuid4().hex, now=now))
            self._shown_at = now
            logger.info("Review session %s started with %d items",
                        self._state.session.id, len(self._state.queue))
            return self._state

    def reveal(self) -> SessionState:
        with self._lock:
            self._dispatch(RevealRequested())
            return self._state

    def grade(self, grade: int, response_time_ms: Optional[int] = None) -> SessionState:
        """
        Grade the current item (1=forgot, 2=hard, 3=good, 4=easy).

        Writes are queued on the tracking writer; this call never waits for
        them.
        """
        with self._lock:
            now = self._clock()
            if response_time_ms is None and self._shown_at is not None:
                response_time_ms = max(0, int((now - self._shown_at).total_seconds() * 1000))

            effects = self._dispatch(GradeSubmitted(
                grade=grade,
                now=now,
                response_time_ms=response_time_ms,
                position=self._state.position,
            ))
            try:
                self._perform(effects)
            finally:
                self._dispatch(GradeDispatched())

            self._shown_at = now if self._state.phase == Phase.REVIEWING else None
            if self._state.phase == Phase.FINISHED:
                session = self._state.session
                logger.info("Review session %s finished: %d/%d correct in %ds",
                            session.id, session.correct_reviews,
                            session.total_reviews, session.duration_seconds)
            return self._state

    def handle_key(self, key: str) -> bool:
        """
        Keyboard input: space/enter reveals, 1-4 grades.

        Keys that are not valid in the current state are ignored. Returns
        True when the key triggered an action.
        """
        normalized = key if len(key) == 1 else key.lower()
        with self._lock:
            if normalized in REVEAL_KEYS:
                if not machine.can_reveal(self._state):
                    return False
                self.reveal()
                return True
            if normalized in GRADE_KEYS:
                if not machine.can_grade(self._state):
                    return False
                self.grade(GRADE_KEYS[normalized])
                return True
        return False

    def abandon(self) -> SessionState:
        """Leave the session; grades already given stay recorded."""
        with self._lock:
            session_id = self._state.session.id if self._state.session else None
            self._dispatch(AbandonRequested())
            self._shown_at = None
            logger.info("Review session %s abandoned with %d items left",
                        session_id, self._state.due_count)
            return self._state

    # ---- Writes ----

    def wait_for_writes(self, timeout: Optional[float] = None) -> bool:
        return self.writer.flush(timeout)

    def close(self) -> None:
        """Drain pending writes and stop the writer if this orchestrator created it."""
        if self._owns_writer:
            self.writer.shutdown()

    # ---- Internals ----

    def _dispatch(self, event: machine.Event) -> list[Effect]:
        new_state, effects = machine.transition(self._state, event)
        self._state = new_state
        return effects

    def _fetch_due_queue(self) -> None:
        try:
            states = self.persistence.get_scheduling_states()
            mastery = {m.concept_id: m for m in self.persistence.get_mastery_states()}
            items = build_queue(
                states,
                self._clock(),
                self.catalog,
                priority=self.priority,
                mastery_by_concept=mastery,
                batch_size=self.batch_size,
            )
        except Exception as exc:
            logger.exception("Loading the due queue failed")
            self._dispatch(LoadFailed(error=str(exc)))
            return

        logger.info("Loaded %d due items (of %d scheduling states)", len(items), len(states))
        self._dispatch(QueueLoaded(items=tuple(items), mastery=mastery))

    def _perform(self, effects: list[Effect]) -> None:
        tracking, closing = machine.split_close_effects(effects)
        for effect in tracking:
            self.writer.enqueue(*self._write_for(effect))
        for effect in closing:
            if isinstance(effect, CloseSession):
                self.writer.enqueue(f"session-create {effect.session.id}",
                                    partial(self._create_session, effect.session))
        if closing:
            self.writer.enqueue_concurrent([self._write_for(effect) for effect in closing])

    def _write_for(self, effect: Effect) -> tuple[str, Callable[[], object]]:
        service = self.persistence
        if isinstance(effect, RecordReviewEvent):
            return f"review-event {effect.event.event_id}", partial(service.append_review_event, effect.event)
        if isinstance(effect, WriteSchedulingState):
            return f"scheduling-state {effect.state.item_id}", partial(service.upsert_scheduling_state, effect.state)
        if isinstance(effect, WriteMasteryState):
            return f"mastery-state {effect.state.concept_id}", partial(service.upsert_mastery_state, effect.state)
        if isinstance(effect, CloseSession):
            return f"session {effect.session.id}", partial(service.close_session, effect.session)
        if isinstance(effect, UpsertDailyActivity):
            return f"daily-activity {effect.activity.activity_date}", partial(service.upsert_daily_activity, effect.activity)
        if isinstance(effect, UpsertLearnerStats):
            return "learner-stats", partial(service.upsert_learner_stats, effect.stats)
        raise TypeError(f"Unexpected effect: {effect!r}")

    def _create_session(self, closed: ReviewSession) -> None:
        """
        The session record is only written once the session is complete.

        The local id is what the review events and aggregates carry, so it
        stays the session's id even if the backend reports another one.
        """
        session_id = self.persistence.create_session(
            ReviewSession(id=closed.id, started_at=closed.started_at)
        )
        if session_id != closed.id:
            logger.error("Backend stored session %s under id %s; keeping %s",
                         closed.id, session_id, closed.id)
