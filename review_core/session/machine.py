"""
Review session state machine.

A single pure transition function drives the session:

    transition(state, event) -> (new_state, effects)

Phases:
    LOADING   -> due queue is being fetched
    IDLE      -> queue known (possibly empty, possibly with a load error)
    REVIEWING -> items are being shown and graded
    FINISHED  -> queue exhausted, session closed

The machine never performs I/O. Effects describe the writes the driver must
issue; the driver feeds the results back in as events.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple, Union

from review_core.bkt.engine import MasteryState, apply_attempt
from review_core.errors import InvalidTransitionError
from review_core.fsrs.constants import Grade
from review_core.fsrs.memory_state import SchedulingState
from review_core.fsrs.scheduler import advance, to_grade
from review_core.records import DailyActivity, LearnerStats, ReviewEvent, ReviewSession
from review_core.session.review_queue import ReviewQueue
from review_core.session_builders.queue_types import ReviewQueueItem


CORRECT_GRADE = Grade.GOOD


class Phase(str, Enum):
    LOADING = "loading"
    IDLE = "idle"
    REVIEWING = "reviewing"
    FINISHED = "finished"


@dataclass(frozen=True)
class SessionState:
    """
    Snapshot of a review session.

    `grading` is set from the moment a grade is accepted until its effects
    have been handed to the writer; no second grade is accepted meanwhile.
    """
    phase: Phase = Phase.LOADING
    queue: ReviewQueue = field(default_factory=ReviewQueue)
    due_count: int = 0
    load_error: Optional[str] = None
    mastery: Mapping[str, MasteryState] = field(default_factory=dict)
    session: Optional[ReviewSession] = None
    revealed: bool = False
    grades: Tuple[int, ...] = ()
    grading: bool = False

    @property
    def current(self) -> Optional[ReviewQueueItem]:
        return self.queue.current

    @property
    def position(self) -> int:
        """Number of grading actions so far in this session."""
        return len(self.grades)

    @property
    def correct_count(self) -> int:
        return sum(1 for g in self.grades if g >= CORRECT_GRADE)


# ---- Events ----

@dataclass(frozen=True)
class LoadRequested:
    pass


@dataclass(frozen=True)
class QueueLoaded:
    items: Tuple[ReviewQueueItem, ...]
    mastery: Mapping[str, MasteryState] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadFailed:
    error: str


@dataclass(frozen=True)
class StartRequested:
    session_id: str
    now: datetime


@dataclass(frozen=True)
class RevealRequested:
    pass


@dataclass(frozen=True)
class GradeSubmitted:
    grade: int
    now: datetime
    response_time_ms: Optional[int] = None
    # Queue position the grade was issued for; rejects stale double submits
    position: Optional[int] = None


@dataclass(frozen=True)
class GradeDispatched:
    pass


@dataclass(frozen=True)
class AbandonRequested:
    pass


Event = Union[
    LoadRequested,
    QueueLoaded,
    LoadFailed,
    StartRequested,
    RevealRequested,
    GradeSubmitted,
    GradeDispatched,
    AbandonRequested,
]


# ---- Effects ----

@dataclass(frozen=True)
class FetchDueQueue:
    pass


@dataclass(frozen=True)
class RecordReviewEvent:
    event: ReviewEvent


@dataclass(frozen=True)
class WriteSchedulingState:
    state: SchedulingState


@dataclass(frozen=True)
class WriteMasteryState:
    state: MasteryState


@dataclass(frozen=True)
class CloseSession:
    session: ReviewSession


@dataclass(frozen=True)
class UpsertDailyActivity:
    activity: DailyActivity


@dataclass(frozen=True)
class UpsertLearnerStats:
    stats: LearnerStats


Effect = Union[
    FetchDueQueue,
    RecordReviewEvent,
    WriteSchedulingState,
    WriteMasteryState,
    CloseSession,
    UpsertDailyActivity,
    UpsertLearnerStats,
]

CLOSE_EFFECTS = (CloseSession, UpsertDailyActivity, UpsertLearnerStats)


# ---- Guards ----

def can_start(state: SessionState) -> bool:
    return state.phase == Phase.IDLE and not state.queue.is_empty


def can_reveal(state: SessionState) -> bool:
    return state.phase == Phase.REVIEWING and state.current is not None and not state.revealed


def can_grade(state: SessionState) -> bool:
    return (
        state.phase == Phase.REVIEWING
        and state.current is not None
        and state.revealed
        and not state.grading
    )


def _reject(state: SessionState, event: Event, reason: str) -> InvalidTransitionError:
    return InvalidTransitionError(state.phase.value, event, reason)


# ---- Transition ----

def initial_state() -> SessionState:
    return SessionState()


def transition(state: SessionState, event: Event) -> Tuple[SessionState, list[Effect]]:
    """
    Apply one event.

    Returns the new state and the effects to perform, in order. Raises
    InvalidTransitionError when the event is not valid in the current state,
    and InvalidGradeError for a grade outside 1-4.
    """
    if isinstance(event, LoadRequested):
        if state.phase == Phase.REVIEWING:
            raise _reject(state, event, "a session is in progress")
        return SessionState(phase=Phase.LOADING), [FetchDueQueue()]

    if isinstance(event, QueueLoaded):
        if state.phase != Phase.LOADING:
            raise _reject(state, event, "no load in progress")
        new_state = SessionState(
            phase=Phase.IDLE,
            queue=ReviewQueue.of(event.items),
            due_count=len(event.items),
            mastery=dict(event.mastery),
        )
        return new_state, []

    if isinstance(event, LoadFailed):
        if state.phase != Phase.LOADING:
            raise _reject(state, event, "no load in progress")
        return SessionState(phase=Phase.IDLE, load_error=event.error), []

    if isinstance(event, StartRequested):
        if state.phase != Phase.IDLE:
            raise _reject(state, event, "session can only start from idle")
        if state.queue.is_empty:
            raise _reject(state, event, "no items are due")
        new_state = replace(
            state,
            phase=Phase.REVIEWING,
            session=ReviewSession(id=event.session_id, started_at=event.now),
            revealed=False,
            grades=(),
            grading=False,
        )
        return new_state, []

    if isinstance(event, RevealRequested):
        if state.phase != Phase.REVIEWING or state.current is None:
            raise _reject(state, event, "no item to reveal")
        if state.revealed:
            return state, []
        return replace(state, revealed=True), []

    if isinstance(event, GradeSubmitted):
        return _grade(state, event)

    if isinstance(event, GradeDispatched):
        if not state.grading:
            raise _reject(state, event, "no grade in flight")
        return replace(state, grading=False), []

    if isinstance(event, AbandonRequested):
        if state.phase != Phase.REVIEWING:
            raise _reject(state, event, "no session in progress")
        if state.grading:
            raise _reject(state, event, "a grade is still being dispatched")
        # Remaining items stay queued; nothing of the session record is written
        new_state = replace(
            state,
            phase=Phase.IDLE,
            due_count=len(state.queue),
            session=None,
            revealed=False,
            grades=(),
        )
        return new_state, []

    raise TypeError(f"Unknown event: {event!r}")


def _grade(state: SessionState, event: GradeSubmitted) -> Tuple[SessionState, list[Effect]]:
    if state.phase != Phase.REVIEWING:
        raise _reject(state, event, "no session in progress")
    if state.grading:
        raise _reject(state, event, "previous grade is still being dispatched")
    item = state.current
    if item is None:
        raise _reject(state, event, "no current item")
    if not state.revealed:
        raise _reject(state, event, "answer not revealed yet")
    if event.position is not None and event.position != state.position:
        raise _reject(state, event, f"position {event.position} was already graded")

    grade = to_grade(event.grade)
    session = state.session
    now = event.now

    review_event = ReviewEvent(
        event_id=f"{session.id}:{state.position}",
        session_id=session.id,
        item_id=item.item_id,
        item_type=item.content.item_type,
        grade=int(grade),
        response_time_ms=event.response_time_ms,
        created_at=now,
    )
    new_item_state, _ = advance(item.state, grade, now)
    effects: list[Effect] = [
        RecordReviewEvent(review_event),
        WriteSchedulingState(new_item_state),
    ]

    mastery = state.mastery
    if item.concept_id:
        prior = mastery.get(item.concept_id) or MasteryState.new(
            item.concept_id, item.content.item_type, item.content.keyword_id
        )
        updated = apply_attempt(prior, grade >= CORRECT_GRADE, item.content.item_type, now)
        mastery = {**mastery, item.concept_id: updated}
        effects.append(WriteMasteryState(updated))

    if grade == Grade.AGAIN:
        queue = state.queue.requeue_current(item.with_state(new_item_state))
    else:
        queue = state.queue.advance()

    new_state = replace(
        state,
        queue=queue,
        mastery=mastery,
        revealed=False,
        grades=state.grades + (int(grade),),
        grading=True,
    )

    if queue.is_empty:
        new_state, close_effects = _finish(new_state, now)
        effects.extend(close_effects)

    return new_state, effects


def _finish(state: SessionState, now: datetime) -> Tuple[SessionState, list[Effect]]:
    """Close the session and emit the three aggregate writes."""
    closed = state.session.close(
        ended_at=now,
        total_reviews=len(state.grades),
        correct_reviews=state.correct_count,
    )
    study_date = now.astimezone(timezone.utc).date()
    effects: list[Effect] = [
        CloseSession(closed),
        UpsertDailyActivity(DailyActivity(
            activity_date=study_date,
            reviews_count=closed.total_reviews,
            correct_count=closed.correct_reviews,
            time_spent_seconds=closed.duration_seconds,
            sessions_count=1,
            session_id=closed.id,
        )),
        UpsertLearnerStats(LearnerStats(
            total_reviews=closed.total_reviews,
            total_time_seconds=closed.duration_seconds,
            total_sessions=1,
            last_study_date=study_date,
            session_id=closed.id,
        )),
    ]
    return replace(state, phase=Phase.FINISHED, session=closed, due_count=0), effects


def split_close_effects(effects: Sequence[Effect]) -> Tuple[list[Effect], list[Effect]]:
    """Separate per-grade tracking writes from the session close batch."""
    tracking = [e for e in effects if not isinstance(e, CLOSE_EFFECTS)]
    closing = [e for e in effects if isinstance(e, CLOSE_EFFECTS)]
    return tracking, closing
