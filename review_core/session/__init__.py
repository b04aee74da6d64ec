"""
Review session: state machine, in-session queue, tracking writer and the
orchestrator that ties them together.
"""

from review_core.session.machine import (
    Phase,
    SessionState,
    can_grade,
    can_reveal,
    can_start,
    initial_state,
    transition,
)
from review_core.session.orchestrator import ReviewSessionOrchestrator
from review_core.session.review_queue import ReviewQueue
from review_core.session.tracking import FailedWrite, TrackingWriter


__all__ = [
    "ReviewSessionOrchestrator",
    "ReviewQueue",
    "TrackingWriter",
    "FailedWrite",
    "Phase",
    "SessionState",
    "transition",
    "initial_state",
    "can_start",
    "can_reveal",
    "can_grade",
]
