"""
Exception types raised by the review core.

Load failures are recoverable and surface to the learner. Tracking-write
failures are logged and never interrupt a session. Invalid grades and
invalid transitions are programming errors.
"""

from __future__ import annotations


class ReviewCoreError(Exception):
    """Base class for review core errors."""


class InvalidGradeError(ReviewCoreError, ValueError):
    """Grade outside 1-4."""


class InvalidTransitionError(ReviewCoreError):
    """Event not accepted by the review session state machine in its current state."""

    def __init__(self, phase: str, event: object, reason: str):
        self.phase = phase
        self.event = event
        self.reason = reason
        super().__init__(f"{type(event).__name__} rejected in phase '{phase}': {reason}")


class QueueLoadError(ReviewCoreError):
    """The due queue could not be fetched."""


class ContentLookupError(ReviewCoreError):
    """A single content item could not be fetched from the catalog."""


class PersistenceError(ReviewCoreError):
    """The persistence service rejected or failed a request."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
