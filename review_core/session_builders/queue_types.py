"""
Typed queue models shared by the queue builder and the session machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from review_core.content.catalog import ContentItem
from review_core.fsrs.memory_state import SchedulingState


QueuePriority = Literal["due", "need"]


@dataclass(frozen=True)
class ReviewQueueItem:
    """
    One scheduling state joined with its content (derived each session).
    """
    state: SchedulingState
    content: ContentItem

    @property
    def item_id(self) -> str:
        return self.state.item_id

    @property
    def concept_id(self) -> str | None:
        return self.content.concept_id

    def with_state(self, state: SchedulingState) -> "ReviewQueueItem":
        return ReviewQueueItem(state=state, content=self.content)
