"""
In-session review queue.

An immutable FIFO: every operation returns a new queue. Failed items are
re-appended at the end so they come back later in the same session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from review_core.session_builders.queue_types import ReviewQueueItem


@dataclass(frozen=True)
class ReviewQueue:
    items: tuple[ReviewQueueItem, ...] = ()

    @classmethod
    def of(cls, items: Iterable[ReviewQueueItem]) -> "ReviewQueue":
        return cls(tuple(items))

    @property
    def current(self) -> Optional[ReviewQueueItem]:
        return self.items[0] if self.items else None

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def advance(self) -> "ReviewQueue":
        """Drop the current item."""
        return ReviewQueue(self.items[1:])

    def requeue_current(self, item: ReviewQueueItem) -> "ReviewQueue":
        """
        Replace the current item with `item` at the end of the queue.

        `item` is the current item carrying its updated scheduling state.
        """
        if not self.items:
            raise IndexError("requeue_current on an empty queue")
        return ReviewQueue(self.items[1:] + (item,))

    def remaining_ids(self) -> list[str]:
        return [item.item_id for item in self.items]
