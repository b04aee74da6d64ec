"""
Session builders: due-queue selection and ordering.
"""

from review_core.session_builders.due_queue import (
    build_queue,
    fetch_content,
    need_score,
    order_by_due,
    select_due_states,
)
from review_core.session_builders.queue_types import QueuePriority, ReviewQueueItem


__all__ = [
    "build_queue",
    "fetch_content",
    "need_score",
    "order_by_due",
    "select_due_states",
    "QueuePriority",
    "ReviewQueueItem",
]
