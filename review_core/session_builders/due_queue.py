"""
Due-queue builder.

Selects the scheduling states that are due, joins them with their content and
returns them in a stable order. No side effects: the same inputs always give
the same ordered queue.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from review_core import config
from review_core.bkt.engine import MasteryState
from review_core.content.catalog import ContentCatalog, ContentItem
from review_core.fsrs.memory_state import SchedulingState
from review_core.session_builders.queue_types import QueuePriority, ReviewQueueItem

logger = logging.getLogger(__name__)


# Need-score weights (sum to 1)
OVERDUE_WEIGHT = 0.45
MASTERY_WEIGHT = 0.30
FRAGILITY_WEIGHT = 0.15
NOVELTY_WEIGHT = 0.10
GRACE_DAYS = 1.0

# Oldest timestamp, used to sort never-reviewed states
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def select_due_states(
    all_states: Sequence[SchedulingState],
    now: datetime
) -> list[SchedulingState]:
    """
    Keep states that are due (no due date, or due date not after now).

    States without an item id are orphans and are skipped.
    """
    return [s for s in all_states if s.item_id and s.is_due(now)]


def order_by_due(states: Sequence[SchedulingState]) -> list[SchedulingState]:
    """
    Overdue reviews first (oldest due date first), then never-reviewed items.
    Ties are broken by item id.
    """
    return sorted(
        states,
        key=lambda s: (s.due_at is None, s.due_at or _EPOCH, s.item_id)
    )


def need_score(
    state: SchedulingState,
    now: datetime,
    p_know: Optional[float] = None
) -> float:
    """
    Urgency of reviewing an item, in [0, 1].

    Combines four factors:
    - overdue: days past due relative to the grace period (1 when never reviewed)
    - mastery: 1 - p_know of the item's concept (0.5 when unknown)
    - fragility: lapses relative to exposures
    - novelty: 1 for never-reviewed items
    """
    if state.due_at is None:
        overdue = 1.0
    else:
        days_overdue = (now - state.due_at).total_seconds() / 86400.0
        overdue = max(0.0, min(1.0, days_overdue / GRACE_DAYS))

    need_mastery = 1.0 - p_know if p_know is not None else 0.5
    exposures = state.repetitions + state.lapses
    fragility = min(1.0, state.lapses / max(1, exposures + 1))
    novelty = 1.0 if state.is_new else 0.0

    score = (
        OVERDUE_WEIGHT * overdue
        + MASTERY_WEIGHT * need_mastery
        + FRAGILITY_WEIGHT * fragility
        + NOVELTY_WEIGHT * novelty
    )
    return max(0.0, min(1.0, score))


def fetch_content(
    item_ids: Sequence[str],
    catalog: ContentCatalog,
    batch_size: Optional[int] = None
) -> dict[str, ContentItem]:
    """
    Look up item content in parallel batches.

    A failed or missing lookup excludes only that item; it never aborts the
    whole load.
    """
    if batch_size is None:
        batch_size = config.get_queue_batch_size()
    batch_size = max(1, batch_size)

    found: dict[str, ContentItem] = {}
    if not item_ids:
        return found

    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(item_ids), batch_size):
            batch = item_ids[start:start + batch_size]
            futures = [executor.submit(catalog.get_item, item_id) for item_id in batch]
            for item_id, future in zip(batch, futures):
                try:
                    content = future.result()
                except Exception as exc:
                    logger.warning("Content lookup failed for item %s: %s", item_id, exc)
                    continue
                if content is None:
                    logger.info("Item %s has no content; skipping", item_id)
                    continue
                found[item_id] = content
    return found


def build_queue(
    all_states: Sequence[SchedulingState],
    now: datetime,
    catalog: ContentCatalog,
    priority: QueuePriority = "due",
    mastery_by_concept: Optional[Mapping[str, MasteryState]] = None,
    batch_size: Optional[int] = None
) -> list[ReviewQueueItem]:
    """
    Build the ordered review queue for `now`.

    Args:
        all_states: Every scheduling state of the learner
        now: Reference time for the due check
        catalog: Content lookup (inactive or deleted items are excluded)
        priority: "due" (due date order) or "need" (need score order)
        mastery_by_concept: Concept mastery used by the "need" order
        batch_size: Parallel lookups per batch

    Returns:
        Ordered list of ReviewQueueItem, without duplicates
    """
    due_states = order_by_due(select_due_states(all_states, now))

    # A learner has one state per item; keep the first if the source repeats one
    unique: dict[str, SchedulingState] = {}
    for state in due_states:
        unique.setdefault(state.item_id, state)

    contents = fetch_content(list(unique), catalog, batch_size)

    items = [
        ReviewQueueItem(state=state, content=contents[item_id])
        for item_id, state in unique.items()
        if item_id in contents and contents[item_id].is_available
    ]

    if priority == "need":
        mastery_by_concept = mastery_by_concept or {}

        def _score(item: ReviewQueueItem) -> float:
            mastery = mastery_by_concept.get(item.concept_id) if item.concept_id else None
            return need_score(item.state, now, mastery.p_know if mastery else None)

        items.sort(key=lambda item: (-_score(item), item.item_id))

    return items
