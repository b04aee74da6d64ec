"""
BKT - Bayesian Knowledge Tracing

Per-concept mastery model of the review core.

Quick start:
    from review_core import bkt

    p = bkt.update(0.3, is_correct=True, item_type=bkt.ItemType.FLASHCARD)
"""

from review_core.bkt.constants import (
    BKT_PARAMETERS,
    LEARNING_THRESHOLD,
    MASTERED_THRESHOLD,
    MIN_ATTEMPTS_FOR_MASTERY,
    BktParameters,
    ItemType,
)
from review_core.bkt.engine import (
    MasteryState,
    apply_attempt,
    apply_learning_transition,
    parameters_for,
    posterior_given_obs,
    update,
)
from review_core.bkt.mastery import (
    MasteryColor,
    is_mastered,
    keyword_mastery,
    mastery_color,
    mastery_label,
)


__all__ = [
    "update",
    "apply_attempt",
    "posterior_given_obs",
    "apply_learning_transition",
    "parameters_for",
    "MasteryState",
    "ItemType",
    "BktParameters",
    "BKT_PARAMETERS",
    "MASTERED_THRESHOLD",
    "LEARNING_THRESHOLD",
    "MIN_ATTEMPTS_FOR_MASTERY",
    "MasteryColor",
    "mastery_color",
    "mastery_label",
    "keyword_mastery",
    "is_mastered",
]
