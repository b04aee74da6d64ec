"""
Bayesian Knowledge Tracing engine for concept mastery.

Standard two-step update:

    Correct: P(L|obs) = P(L)(1-S) / [P(L)(1-S) + (1-P(L))G]
    Wrong:   P(L|obs) = P(L)S     / [P(L)S     + (1-P(L))(1-G)]
    Then:    P(L_new) = P(L|obs) + (1 - P(L|obs)) T
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Mapping, Optional

from review_core.bkt.constants import BKT_PARAMETERS, BktParameters, ItemType


def parameters_for(
    item_type: ItemType | str,
    table: Mapping[ItemType, BktParameters] = BKT_PARAMETERS
) -> BktParameters:
    """Look up the parameter set for an item type."""
    return table[ItemType(item_type)]


def _clamp(p: float) -> float:
    if math.isnan(p):
        return 0.0
    return max(0.0, min(1.0, p))


def posterior_given_obs(p_know: float, is_correct: bool, p_slip: float, p_guess: float) -> float:
    """Evidence step: revise P(known) given one observed answer."""
    p_know = _clamp(p_know)
    if is_correct:
        numerator = p_know * (1.0 - p_slip)
        denominator = numerator + (1.0 - p_know) * p_guess
    else:
        numerator = p_know * p_slip
        denominator = numerator + (1.0 - p_know) * (1.0 - p_guess)

    if denominator <= 0.0:
        # Observation impossible under the model; keep the prior
        return p_know
    return _clamp(numerator / denominator)


def apply_learning_transition(p_posterior: float, p_transit: float) -> float:
    """Transit step: chance of learning the concept before the next attempt."""
    return _clamp(p_posterior + (1.0 - p_posterior) * p_transit)


def update(
    p_know: float,
    is_correct: bool,
    item_type: ItemType | str = ItemType.FLASHCARD,
    table: Mapping[ItemType, BktParameters] = BKT_PARAMETERS
) -> float:
    """
    New mastery probability after one attempt.

    Output is always in [0, 1] and never NaN for p_know in [0, 1].
    """
    params = parameters_for(item_type, table)
    posterior = posterior_given_obs(p_know, is_correct, params.p_slip, params.p_guess)
    return apply_learning_transition(posterior, params.p_transit)


@dataclass(frozen=True)
class MasteryState:
    """Mastery estimate of one concept for one learner."""
    concept_id: str
    p_know: float
    p_transit: float
    p_slip: float
    p_guess: float
    keyword_id: Optional[str] = None
    total_attempts: int = 0
    correct_attempts: int = 0
    last_attempt_at: Optional[datetime] = None
    delta: float = 0.0

    @classmethod
    def new(
        cls,
        concept_id: str,
        item_type: ItemType | str = ItemType.FLASHCARD,
        keyword_id: Optional[str] = None
    ) -> "MasteryState":
        params = parameters_for(item_type)
        return cls(
            concept_id=concept_id,
            keyword_id=keyword_id,
            p_know=params.p_init,
            p_transit=params.p_transit,
            p_slip=params.p_slip,
            p_guess=params.p_guess,
        )


def apply_attempt(
    state: MasteryState,
    is_correct: bool,
    item_type: ItemType | str = ItemType.FLASHCARD,
    now: Optional[datetime] = None
) -> MasteryState:
    """
    Return the mastery state after one graded attempt on the concept.

    The stored p_transit/p_slip/p_guess follow the parameter set of the item
    type that produced the latest evidence.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    params = parameters_for(item_type)
    p_know = update(state.p_know, is_correct, item_type)

    return replace(
        state,
        p_know=p_know,
        p_transit=params.p_transit,
        p_slip=params.p_slip,
        p_guess=params.p_guess,
        total_attempts=state.total_attempts + 1,
        correct_attempts=state.correct_attempts + (1 if is_correct else 0),
        last_attempt_at=now,
        delta=p_know - state.p_know,
    )
