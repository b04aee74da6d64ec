"""
Mastery display helpers.

Keyword mastery = mean p_know of the keyword's concepts:
    green  >= 0.80 (mastered)
    yellow >= 0.50 (learning)
    red    <  0.50 (weak)
    gray   no data
"""

from __future__ import annotations

from typing import Iterable, Literal, Optional

from review_core.bkt.constants import (
    LEARNING_THRESHOLD,
    MASTERED_THRESHOLD,
    MIN_ATTEMPTS_FOR_MASTERY,
)
from review_core.bkt.engine import MasteryState


MasteryColor = Literal["green", "yellow", "red", "gray"]

MASTERY_LABELS: dict[str, str] = {
    "green": "Mastered",
    "yellow": "Learning",
    "red": "Weak",
    "gray": "No data",
}


def mastery_color(p_know: Optional[float]) -> MasteryColor:
    if p_know is None:
        return "gray"
    if p_know >= MASTERED_THRESHOLD:
        return "green"
    if p_know >= LEARNING_THRESHOLD:
        return "yellow"
    return "red"


def mastery_label(color: MasteryColor) -> str:
    return MASTERY_LABELS[color]


def keyword_mastery(states: Iterable[MasteryState]) -> Optional[float]:
    """
    Average p_know over a keyword's concept states (None when there is no data).
    """
    values = [s.p_know for s in states]
    if not values:
        return None
    return sum(values) / len(values)


def is_mastered(p_know: float, attempts: int) -> bool:
    """A concept is mastered when p_know clears the threshold with enough evidence."""
    return p_know >= MASTERED_THRESHOLD and attempts >= MIN_ATTEMPTS_FOR_MASTERY
