"""
Stability and Difficulty Updates

Implements the update rules applied after each graded review.

Key principles:
- Spaced, effortful success produces the largest stability gains
- Already-stable and difficult items gain less (diminishing returns)
- Failures are penalized more when recall was expected (high R)
- Difficulty reflects learning efficiency, not forgetting speed
"""

from __future__ import annotations

import math

from review_core.fsrs.constants import DEFAULT_PARAMETERS, FsrsParameters, Grade


def update_stability_on_success(
    stability: float,
    difficulty: float,
    retrievability: float,
    grade: Grade,
    params: FsrsParameters = DEFAULT_PARAMETERS
) -> float:
    """
    Grow stability after a successful retrieval (Hard/Good/Easy).

    Formula:
        SInc = 1 + exp(w_gain) * (D_MAX + 1 - D) * S^(-w_damp)
                 * (exp(w_space * (1 - R)) - 1) * m(grade)
        S_new = S * SInc

    SInc >= 1, so success never lowers stability. It grows with the grade,
    shrinks with difficulty, and shrinks as stability itself grows.

    Args:
        stability: Current stability (S)
        difficulty: Current difficulty (D), before this review's adjustment
        retrievability: Recall probability at review time (R)
        grade: HARD, GOOD or EASY
        params: Model coefficients

    Returns:
        New stability value
    """
    if grade == Grade.AGAIN:
        raise ValueError("Use update_stability_on_failure for AGAIN")

    difficulty_factor = params.d_max + 1.0 - difficulty
    stability_factor = stability ** (-params.stability_damping)
    spacing_factor = math.exp(params.spacing_effect * (1.0 - retrievability)) - 1.0

    increase = (
        math.exp(params.stability_gain)
        * difficulty_factor
        * stability_factor
        * spacing_factor
        * params.grade_multiplier[grade]
    )

    return max(params.s_min, stability * (1.0 + max(0.0, increase)))


def update_stability_on_failure(
    stability: float,
    retrievability: float,
    params: FsrsParameters = DEFAULT_PARAMETERS
) -> float:
    """
    Decay stability after a lapse.

    Formula:
        S_new = max(S_min, S * min(1 - k_fail * R, 1 - k_min))

    When R is near zero the first term barely decays S, so k_min sets a
    floor on how much a lapse removes.
    """
    factor = min(1.0 - params.lapse_decay * retrievability, 1.0 - params.lapse_min_decay)
    return max(params.s_min, stability * factor)


def update_difficulty(
    difficulty: float,
    grade: Grade,
    params: FsrsParameters = DEFAULT_PARAMETERS
) -> float:
    """
    Nudge difficulty by the grade's step, clipped to [D_MIN, D_MAX].
    """
    new_difficulty = difficulty + params.difficulty_delta[grade]
    return clip_difficulty(new_difficulty, params)


def clip_difficulty(difficulty: float, params: FsrsParameters = DEFAULT_PARAMETERS) -> float:
    return max(params.d_min, min(params.d_max, difficulty))
