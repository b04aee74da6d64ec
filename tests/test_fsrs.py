"""
Tests for the FSRS memory model.
"""

from datetime import timedelta

import pytest

from review_core import fsrs
from review_core.errors import InvalidGradeError
from review_core.fsrs import Grade, ReviewState, SchedulingState


def reviewed_state(now, stability=5.0, difficulty=5.0, days_ago=5.0, repetitions=3, lapses=0):
    last = now - timedelta(days=days_ago)
    return SchedulingState(
        item_id="card-1",
        stability=stability,
        difficulty=difficulty,
        repetitions=repetitions,
        lapses=lapses,
        review_state=ReviewState.REVIEW,
        due_at=last + timedelta(days=stability),
        last_reviewed_at=last,
    )


SAMPLE_STATES = [
    dict(stability=0.5, difficulty=1.0, days_ago=0.0),
    dict(stability=1.0, difficulty=5.0, days_ago=1.0),
    dict(stability=5.0, difficulty=9.5, days_ago=20.0),
    dict(stability=40.0, difficulty=3.0, days_ago=10.0),
    dict(stability=300.0, difficulty=10.0, days_ago=400.0),
]


# ---- Retrievability ----

def test_retrievability_is_target_after_stability_days():
    assert fsrs.calculate_retrievability(10.0, 10.0) == pytest.approx(fsrs.R_TARGET)


def test_retrievability_is_one_right_after_review():
    assert fsrs.calculate_retrievability(3.0, 0.0) == 1.0


def test_retrievability_of_new_item_is_one(now):
    assert fsrs.retrievability_at(SchedulingState.new("x"), now) == 1.0


def test_retrievability_decays_with_time(now):
    state = reviewed_state(now, days_ago=1.0)
    later = now + timedelta(days=30)
    assert fsrs.retrievability_at(state, later) < fsrs.retrievability_at(state, now)


# ---- Success ----

@pytest.mark.parametrize("sample", SAMPLE_STATES)
@pytest.mark.parametrize("grade", [Grade.HARD, Grade.GOOD, Grade.EASY])
def test_success_never_decreases_stability(now, sample, grade):
    state = reviewed_state(now, **sample)
    new_state, _ = fsrs.advance(state, grade, now)
    assert new_state.stability >= state.stability


@pytest.mark.parametrize("sample", SAMPLE_STATES)
def test_stability_gain_is_monotonic_in_grade(now, sample):
    state = reviewed_state(now, **sample)
    hard, _ = fsrs.advance(state, Grade.HARD, now)
    good, _ = fsrs.advance(state, Grade.GOOD, now)
    easy, _ = fsrs.advance(state, Grade.EASY, now)
    assert hard.stability <= good.stability <= easy.stability


def test_success_on_new_item_never_lowers_stability(now):
    state = SchedulingState.new("card-1")
    for grade in (Grade.HARD, Grade.GOOD, Grade.EASY):
        new_state, _ = fsrs.advance(state, grade, now)
        assert new_state.stability >= state.stability


def test_success_increments_repetitions_and_enters_review(now):
    state = reviewed_state(now, repetitions=2)
    new_state, due_at = fsrs.advance(state, Grade.GOOD, now)
    assert new_state.repetitions == 3
    assert new_state.lapses == 0
    assert new_state.review_state == ReviewState.REVIEW
    assert new_state.last_reviewed_at == now
    assert new_state.due_at == due_at


def test_difficulty_moves_down_on_easy_and_up_on_hard(now):
    state = reviewed_state(now, difficulty=5.0)
    easy, _ = fsrs.advance(state, Grade.EASY, now)
    hard, _ = fsrs.advance(state, Grade.HARD, now)
    assert easy.difficulty < 5.0 < hard.difficulty


def test_difficulty_stays_in_range(now):
    top = reviewed_state(now, difficulty=fsrs.D_MAX)
    bottom = reviewed_state(now, difficulty=fsrs.D_MIN)
    assert fsrs.advance(top, Grade.AGAIN, now)[0].difficulty == fsrs.D_MAX
    assert fsrs.advance(bottom, Grade.EASY, now)[0].difficulty == fsrs.D_MIN


# ---- Lapse ----

@pytest.mark.parametrize("sample", SAMPLE_STATES)
def test_lapse_increments_lapses_and_resets_repetitions(now, sample):
    state = reviewed_state(now, lapses=2, **sample)
    new_state, due_at = fsrs.advance(state, Grade.AGAIN, now)
    assert new_state.lapses == 3
    assert new_state.repetitions == 0
    assert new_state.stability > 0
    assert new_state.review_state == ReviewState.RELEARNING
    assert timedelta(minutes=10) <= due_at - now <= timedelta(days=1)


def test_lapse_long_overdue_still_cuts_stability(now):
    state = reviewed_state(now, stability=30.0, days_ago=3000.0)
    assert fsrs.retrievability_at(state, now) < 0.01

    new_state, _ = fsrs.advance(state, Grade.AGAIN, now)
    assert new_state.stability <= 30.0 * (1 - fsrs.DEFAULT_PARAMETERS.lapse_min_decay)


def test_lapse_right_after_review_uses_retrievability(now):
    state = reviewed_state(now, stability=10.0, days_ago=0.0)
    new_state, _ = fsrs.advance(state, Grade.AGAIN, now)
    assert new_state.stability == pytest.approx(10.0 * (1 - fsrs.DEFAULT_PARAMETERS.lapse_decay))



def test_lapse_on_new_item(now):
    new_state, due_at = fsrs.advance(SchedulingState.new("card-1"), Grade.AGAIN, now)
    assert new_state.lapses == 1
    assert new_state.repetitions == 0
    assert new_state.stability == pytest.approx(0.5)
    assert new_state.review_state == ReviewState.RELEARNING
    assert due_at - now == timedelta(minutes=180)


# ---- New item, grade 4 ----

def test_easy_on_new_item(now):
    new_state, due_at = fsrs.advance(SchedulingState.new("card-1"), Grade.EASY, now)
    assert new_state.review_state == ReviewState.REVIEW
    assert new_state.repetitions == 1
    assert new_state.stability == pytest.approx(4.5)
    assert new_state.difficulty == pytest.approx(4.2)
    assert due_at == now + timedelta(days=4.5)


# ---- Purity and due dates ----

@pytest.mark.parametrize("grade", [1, 2, 3, 4])
def test_advance_is_deterministic(now, grade):
    state = reviewed_state(now)
    assert fsrs.advance(state, grade, now) == fsrs.advance(state, grade, now)


def test_advance_does_not_modify_input(now):
    state = reviewed_state(now)
    snapshot = SchedulingState(**state.__dict__)
    fsrs.advance(state, Grade.AGAIN, now)
    assert state == snapshot


@pytest.mark.parametrize("sample", SAMPLE_STATES + [dict(stability=0.5, difficulty=10.0, days_ago=0.0)])
@pytest.mark.parametrize("grade", [1, 2, 3, 4])
def test_due_at_is_never_before_now(now, sample, grade):
    _, due_at = fsrs.advance(reviewed_state(now, **sample), grade, now)
    assert due_at >= now


def test_review_interval_is_clamped():
    assert fsrs.review_interval(0.5) == timedelta(days=1)
    assert fsrs.review_interval(1000.0) == timedelta(days=365)


@pytest.mark.parametrize("bad", [0, 5, -1, True, "3", None])
def test_invalid_grade_raises(now, bad):
    with pytest.raises(InvalidGradeError):
        fsrs.advance(SchedulingState.new("card-1"), bad, now)


def test_invalid_grade_is_a_value_error(now):
    with pytest.raises(ValueError):
        fsrs.to_grade(7)


def test_state_rejects_non_positive_stability():
    with pytest.raises(ValueError):
        SchedulingState(item_id="x", stability=0.0)


def test_state_is_due(now):
    assert SchedulingState.new("x").is_due(now)
    future = SchedulingState(item_id="x", due_at=now + timedelta(hours=1))
    assert not future.is_due(now)
    assert SchedulingState(item_id="x", due_at=now).is_due(now)
