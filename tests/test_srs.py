from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from cross_trainer.srs.errors import InvalidInputError
from cross_trainer.srs.scheduler import (
    MIN_EASE_FACTOR,
    SchedulingState,
    ease_delta,
    schedule,
)


def _next_state(state: SchedulingState, quality: int, now: datetime) -> SchedulingState:
    result = schedule(state, quality, reviewed_at=now)
    return SchedulingState(
        ease_factor=result.ease_factor,
        interval_days=result.interval_days,
        times_correct=result.times_correct,
        times_incorrect=result.times_incorrect,
    )


def test_first_successful_review_schedules_one_day() -> None:
    now = datetime.now(timezone.utc)
    result = schedule(SchedulingState(), 5, reviewed_at=now)

    assert result.interval_days == 1
    assert result.ease_factor == pytest.approx(2.6)
    assert result.next_review_at == now + timedelta(days=1)
    assert result.times_correct == 1
    assert result.times_incorrect == 0


def test_review_sequence_grows_then_lapses() -> None:
    now = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
    state = SchedulingState()

    first = schedule(state, 5, reviewed_at=now)
    assert (first.interval_days, round(first.ease_factor, 2)) == (1, 2.6)

    state = _next_state(state, 5, now)
    second = schedule(state, 5, reviewed_at=now)
    assert (second.interval_days, round(second.ease_factor, 2)) == (6, 2.7)

    state = _next_state(state, 5, now)
    third = schedule(state, 4, reviewed_at=now)
    assert third.ease_factor == pytest.approx(2.7)
    assert third.interval_days == 16

    state = _next_state(state, 4, now)
    lapse = schedule(state, 1, reviewed_at=now)
    assert lapse.interval_days == 1
    assert lapse.ease_factor == pytest.approx(2.16)
    assert lapse.times_incorrect == 1
    assert lapse.times_correct == 3
    assert lapse.next_review_at == now + timedelta(days=1)


def test_failed_review_resets_interval_but_keeps_most_ease() -> None:
    now = datetime.now(timezone.utc)
    result = schedule(
        SchedulingState(ease_factor=2.2, interval_days=40, times_correct=6, times_incorrect=1),
        2,
        reviewed_at=now,
    )

    assert result.interval_days == 1
    assert result.ease_factor == pytest.approx(2.2 + ease_delta(2))
    assert result.times_incorrect == 2
    assert result.times_correct == 6


def test_first_success_after_initial_lapse_schedules_one_day() -> None:
    now = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
    state = _next_state(SchedulingState(), 1, now)

    first_success = schedule(state, 4, reviewed_at=now)
    assert first_success.interval_days == 1
    assert first_success.times_correct == 1
    assert first_success.times_incorrect == 1

    state = _next_state(state, 4, now)
    second_success = schedule(state, 4, reviewed_at=now)
    assert second_success.interval_days == 6


def test_ease_factor_never_drops_below_floor() -> None:
    now = datetime.now(timezone.utc)
    state = SchedulingState(ease_factor=1.35, interval_days=3, times_correct=2)

    for _ in range(5):
        result = schedule(state, 0, reviewed_at=now)
        assert result.ease_factor >= MIN_EASE_FACTOR
        state = _next_state(state, 0, now)

    assert state.ease_factor == MIN_EASE_FACTOR


def test_any_review_sequence_respects_invariants() -> None:
    now = datetime(2026, 1, 10, tzinfo=timezone.utc)
    for sequence in itertools.product([0, 2, 3, 5], repeat=4):
        state = SchedulingState()
        for quality in sequence:
            result = schedule(state, quality, reviewed_at=now)
            assert result.ease_factor >= MIN_EASE_FACTOR
            assert result.interval_days >= 1
            assert result.next_review_at > now
            if quality < 3:
                assert result.interval_days == 1
            state = _next_state(state, quality, now)
        assert state.times_correct + state.times_incorrect == len(sequence)


def test_success_after_unscheduled_long_history_is_at_least_one_day() -> None:
    result = schedule(SchedulingState(interval_days=0, times_correct=3), 3)
    assert result.interval_days >= 1


@pytest.mark.parametrize("quality", [-1, 6, 10])
def test_quality_out_of_range_is_rejected(quality: int) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        schedule(SchedulingState(), quality)
    assert excinfo.value.code == "INVALID_INPUT"


def test_non_integer_quality_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        schedule(SchedulingState(), 4.5)  # type: ignore[arg-type]


def test_response_time_does_not_change_schedule() -> None:
    now = datetime.now(timezone.utc)
    state = SchedulingState(ease_factor=2.5, interval_days=6, times_correct=2)

    fast = schedule(state, 4, 800, reviewed_at=now)
    slow = schedule(state, 4, 45_000, reviewed_at=now)

    assert fast == slow
