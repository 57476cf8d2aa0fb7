"""Spaced-repetition scheduling for cross and early-pair reviews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from cross_trainer.db.srs_items import DEFAULT_EASE_FACTOR, PASSING_QUALITY
from cross_trainer.srs.errors import InvalidInputError


MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5


@dataclass(slots=True)
class SchedulingState:
    """Scheduling fields of an item before a review."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    times_correct: int = 0
    times_incorrect: int = 0

    @property
    def growth_step(self) -> int:
        """Position in the interval growth chain. Lapses do not advance it."""
        return self.times_correct


@dataclass(slots=True)
class ReviewSchedule:
    """Calculated scheduling fields for an item after receiving a quality score."""

    ease_factor: float
    interval_days: int
    next_review_at: datetime
    times_correct: int
    times_incorrect: int


def is_passing(quality: int) -> bool:
    return quality >= PASSING_QUALITY


def validate_quality(quality: object) -> int:
    """Return ``quality`` unchanged or raise ``InvalidInputError``."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInputError(f"Quality must be an integer between 0 and 5, got {quality!r}.")
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidInputError(f"Quality must be between 0 and 5, got {quality}.")
    return quality


def ease_delta(quality: int) -> float:
    miss = MAX_QUALITY - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def schedule(
    state: SchedulingState,
    quality: int,
    response_time_ms: Optional[int] = None,
    *,
    reviewed_at: Optional[datetime] = None,
) -> ReviewSchedule:
    """Return the next schedule for an item using an SM-2 variant.

    The ease factor moves by the SM-2 delta on every review and is floored at
    1.3. A lapse (quality below 3) resets the interval to one day. A success
    grows the interval from the number of earlier successes, so lapses do not
    advance the chain: 1 day, then 6, then the previous interval multiplied by
    the new ease.

    ``response_time_ms`` is accepted for symmetry with the review record but
    does not influence the interval.
    """
    validate_quality(quality)
    if reviewed_at is None:
        reviewed_at = datetime.now(timezone.utc)

    ease_factor = max(MIN_EASE_FACTOR, (state.ease_factor or DEFAULT_EASE_FACTOR) + ease_delta(quality))
    current_interval = max(0, state.interval_days or 0)
    times_correct = state.times_correct
    times_incorrect = state.times_incorrect

    if not is_passing(quality):
        interval = 1
        times_incorrect += 1
    else:
        step = state.growth_step
        if step == 0:
            interval = 1
        elif step == 1:
            interval = 6
        else:
            interval = max(1, round(current_interval * ease_factor))
        times_correct += 1

    return ReviewSchedule(
        ease_factor=ease_factor,
        interval_days=interval,
        next_review_at=reviewed_at + timedelta(days=interval),
        times_correct=times_correct,
        times_incorrect=times_incorrect,
    )
