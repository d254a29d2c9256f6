"""SM-2 spaced repetition algorithm for a four-button rating scale.

Based on the SuperMemo SM-2 algorithm by Piotr Wozniak, adjusted for an
Again/Hard/Good/Easy interface:

- Again is a lapse: the repetition count resets and the word comes back
  tomorrow, with a lower easiness factor.
- Hard keeps the repetition count moving but grows the interval slowly
  and lowers the easiness factor.
- Good uses the classic staged intervals: 1 day, then 6 days, then
  interval * EF.
- Easy is Good with a 1.3x interval bonus and a higher easiness factor.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta

from backend.srs.state import (
    MAX_EASINESS_FACTOR,
    MIN_EASINESS_FACTOR,
    Rating,
    SrsState,
)

logger = logging.getLogger(__name__)

FIRST_INTERVAL = 1  # First successful review: 1 day
SECOND_INTERVAL = 6  # Second successful review: 6 days
LAPSE_INTERVAL = 1

HARD_INTERVAL_MULTIPLIER = 1.2
EASY_INTERVAL_BONUS = 1.3

AGAIN_EASINESS_PENALTY = 0.20
HARD_EASINESS_PENALTY = 0.15
EASY_EASINESS_BONUS = 0.15


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


class SM2Scheduler:
    """Pure SM-2 scheduler. Holds configuration only, never state."""

    def __init__(self, max_easiness_factor: float = MAX_EASINESS_FACTOR) -> None:
        self.max_easiness_factor = max(MIN_EASINESS_FACTOR, max_easiness_factor)

    def apply(self, state: SrsState, rating: Rating, now: datetime) -> SrsState:
        """Apply a review rating and return the new state.

        Args:
            state: Current state of the word. Out-of-range values are clamped.
            rating: The learner's rating (Again/Hard/Good/Easy).
            now: When the review happened.

        Returns:
            A new SrsState; the input is never modified.
        """
        rating = Rating(rating)
        current = state.normalized()
        ef = min(current.easiness_factor, self.max_easiness_factor)

        if rating == Rating.AGAIN:
            repetitions = 0
            correct_streak = 0
            interval = LAPSE_INTERVAL
            ef = max(MIN_EASINESS_FACTOR, ef - AGAIN_EASINESS_PENALTY)
        elif rating == Rating.HARD:
            repetitions = current.repetitions + 1
            correct_streak = 0
            base = max(1, current.interval_days)
            interval = max(1, round_half_up(base * HARD_INTERVAL_MULTIPLIER))
            ef = max(MIN_EASINESS_FACTOR, ef - HARD_EASINESS_PENALTY)
        else:
            repetitions = current.repetitions + 1
            correct_streak = current.correct_streak + 1
            interval = self._staged_interval(current.interval_days, repetitions, ef)
            if rating == Rating.EASY:
                interval = round_half_up(interval * EASY_INTERVAL_BONUS)
                ef = min(self.max_easiness_factor, ef + EASY_EASINESS_BONUS)

        new_state = replace(
            current,
            easiness_factor=round(ef, 4),
            interval_days=interval,
            repetitions=repetitions,
            correct_streak=correct_streak,
            last_reviewed_at=now,
            next_review_date=now.date() + timedelta(days=interval),
        )
        logger.debug(
            "Word %s rated %s: interval %d -> %d days, EF %.2f -> %.2f",
            state.word_id,
            rating.label,
            current.interval_days,
            interval,
            current.easiness_factor,
            new_state.easiness_factor,
        )
        return new_state

    def _staged_interval(self, interval_days: int, repetitions: int, ef: float) -> int:
        """Interval for a successful review, given the post-review repetition count."""
        if repetitions == 1:
            return FIRST_INTERVAL
        if repetitions == 2:
            return SECOND_INTERVAL
        return max(1, round_half_up(interval_days * ef))


_default_scheduler = SM2Scheduler()


def apply(state: SrsState, rating: Rating, now: datetime) -> SrsState:
    """Apply a rating with the default scheduler configuration."""
    return _default_scheduler.apply(state, rating, now)
