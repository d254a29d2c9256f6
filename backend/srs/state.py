"""SRS state model: the per-word scheduling record and its rating scale.

Key concepts:
- Easiness factor (EF): multiplier controlling how fast intervals grow.
  Starts at 2.5, never drops below 1.3, capped by the scheduler.
- Interval: whole days until the next review. 0 means never reviewed.
- Repetitions: consecutive successful reviews since the last lapse.
- Correct streak: consecutive ratings of Good or better, for display.
- Rating: 1=Again, 2=Hard, 3=Good, 4=Easy
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import IntEnum

MIN_EASINESS_FACTOR = 1.3
DEFAULT_EASINESS_FACTOR = 2.5
MAX_EASINESS_FACTOR = 5.0

# Interval (days) at which a word counts as learned
MASTERED_INTERVAL_DAYS = 21


class Rating(IntEnum):
    """Learner's self-assessment of a single review."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def is_correct(self) -> bool:
        """Good and Easy count as correct for accuracy and streaks."""
        return self >= Rating.GOOD

    @property
    def label(self) -> str:
        return self.name.capitalize()


class WordState:
    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"
    MASTERED = "mastered"

    ALL = (NEW, LEARNING, REVIEWING, MASTERED)


@dataclass(frozen=True)
class SrsState:
    """Scheduling record for one learner-word pair."""

    easiness_factor: float = DEFAULT_EASINESS_FACTOR
    interval_days: int = 0
    repetitions: int = 0
    correct_streak: int = 0
    next_review_date: date | None = None
    last_reviewed_at: datetime | None = None
    word_id: int | None = None
    list_ids: frozenset[int] = frozenset()

    @property
    def is_new(self) -> bool:
        """Return True if the word has never been reviewed."""
        return self.last_reviewed_at is None

    @property
    def is_learned(self) -> bool:
        return self.interval_days >= MASTERED_INTERVAL_DAYS

    @property
    def word_state(self) -> str:
        """Classify the word for progress displays."""
        if self.repetitions == 0:
            return WordState.NEW
        if self.repetitions <= 2 and self.interval_days < 7:
            return WordState.LEARNING
        if self.interval_days > 30 or self.is_learned:
            return WordState.MASTERED
        return WordState.REVIEWING

    def normalized(self) -> "SrsState":
        """Return a copy with out-of-range stored values clamped.

        Persisted rows may be corrupted or written by older code; the
        scheduler never does arithmetic on values outside their domain.
        """
        return replace(
            self,
            easiness_factor=max(MIN_EASINESS_FACTOR, self.easiness_factor),
            interval_days=max(0, int(self.interval_days)),
            repetitions=max(0, int(self.repetitions)),
            correct_streak=max(0, int(self.correct_streak)),
        )


def default_state(word_id: int | None = None, list_ids: frozenset[int] = frozenset()) -> SrsState:
    """Create the state of a freshly saved, never-reviewed word."""
    return SrsState(word_id=word_id, list_ids=list_ids)
