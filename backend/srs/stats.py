"""Review forecast, practice streaks and progress rollups.

Everything here is a pure function over SRS states or aggregate counts;
callers pass in the current day explicitly.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta

from backend.srs.state import DEFAULT_EASINESS_FACTOR, Rating, SrsState, WordState


@dataclass(frozen=True)
class ForecastDay:
    date: date
    count: int


@dataclass(frozen=True)
class ActivityDay:
    date: date
    count: int


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int


def forecast(states: list[SrsState], from_date: date, days: int) -> list[ForecastDay]:
    """Count the reviews due on each of the next ``days`` days.

    Words already overdue on ``from_date`` are counted on day 0. Words with
    no scheduled date are not counted.
    """
    if days <= 0:
        return []

    counts = [0] * days
    for state in states:
        if state.next_review_date is None:
            continue
        offset = max(0, (state.next_review_date - from_date).days)
        if offset < days:
            counts[offset] += 1

    return [
        ForecastDay(date=from_date + timedelta(days=i), count=count)
        for i, count in enumerate(counts)
    ]


def activity(dates: list[date], today: date, days: int) -> list[ActivityDay]:
    """Count events per day over the ``days`` days ending on ``today``.

    Returns one entry per day, oldest first, including days with no events.
    Dates outside the window are ignored.
    """
    if days <= 0:
        return []

    start = today - timedelta(days=days - 1)
    counts = [0] * days
    for day in dates:
        offset = (day - start).days
        if 0 <= offset < days:
            counts[offset] += 1

    return [
        ActivityDay(date=start + timedelta(days=i), count=count)
        for i, count in enumerate(counts)
    ]


def mastered_this_week(states: list[SrsState], today: date) -> int:
    """Count mastered words whose last review was in the past 7 days."""
    week_ago = today - timedelta(days=7)
    return sum(
        1
        for s in states
        if s.is_learned
        and s.last_reviewed_at is not None
        and s.last_reviewed_at.date() >= week_ago
    )


def record_session(
    prior_longest: int,
    prior_current: int,
    last_practice_date: date | None,
    today: date,
) -> StreakUpdate:
    """Fold one completed practice session into the learner's streak.

    Practicing twice on the same day does not extend the streak; practicing
    on consecutive days does; any gap (or a first session) starts over at 1.
    A last practice date after ``today`` (clock skew between clients) counts
    as the same day.
    """
    if last_practice_date is not None and last_practice_date >= today:
        current = prior_current
    elif last_practice_date == today - timedelta(days=1):
        current = prior_current + 1
    else:
        current = 1

    return StreakUpdate(current_streak=current, longest_streak=max(prior_longest, current))


def effective_streak(current_streak: int, last_practice_date: date | None, today: date) -> int:
    """Return the streak to display: zero once a whole day has been missed."""
    if last_practice_date is None:
        return 0
    if last_practice_date >= today - timedelta(days=1):
        return current_streak
    return 0


def word_state_counts(states: list[SrsState]) -> dict[str, int]:
    counts = dict.fromkeys(WordState.ALL, 0)
    for state in states:
        counts[state.word_state] += 1
    return counts


def due_counts(states: list[SrsState], today: date) -> tuple[int, int]:
    """Return (due today, due within the next 7 days) for scheduled words."""
    week_ahead = today + timedelta(days=7)
    due_today = 0
    due_this_week = 0
    for state in states:
        if state.next_review_date is None:
            continue
        if state.next_review_date <= today:
            due_today += 1
        if state.next_review_date <= week_ahead:
            due_this_week += 1
    return due_today, due_this_week


def average_easiness(states: list[SrsState]) -> float:
    if not states:
        return DEFAULT_EASINESS_FACTOR
    return round(sum(s.easiness_factor for s in states) / len(states), 2)


@dataclass
class SessionSummary:
    """Rating tally for a practice session."""

    counts: dict[Rating, int] = field(default_factory=lambda: dict.fromkeys(Rating, 0))
    new_words_seen: int = 0
    total_time_ms: int = 0

    def record(self, rating: Rating, was_new: bool = False, time_ms: int | None = None) -> None:
        self.counts[Rating(rating)] += 1
        if was_new:
            self.new_words_seen += 1
        if time_ms:
            self.total_time_ms += time_ms

    @property
    def words_shown(self) -> int:
        return sum(self.counts.values())

    @property
    def correct(self) -> int:
        return sum(n for rating, n in self.counts.items() if rating.is_correct)

    @property
    def incorrect(self) -> int:
        return self.words_shown - self.correct

    @property
    def accuracy(self) -> float | None:
        """Share of ratings that were Good or Easy, or None before any rating."""
        if not self.words_shown:
            return None
        return self.correct / self.words_shown

    @property
    def average_time_ms(self) -> float:
        return self.total_time_ms / self.words_shown if self.words_shown else 0.0
