"""What-if interval projections shown beside the four rating buttons."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from backend.srs.sm2 import SM2Scheduler, round_half_up
from backend.srs.state import Rating, SrsState

# Intervals don't depend on the review time; only the resulting dates do.
_REFERENCE_TIME = datetime(2000, 1, 1)


@dataclass(frozen=True)
class IntervalPreview:
    """Next interval, in days, for each possible rating."""

    again: int
    hard: int
    good: int
    easy: int

    def for_rating(self, rating: Rating) -> int:
        return getattr(self, Rating(rating).name.lower())

    def labels(self) -> dict[str, str]:
        """Return human-readable intervals keyed by rating name."""
        return {
            "again": format_interval(self.again),
            "hard": format_interval(self.hard),
            "good": format_interval(self.good),
            "easy": format_interval(self.easy),
        }

    def due_dates(self, today: date) -> dict[str, date]:
        return {
            "again": today + timedelta(days=self.again),
            "hard": today + timedelta(days=self.hard),
            "good": today + timedelta(days=self.good),
            "easy": today + timedelta(days=self.easy),
        }


def previews(
    state: SrsState,
    now: datetime | None = None,
    scheduler: SM2Scheduler | None = None,
) -> IntervalPreview:
    """Project the interval each rating would produce, without applying any."""
    scheduler = scheduler or SM2Scheduler()
    now = now or _REFERENCE_TIME
    return IntervalPreview(
        again=scheduler.apply(state, Rating.AGAIN, now).interval_days,
        hard=scheduler.apply(state, Rating.HARD, now).interval_days,
        good=scheduler.apply(state, Rating.GOOD, now).interval_days,
        easy=scheduler.apply(state, Rating.EASY, now).interval_days,
    )


def format_interval(days: int) -> str:
    """Format an interval as short text: Now, 1d, 6d, 2w, 3mo, 1.2y."""
    if days <= 0:
        return "Now"
    if days < 7:
        return f"{days}d"
    if days < 30:
        return f"{round_half_up(days / 7)}w"
    if days < 365:
        return f"{round_half_up(days / 30)}mo"
    return f"{days / 365:.1f}y"
