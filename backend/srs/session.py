"""Practice session orchestrator.

Coordinates due-word selection, the SM-2 scheduler, attempt logging and
streak bookkeeping into a cohesive session flow. The scheduling decisions
themselves are made by the pure functions in ``backend.srs``; this module
only moves records in and out of storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from backend.config import settings
from backend.models.learner import Learner
from backend.models.practice_session import PracticeSession
from backend.models.vocabulary_item import VocabularyItem, VocabularyList
from backend.models.word_attempt import WordAttempt
from backend.models.word_progress import WordProgress
from backend.srs.preview import IntervalPreview, previews
from backend.srs.queue import DueSelection, build_due_selection
from backend.srs.sm2 import SM2Scheduler
from backend.srs.state import DEFAULT_EASINESS_FACTOR, Rating, SrsState
from backend.srs.stats import SessionSummary, StreakUpdate, record_session

logger = logging.getLogger(__name__)


class ReviewError(Exception):
    """Base class for review session failures."""


class LearnerNotFoundError(ReviewError):
    pass


class WordNotFoundError(ReviewError):
    pass


class ConcurrentReviewError(ReviewError):
    """The word was updated by another review since it was read."""


@dataclass
class ReviewOutcome:
    """Result of rating one word."""

    before: SrsState
    after: SrsState
    attempt: WordAttempt


def list_ids_for(progress: WordProgress) -> frozenset[int]:
    """Return the ids of the learner's lists containing the progress row's word."""
    return frozenset(
        vocab_list.id
        for vocab_list in progress.vocabulary_item.lists
        if vocab_list.learner_id == progress.learner_id
    )


async def load_progress(db: AsyncSession, learner_id: int) -> list[WordProgress]:
    """Fetch every progress row of a learner, with list membership loaded."""
    stmt = (
        select(WordProgress)
        .where(WordProgress.learner_id == learner_id)
        .order_by(WordProgress.id.asc())
        .options(selectinload(WordProgress.vocabulary_item).selectinload(VocabularyItem.lists))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def load_states(db: AsyncSession, learner_id: int) -> list[SrsState]:
    """Fetch every SRS state of a learner."""
    return [p.to_state(list_ids_for(p)) for p in await load_progress(db, learner_id)]


async def get_learner(db: AsyncSession, learner_id: int) -> Learner:
    learner = await db.get(Learner, learner_id)
    if learner is None:
        raise LearnerNotFoundError(f"Learner {learner_id} not found")
    return learner


async def add_word(
    db: AsyncSession,
    learner_id: int,
    term: str,
    translation: str,
    romanization: str | None = None,
    example_sentence: str | None = None,
    source: str = "manual",
    list_ids: list[int] | None = None,
) -> WordProgress:
    """Save a word to a learner's vocabulary with a fresh SRS state."""
    await get_learner(db, learner_id)

    item = VocabularyItem(
        term=term,
        translation=translation,
        romanization=romanization,
        example_sentence=example_sentence,
        source=source,
    )
    if list_ids:
        lists = await db.execute(
            select(VocabularyList).where(
                VocabularyList.id.in_(list_ids), VocabularyList.learner_id == learner_id
            )
        )
        item.lists = list(lists.scalars().all())
    db.add(item)
    await db.flush()

    progress = WordProgress(
        learner_id=learner_id,
        vocabulary_item_id=item.id,
        easiness_factor=DEFAULT_EASINESS_FACTOR,
        interval_days=0,
        repetitions=0,
        correct_streak=0,
    )
    db.add(progress)
    await db.commit()

    logger.info("Added word %r for learner %d (progress %d)", term, learner_id, progress.id)
    return progress


async def review_word(
    db: AsyncSession,
    progress: WordProgress,
    rating: Rating,
    now: datetime,
    scheduler: SM2Scheduler,
    quiz_mode: str = "flashcard",
    time_ms: int | None = None,
    practice_session_id: int | None = None,
    list_ids: frozenset[int] = frozenset(),
) -> ReviewOutcome:
    """Apply a rating to a loaded progress row and persist it atomically.

    The row update and the attempt record are committed together. If the
    row changed since it was loaded, nothing is written and
    ConcurrentReviewError is raised.
    """
    rating = Rating(rating)
    before = progress.to_state(list_ids)
    after = scheduler.apply(before, rating, now)

    progress.update_from_state(after)
    attempt = WordAttempt(
        word_progress_id=progress.id,
        learner_id=progress.learner_id,
        practice_session_id=practice_session_id,
        quiz_mode=quiz_mode,
        rating=int(rating),
        is_correct=rating.is_correct,
        response_time_ms=time_ms,
        easiness_before=before.easiness_factor,
        easiness_after=after.easiness_factor,
        interval_before=before.interval_days,
        interval_after=after.interval_days,
        attempted_at=now,
    )
    db.add(attempt)

    try:
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        raise ConcurrentReviewError(
            f"Word progress {before.word_id} was updated concurrently"
        ) from exc

    return ReviewOutcome(before=before, after=after, attempt=attempt)


@dataclass
class ReviewSession:
    """Manages an active practice session for a learner."""

    learner_id: int
    selection: DueSelection
    scheduler: SM2Scheduler
    started_at: datetime
    practice_session_id: int | None = None
    summary: SessionSummary = field(default_factory=SessionSummary)
    _index: int = 0
    _words: list[SrsState] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Initialize the word list from the selection."""
        self._words = self.selection.interleaved()

    @property
    def total(self) -> int:
        return len(self._words)

    @property
    def remaining(self) -> int:
        """Return the number of words left to review."""
        return max(0, len(self._words) - self._index)

    @property
    def is_complete(self) -> bool:
        """Return True if all words have been reviewed."""
        return self._index >= len(self._words)

    @property
    def current_word(self) -> SrsState | None:
        """Return the current word's state or None if the session is complete."""
        if self._index < len(self._words):
            return self._words[self._index]
        return None

    async def refresh_current(self, db: AsyncSession) -> SrsState | None:
        """Reload the current word's state from storage before showing it.

        Another session may have rated the word since this one started; the
        previews must describe the state the next rating will be applied to.
        A word whose row has gone away is skipped.
        """
        state = self.current_word
        if state is None:
            return None

        progress = await db.get(WordProgress, state.word_id, populate_existing=True)
        if progress is None:
            logger.warning("Skipping word %s: progress row no longer exists", state.word_id)
            self._index += 1
            raise WordNotFoundError(f"Word progress {state.word_id} not found")

        fresh = progress.to_state(state.list_ids)
        self._words[self._index] = fresh
        return fresh

    def preview(self, now: datetime | None = None) -> IntervalPreview | None:
        """Return the interval each rating would give the current word.

        Call ``refresh_current`` first when the word may have changed.
        """
        state = self.current_word
        if state is None:
            return None
        return previews(state, now, self.scheduler)

    async def submit_rating(
        self,
        db: AsyncSession,
        rating: Rating,
        now: datetime,
        quiz_mode: str = "flashcard",
        time_ms: int | None = None,
    ) -> ReviewOutcome:
        """Rate the current word and advance to the next one.

        The prior state is re-read from storage so the update always starts
        from what is persisted, not from the snapshot taken at session start.
        """
        state = self.current_word
        if state is None:
            raise ReviewError("Session is complete")

        progress = await db.get(WordProgress, state.word_id, populate_existing=True)
        if progress is None:
            logger.warning("Skipping word %s: progress row no longer exists", state.word_id)
            self._index += 1
            raise WordNotFoundError(f"Word progress {state.word_id} not found")

        outcome = await review_word(
            db,
            progress,
            rating,
            now,
            self.scheduler,
            quiz_mode=quiz_mode,
            time_ms=time_ms,
            practice_session_id=self.practice_session_id,
            list_ids=state.list_ids,
        )

        self.summary.record(rating, was_new=outcome.before.is_new, time_ms=time_ms)
        self._index += 1
        return outcome

    async def finish(self, db: AsyncSession, today: date, now: datetime) -> StreakUpdate:
        """Store the session totals and fold the session into the streak.

        A session in which nothing was rated leaves the streak untouched.
        """
        learner = await get_learner(db, self.learner_id)
        s = self.summary

        if self.practice_session_id is not None:
            record = await db.get(PracticeSession, self.practice_session_id)
            if record is not None:
                record.words_shown = s.words_shown
                record.again_count = s.counts[Rating.AGAIN]
                record.hard_count = s.counts[Rating.HARD]
                record.good_count = s.counts[Rating.GOOD]
                record.easy_count = s.counts[Rating.EASY]
                record.duration_seconds = max(0, int((now - self.started_at).total_seconds()))

        if s.words_shown == 0:
            await db.commit()
            return StreakUpdate(learner.current_streak, learner.longest_streak)

        update = record_session(
            learner.longest_streak,
            learner.current_streak,
            learner.last_practice_date,
            today,
        )
        learner.current_streak = update.current_streak
        learner.longest_streak = update.longest_streak
        if learner.last_practice_date is None or learner.last_practice_date < today:
            learner.last_practice_date = today
        learner.total_practice_sessions += 1
        await db.commit()

        logger.info(
            "Finished session for learner %d: %d words, streak %d (longest %d)",
            self.learner_id,
            s.words_shown,
            update.current_streak,
            update.longest_streak,
        )
        return update


async def start_session(
    db: AsyncSession,
    learner_id: int,
    now: datetime,
    limit: int | None = None,
    list_id: int | None = None,
    scheduler: SM2Scheduler | None = None,
) -> ReviewSession:
    """Start a new practice session for a learner.

    Args:
        db: Database session.
        learner_id: The learner starting the session.
        now: Current time; its date decides what is due.
        limit: Maximum words in the session (defaults to settings).
        list_id: Restrict the session to one list/course.
        scheduler: Scheduler to use (defaults to the configured EF ceiling).

    Returns:
        A ReviewSession ready for use.
    """
    await get_learner(db, learner_id)
    states = await load_states(db, learner_id)
    selection = build_due_selection(
        states,
        now.date(),
        settings.max_words_per_session if limit is None else limit,
        list_id=list_id,
        new_ratio=settings.new_word_ratio,
    )

    record = PracticeSession(learner_id=learner_id, started_at=now)
    db.add(record)
    await db.commit()

    session = ReviewSession(
        learner_id=learner_id,
        selection=selection,
        scheduler=scheduler or SM2Scheduler(settings.max_easiness_factor),
        started_at=now,
        practice_session_id=record.id,
    )

    logger.info(
        "Started session for learner %d: %d overdue + %d new queued",
        learner_id,
        len(selection.overdue),
        len(selection.new),
    )
    return session
