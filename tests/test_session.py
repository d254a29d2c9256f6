"""Tests for the practice session orchestrator against a real SQLite database."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from backend.database import async_session
from backend.models import Learner, PracticeSession, VocabularyList, WordAttempt, WordProgress
from backend.srs.session import (
    ConcurrentReviewError,
    LearnerNotFoundError,
    ReviewError,
    WordNotFoundError,
    add_word,
    load_states,
    review_word,
    start_session,
)
from backend.srs.sm2 import SM2Scheduler
from backend.srs.state import Rating

NOW = datetime(2024, 5, 10, 9, 0)


async def _learner(db, **kwargs) -> Learner:
    learner = Learner(name="Test", **kwargs)
    db.add(learner)
    await db.commit()
    return learner


@pytest.mark.asyncio
async def test_add_word_creates_default_progress(db) -> None:
    learner = await _learner(db)
    progress = await add_word(db, learner.id, "苹果", "apple", romanization="píngguǒ")

    assert progress.repetitions == 0
    assert progress.interval_days == 0
    assert progress.easiness_factor == 2.5
    assert progress.next_review_date is None
    assert progress.last_reviewed_at is None
    assert progress.version == 1

    states = await load_states(db, learner.id)
    assert len(states) == 1
    assert states[0].is_new
    assert states[0].word_id == progress.id


@pytest.mark.asyncio
async def test_add_word_unknown_learner(db) -> None:
    with pytest.raises(LearnerNotFoundError):
        await add_word(db, 999, "猫", "cat")


@pytest.mark.asyncio
async def test_start_session_queues_new_words(db) -> None:
    learner = await _learner(db)
    for term, meaning in [("猫", "cat"), ("狗", "dog"), ("鱼", "fish")]:
        await add_word(db, learner.id, term, meaning)

    session = await start_session(db, learner.id, NOW, limit=2)
    assert session.total == 2
    assert session.selection.new_available == 3
    assert session.current_word.is_new
    assert session.practice_session_id is not None
    assert session.preview().good == 1


@pytest.mark.asyncio
async def test_submit_rating_persists_state_and_attempt(db) -> None:
    learner = await _learner(db)
    progress = await add_word(db, learner.id, "水", "water")

    session = await start_session(db, learner.id, NOW)
    outcome = await session.submit_rating(db, Rating.GOOD, NOW, quiz_mode="listening", time_ms=1500)

    assert outcome.after.repetitions == 1
    assert outcome.after.next_review_date == NOW.date() + timedelta(days=1)
    assert session.is_complete

    async with async_session() as other:
        row = await other.get(WordProgress, progress.id)
        assert row.repetitions == 1
        assert row.interval_days == 1
        assert row.last_reviewed_at == NOW
        assert row.version == 2

        attempts = (await other.execute(select(WordAttempt))).scalars().all()
        assert len(attempts) == 1
        assert attempts[0].is_correct
        assert attempts[0].quiz_mode == "listening"
        assert attempts[0].practice_session_id == session.practice_session_id
        assert attempts[0].interval_before == 0
        assert attempts[0].interval_after == 1

    with pytest.raises(ReviewError):
        await session.submit_rating(db, Rating.GOOD, NOW)


@pytest.mark.asyncio
async def test_reviewed_word_not_due_until_scheduled(db) -> None:
    learner = await _learner(db)
    await add_word(db, learner.id, "火", "fire")

    session = await start_session(db, learner.id, NOW)
    await session.submit_rating(db, Rating.GOOD, NOW)

    later_today = await start_session(db, learner.id, NOW + timedelta(hours=3))
    assert later_today.total == 0

    tomorrow = await start_session(db, learner.id, NOW + timedelta(days=1))
    assert tomorrow.total == 1
    assert not tomorrow.current_word.is_new


@pytest.mark.asyncio
async def test_session_restricted_to_list(db) -> None:
    learner = await _learner(db)
    colors = VocabularyList(learner_id=learner.id, name="Colors")
    db.add(colors)
    await db.commit()

    await add_word(db, learner.id, "红", "red", list_ids=[colors.id])
    await add_word(db, learner.id, "书", "book")

    session = await start_session(db, learner.id, NOW, list_id=colors.id)
    assert session.total == 1
    assert colors.id in session.current_word.list_ids


@pytest.mark.asyncio
async def test_finish_extends_streak(db) -> None:
    today = NOW.date()
    learner = await _learner(
        db, current_streak=4, longest_streak=4, last_practice_date=today - timedelta(days=1)
    )
    await add_word(db, learner.id, "山", "mountain")

    session = await start_session(db, learner.id, NOW)
    await session.submit_rating(db, Rating.EASY, NOW)
    update = await session.finish(db, today, NOW + timedelta(minutes=3))

    assert update.current_streak == 5
    assert update.longest_streak == 5

    async with async_session() as other:
        row = await other.get(Learner, learner.id)
        assert row.current_streak == 5
        assert row.last_practice_date == today
        assert row.total_practice_sessions == 1

        record = await other.get(PracticeSession, session.practice_session_id)
        assert record.words_shown == 1
        assert record.easy_count == 1
        assert record.duration_seconds == 180


@pytest.mark.asyncio
async def test_finish_without_ratings_keeps_streak(db) -> None:
    today = NOW.date()
    learner = await _learner(db, current_streak=2, longest_streak=9, last_practice_date=today)

    session = await start_session(db, learner.id, NOW)
    update = await session.finish(db, today, NOW)

    assert (update.current_streak, update.longest_streak) == (2, 9)
    async with async_session() as other:
        assert (await other.get(Learner, learner.id)).total_practice_sessions == 0


@pytest.mark.asyncio
async def test_concurrent_review_of_same_word_rejected(db) -> None:
    learner = await _learner(db)
    progress = await add_word(db, learner.id, "月", "moon")
    scheduler = SM2Scheduler()

    async with async_session() as first, async_session() as second:
        row_a = await first.get(WordProgress, progress.id)
        row_b = await second.get(WordProgress, progress.id)

        await review_word(first, row_a, Rating.GOOD, NOW, scheduler)
        with pytest.raises(ConcurrentReviewError):
            await review_word(second, row_b, Rating.AGAIN, NOW, scheduler)

    async with async_session() as check:
        row = await check.get(WordProgress, progress.id)
        assert row.repetitions == 1
        count = (await check.execute(select(func.count(WordAttempt.id)))).scalar()
        assert count == 1


@pytest.mark.asyncio
async def test_preview_reflects_review_from_another_session(db) -> None:
    learner = await _learner(db)
    progress = await add_word(db, learner.id, "风", "wind")

    async with async_session() as first_db, async_session() as second_db:
        first = await start_session(first_db, learner.id, NOW)
        second = await start_session(second_db, learner.id, NOW)

        await second.submit_rating(second_db, Rating.GOOD, NOW)

        state = await first.refresh_current(first_db)
        assert state.word_id == progress.id
        assert state.repetitions == 1
        assert not state.is_new

        shown = first.preview(NOW).good
        outcome = await first.submit_rating(first_db, Rating.GOOD, NOW)
        assert shown == outcome.after.interval_days == 6


@pytest.mark.asyncio
async def test_refresh_skips_deleted_word(db) -> None:
    learner = await _learner(db)
    progress = await add_word(db, learner.id, "雨", "rain")
    session = await start_session(db, learner.id, NOW)

    async with async_session() as other:
        await other.delete(await other.get(WordProgress, progress.id))
        await other.commit()

    with pytest.raises(WordNotFoundError):
        await session.refresh_current(db)
    assert session.is_complete
    assert await session.refresh_current(db) is None


@pytest.mark.asyncio
async def test_finish_keeps_later_practice_date(db) -> None:
    today = NOW.date()
    tomorrow = today + timedelta(days=1)
    learner = await _learner(db, current_streak=3, longest_streak=3, last_practice_date=tomorrow)
    await add_word(db, learner.id, "云", "cloud")

    session = await start_session(db, learner.id, NOW)
    await session.submit_rating(db, Rating.GOOD, NOW)
    update = await session.finish(db, today, NOW)

    assert (update.current_streak, update.longest_streak) == (3, 3)
    async with async_session() as other:
        assert (await other.get(Learner, learner.id)).last_practice_date == tomorrow
