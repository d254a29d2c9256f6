"""API routes for practice sessions and attempt history."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    AttemptResponse,
    IntervalPreviewResponse,
    RatingRequest,
    RatingResponse,
    SessionEndResponse,
    SessionStartRequest,
    SessionStartResponse,
    WordResponse,
)
from backend.config import settings, utcnow
from backend.database import get_session
from backend.models.vocabulary_item import VocabularyItem
from backend.models.word_attempt import WordAttempt
from backend.models.word_progress import WordProgress
from backend.srs.session import (
    ConcurrentReviewError,
    LearnerNotFoundError,
    ReviewSession,
    WordNotFoundError,
    get_learner,
    start_session,
)
from backend.srs.state import Rating

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review", tags=["review"])

# In-memory session store (for MVP; move to Redis for production)
_active_sessions: dict[str, ReviewSession] = {}


def _get_active(session_id: str) -> ReviewSession:
    review_session = _active_sessions.get(session_id)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")
    return review_session


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    request: SessionStartRequest,
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a new practice session with the learner's due words."""
    try:
        review_session = await start_session(
            db, request.learner_id, utcnow(), limit=request.limit, list_id=request.list_id
        )
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = review_session

    selection = review_session.selection
    return SessionStartResponse(
        session_id=session_id,
        learner_id=request.learner_id,
        total_words=review_session.total,
        overdue_words=len(selection.overdue),
        new_words=len(selection.new),
        overdue_available=selection.overdue_available,
        new_available=selection.new_available,
    )


@router.get("/next/{session_id}", response_model=WordResponse)
async def session_next(
    session_id: str,
    db: AsyncSession = Depends(get_session),
) -> WordResponse:
    """Get the next word in the session with its interval previews."""
    review_session = _get_active(session_id)

    try:
        state = await review_session.refresh_current(db)
    except WordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if state is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    item = (
        await db.execute(
            select(VocabularyItem)
            .join(WordProgress, WordProgress.vocabulary_item_id == VocabularyItem.id)
            .where(WordProgress.id == state.word_id)
        )
    ).scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=404, detail="Word not found")

    preview = review_session.preview()
    return WordResponse(
        word_id=state.word_id,
        term=item.term,
        translation=item.translation,
        romanization=item.romanization,
        example_sentence=item.example_sentence,
        repetitions=state.repetitions,
        correct_streak=state.correct_streak,
        interval_days=state.interval_days,
        is_new=state.is_new,
        previews=IntervalPreviewResponse(
            again=preview.again,
            hard=preview.hard,
            good=preview.good,
            easy=preview.easy,
            labels=preview.labels(),
        ),
        remaining=review_session.remaining,
    )


@router.post("/rate/{session_id}", response_model=RatingResponse)
async def session_rate(
    session_id: str,
    request: RatingRequest,
    db: AsyncSession = Depends(get_session),
) -> RatingResponse:
    """Rate the current word and reschedule it."""
    review_session = _get_active(session_id)

    state = review_session.current_word
    if state is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    # Verify the client is rating the word it was shown
    if state.word_id != request.word_id:
        raise HTTPException(status_code=400, detail="Word ID mismatch")

    rating = Rating(request.rating)
    try:
        outcome = await review_session.submit_rating(
            db,
            rating,
            utcnow(),
            quiz_mode=request.quiz_mode,
            time_ms=request.response_time_ms,
        )
    except WordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConcurrentReviewError as exc:
        logger.warning("Concurrent review rejected: %s", exc)
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    after = outcome.after
    return RatingResponse(
        rating=int(rating),
        is_correct=rating.is_correct,
        easiness_factor=after.easiness_factor,
        interval_days=after.interval_days,
        repetitions=after.repetitions,
        correct_streak=after.correct_streak,
        next_review_date=after.next_review_date,
        is_learned=after.is_learned,
        remaining=review_session.remaining,
        session_complete=review_session.is_complete,
    )


@router.post("/end/{session_id}", response_model=SessionEndResponse)
async def session_end(
    session_id: str,
    db: AsyncSession = Depends(get_session),
) -> SessionEndResponse:
    """End a session, store its totals and update the learner's streak."""
    review_session = _active_sessions.pop(session_id, None)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")

    now = utcnow()
    try:
        streak = await review_session.finish(db, now.date(), now)
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    s = review_session.summary
    return SessionEndResponse(
        words_shown=s.words_shown,
        again=s.counts[Rating.AGAIN],
        hard=s.counts[Rating.HARD],
        good=s.counts[Rating.GOOD],
        easy=s.counts[Rating.EASY],
        accuracy=round(s.accuracy, 3) if s.accuracy is not None else None,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
    )


@router.get("/attempts/{learner_id}", response_model=list[AttemptResponse])
async def attempt_history(
    learner_id: int,
    word_id: int | None = None,
    limit: int = Query(default=settings.attempt_history_limit, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> list[AttemptResponse]:
    """Get the most recent attempts of a learner, optionally for one word."""
    try:
        await get_learner(db, learner_id)
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    stmt = (
        select(WordAttempt)
        .where(WordAttempt.learner_id == learner_id)
        .order_by(WordAttempt.attempted_at.desc(), WordAttempt.id.desc())
        .limit(limit)
    )
    if word_id is not None:
        stmt = stmt.where(WordAttempt.word_progress_id == word_id)

    attempts = (await db.execute(stmt)).scalars().all()
    return [
        AttemptResponse(
            word_id=a.word_progress_id,
            quiz_mode=a.quiz_mode,
            rating=a.rating,
            is_correct=a.is_correct,
            response_time_ms=a.response_time_ms,
            attempted_at=a.attempted_at,
        )
        for a in attempts
    ]
