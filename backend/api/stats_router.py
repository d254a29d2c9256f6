"""API routes for learner statistics and dashboard data."""

import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import ActivityDayResponse, ForecastDayResponse, LearnerStatsResponse
from backend.config import settings, utcnow
from backend.database import get_session
from backend.models.word_attempt import WordAttempt
from backend.models.word_progress import WordProgress
from backend.srs.session import LearnerNotFoundError, get_learner, load_states
from backend.srs.stats import (
    activity,
    average_easiness,
    due_counts,
    effective_streak,
    forecast,
    mastered_this_week,
    word_state_counts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


async def _dates_since(db: AsyncSession, column, learner_column, learner_id: int, since: date):
    """Return the calendar dates of a timestamp column from ``since`` onward."""
    stmt = select(column).where(
        and_(learner_column == learner_id, column >= datetime.combine(since, time.min))
    )
    return [ts.date() for ts in (await db.execute(stmt)).scalars().all()]


def _activity_response(dates: list[date], today: date, days: int) -> list[ActivityDayResponse]:
    return [ActivityDayResponse(date=d.date, count=d.count) for d in activity(dates, today, days)]


@router.get("/{learner_id}", response_model=LearnerStatsResponse)
async def get_learner_stats(
    learner_id: int,
    db: AsyncSession = Depends(get_session),
) -> LearnerStatsResponse:
    """Get overall statistics for a learner."""
    now = utcnow()
    today = now.date()

    try:
        learner = await get_learner(db, learner_id)
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    states = await load_states(db, learner_id)
    due_today, due_this_week = due_counts(states, today)

    # Total attempts
    attempts_stmt = select(func.count(WordAttempt.id)).where(WordAttempt.learner_id == learner_id)
    total_attempts = (await db.execute(attempts_stmt)).scalar() or 0

    # Accuracy over the last 30 days (% rated Good or Easy)
    recent_cutoff = now - timedelta(days=30)
    recent_total_stmt = select(func.count(WordAttempt.id)).where(
        and_(
            WordAttempt.learner_id == learner_id,
            WordAttempt.attempted_at >= recent_cutoff,
        )
    )
    recent_correct_stmt = select(func.count(WordAttempt.id)).where(
        and_(
            WordAttempt.learner_id == learner_id,
            WordAttempt.attempted_at >= recent_cutoff,
            WordAttempt.is_correct.is_(True),
        )
    )
    recent_total = (await db.execute(recent_total_stmt)).scalar() or 0
    recent_correct = (await db.execute(recent_correct_stmt)).scalar() or 0
    accuracy = recent_correct / recent_total if recent_total > 0 else None

    # Reviews and newly added words over the past week
    week_start = today - timedelta(days=6)
    review_dates = await _dates_since(
        db, WordAttempt.attempted_at, WordAttempt.learner_id, learner_id, week_start
    )
    added_dates = await _dates_since(
        db, WordProgress.created_at, WordProgress.learner_id, learner_id, week_start
    )
    reviews_per_day = _activity_response(review_dates, today, 7)

    return LearnerStatsResponse(
        total_words=len(states),
        learned_words=sum(1 for s in states if s.is_learned),
        words_by_state=word_state_counts(states),
        due_today=due_today,
        due_this_week=due_this_week,
        mastered_this_week=mastered_this_week(states, today),
        average_easiness=average_easiness(states),
        accuracy_30d=round(accuracy, 3) if accuracy is not None else None,
        total_attempts=total_attempts,
        reviews_today=reviews_per_day[-1].count,
        reviews_per_day=reviews_per_day,
        words_added_per_day=_activity_response(added_dates, today, 7),
        current_streak=effective_streak(
            learner.current_streak, learner.last_practice_date, today
        ),
        longest_streak=learner.longest_streak,
        total_practice_sessions=learner.total_practice_sessions,
        last_practice_date=learner.last_practice_date,
    )


@router.get("/{learner_id}/forecast", response_model=list[ForecastDayResponse])
async def get_forecast(
    learner_id: int,
    days: int = Query(default=settings.forecast_days, ge=1, le=365),
    db: AsyncSession = Depends(get_session),
) -> list[ForecastDayResponse]:
    """Get the number of reviews due on each of the next ``days`` days."""
    try:
        await get_learner(db, learner_id)
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    states = await load_states(db, learner_id)
    return [
        ForecastDayResponse(date=day.date, count=day.count)
        for day in forecast(states, utcnow().date(), days)
    ]


@router.get("/{learner_id}/activity", response_model=list[ActivityDayResponse])
async def get_activity(
    learner_id: int,
    days: int = Query(default=settings.activity_days, ge=1, le=366),
    db: AsyncSession = Depends(get_session),
) -> list[ActivityDayResponse]:
    """Get the number of words reviewed on each of the last ``days`` days."""
    try:
        await get_learner(db, learner_id)
    except LearnerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    today = utcnow().date()
    dates = await _dates_since(
        db,
        WordAttempt.attempted_at,
        WordAttempt.learner_id,
        learner_id,
        today - timedelta(days=days - 1),
    )
    return _activity_response(dates, today, days)
