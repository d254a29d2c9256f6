"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

# --- Review ---


class SessionStartRequest(BaseModel):
    """Request to start a practice session."""

    learner_id: int
    limit: int | None = Field(default=None, ge=1, le=200)
    list_id: int | None = None


class SessionStartResponse(BaseModel):
    """Response when starting a new practice session."""

    session_id: str
    learner_id: int
    total_words: int
    overdue_words: int
    new_words: int
    overdue_available: int
    new_available: int


class IntervalPreviewResponse(BaseModel):
    """Next interval for each rating, in days and as display text."""

    again: int
    hard: int
    good: int
    easy: int
    labels: dict[str, str]


class WordResponse(BaseModel):
    """The word to review next, with rating consequences."""

    word_id: int
    term: str
    translation: str
    romanization: str | None = None
    example_sentence: str | None = None
    repetitions: int
    correct_streak: int
    interval_days: int
    is_new: bool
    previews: IntervalPreviewResponse
    remaining: int


class RatingRequest(BaseModel):
    """Request to rate the current word."""

    word_id: int
    rating: int = Field(ge=1, le=4)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    quiz_mode: Literal["flashcard", "multiple-choice", "listening"] = "flashcard"
    response_time_ms: int | None = Field(default=None, ge=0)


class RatingResponse(BaseModel):
    """Response after rating a word with its new schedule."""

    rating: int
    is_correct: bool
    easiness_factor: float
    interval_days: int
    repetitions: int
    correct_streak: int
    next_review_date: date
    is_learned: bool
    remaining: int
    session_complete: bool


class SessionEndResponse(BaseModel):
    """Summary of a finished session and the resulting streak."""

    words_shown: int
    again: int
    hard: int
    good: int
    easy: int
    accuracy: float | None
    current_streak: int
    longest_streak: int


class AttemptResponse(BaseModel):
    word_id: int
    quiz_mode: str
    rating: int
    is_correct: bool
    response_time_ms: int | None
    attempted_at: datetime


# --- Stats ---


class ForecastDayResponse(BaseModel):
    date: date
    count: int


class ActivityDayResponse(BaseModel):
    date: date
    count: int


class LearnerStatsResponse(BaseModel):
    """Overall statistics for a learner."""

    total_words: int
    learned_words: int
    words_by_state: dict[str, int]
    due_today: int
    due_this_week: int
    mastered_this_week: int
    average_easiness: float
    accuracy_30d: float | None
    total_attempts: int
    reviews_today: int
    reviews_per_day: list[ActivityDayResponse]
    words_added_per_day: list[ActivityDayResponse]
    current_streak: int
    longest_streak: int
    total_practice_sessions: int
    last_practice_date: date | None
