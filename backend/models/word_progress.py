"""Per-learner scheduling state for a vocabulary item."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin
from backend.srs.state import DEFAULT_EASINESS_FACTOR, SrsState


class WordProgress(Base, TimestampMixin):
    """SM-2 scheduling fields for one learner-word pair.

    ``version`` is bumped on every update; SQLAlchemy rejects a flush whose
    row was changed underneath it, which keeps each review an atomic
    read-modify-write.
    """

    __tablename__ = "word_progress"
    __table_args__ = (UniqueConstraint("learner_id", "vocabulary_item_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), nullable=False)
    vocabulary_item_id: Mapped[int] = mapped_column(
        ForeignKey("vocabulary_items.id"), nullable=False
    )
    easiness_factor: Mapped[float] = mapped_column(
        Float, nullable=False, default=DEFAULT_EASINESS_FACTOR
    )
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_learned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    learner: Mapped["Learner"] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
    vocabulary_item: Mapped["VocabularyItem"] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
    attempts: Mapped[list["WordAttempt"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="progress", cascade="all, delete-orphan"
    )

    def to_state(self, list_ids: frozenset[int] = frozenset()) -> SrsState:
        return SrsState(
            easiness_factor=self.easiness_factor,
            interval_days=self.interval_days,
            repetitions=self.repetitions,
            correct_streak=self.correct_streak,
            next_review_date=self.next_review_date,
            last_reviewed_at=self.last_reviewed_at,
            word_id=self.id,
            list_ids=list_ids,
        )

    def update_from_state(self, state: SrsState) -> None:
        self.easiness_factor = state.easiness_factor
        self.interval_days = state.interval_days
        self.repetitions = state.repetitions
        self.correct_streak = state.correct_streak
        self.next_review_date = state.next_review_date
        self.last_reviewed_at = state.last_reviewed_at
        self.is_learned = state.is_learned
