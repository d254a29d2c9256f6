from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base


class WordAttempt(Base):
    __tablename__ = "word_attempts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    word_progress_id: Mapped[int] = mapped_column(ForeignKey("word_progress.id"), nullable=False)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), nullable=False)
    practice_session_id: Mapped[int | None] = mapped_column(
        ForeignKey("practice_sessions.id"), nullable=True
    )
    quiz_mode: Mapped[str] = mapped_column(
        String(30), nullable=False, default="flashcard"
    )  # flashcard, multiple-choice, listening
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    easiness_before: Mapped[float] = mapped_column(Float, nullable=False)
    easiness_after: Mapped[float] = mapped_column(Float, nullable=False)
    interval_before: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_after: Mapped[int] = mapped_column(Integer, nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    progress: Mapped["WordProgress"] = relationship(back_populates="attempts")  # type: ignore[name-defined] # noqa: F821
    learner: Mapped["Learner"] = relationship(back_populates="attempts")  # type: ignore[name-defined] # noqa: F821
