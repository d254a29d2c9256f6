from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Learner(Base, TimestampMixin):
    __tablename__ = "learners"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_practice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_practice_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    progress: Mapped[list["WordProgress"]] = relationship(back_populates="learner")  # type: ignore[name-defined] # noqa: F821
    attempts: Mapped[list["WordAttempt"]] = relationship(back_populates="learner")  # type: ignore[name-defined] # noqa: F821
    lists: Mapped[list["VocabularyList"]] = relationship(back_populates="learner")  # type: ignore[name-defined] # noqa: F821
