from sqlalchemy import Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin

list_items = Table(
    "list_items",
    Base.metadata,
    Column("list_id", ForeignKey("vocabulary_lists.id"), primary_key=True),
    Column("vocabulary_item_id", ForeignKey("vocabulary_items.id"), primary_key=True),
)


class VocabularyItem(Base, TimestampMixin):
    __tablename__ = "vocabulary_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    term: Mapped[str] = mapped_column(String(500), nullable=False)
    translation: Mapped[str] = mapped_column(String(500), nullable=False)
    romanization: Mapped[str | None] = mapped_column(String(500), nullable=True)  # e.g. pinyin
    example_sentence: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default="manual"
    )  # photo, manual, import

    lists: Mapped[list["VocabularyList"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        secondary=list_items, back_populates="items"
    )
    progress: Mapped[list["WordProgress"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="vocabulary_item", cascade="all, delete-orphan"
    )


class VocabularyList(Base, TimestampMixin):
    __tablename__ = "vocabulary_lists"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    learner: Mapped["Learner"] = relationship(back_populates="lists")  # type: ignore[name-defined] # noqa: F821
    items: Mapped[list[VocabularyItem]] = relationship(secondary=list_items, back_populates="lists")
