"""SQLAlchemy ORM models for the vocabulary SRS database."""

from backend.models.base import Base
from backend.models.learner import Learner
from backend.models.practice_session import PracticeSession
from backend.models.vocabulary_item import VocabularyItem, VocabularyList, list_items
from backend.models.word_attempt import WordAttempt
from backend.models.word_progress import WordProgress

__all__ = [
    "Base",
    "Learner",
    "PracticeSession",
    "VocabularyItem",
    "VocabularyList",
    "WordAttempt",
    "WordProgress",
    "list_items",
]
