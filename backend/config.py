from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Vocab SRS"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'vocab_srs.db'}"
    max_words_per_session: int = 20
    new_word_ratio: float = 0.2  # share of a full session reserved for new words
    max_easiness_factor: float = 5.0
    forecast_days: int = 7
    activity_days: int = 84
    attempt_history_limit: int = 20
    debug: bool = False

    model_config = {"env_prefix": "VOCAB_SRS_", "env_file": ".env"}


settings = Settings()
