"""CLI interface for Vocab SRS.

Usage:
    python -m vocab_srs review                  Start a practice session
    python -m vocab_srs add "term" "meaning"    Add a new word
    python -m vocab_srs due                     Show how many words are due
    python -m vocab_srs stats                   Show your statistics
    python -m vocab_srs forecast --days 14      Show upcoming review load
"""

import argparse
import asyncio
import logging
import time

from sqlalchemy import func, select

from backend.config import settings, utcnow
from backend.database import async_session, engine
from backend.models import Base
from backend.models.learner import Learner
from backend.models.vocabulary_item import VocabularyItem, VocabularyList
from backend.models.word_attempt import WordAttempt
from backend.srs.queue import build_due_selection
from backend.srs.session import (
    ConcurrentReviewError,
    ReviewError,
    add_word,
    load_states,
    start_session,
)
from backend.srs.state import Rating
from backend.srs.stats import (
    average_easiness,
    due_counts,
    effective_streak,
    forecast,
    word_state_counts,
)


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_learner() -> int:
    """Ensure there's a default learner and return the ID."""
    async with async_session() as db:
        stmt = select(Learner).order_by(Learner.id).limit(1)
        result = await db.execute(stmt)
        learner = result.scalar_one_or_none()
        if learner:
            return learner.id

        learner = Learner(name="Learner")
        db.add(learner)
        await db.commit()
        await db.refresh(learner)
        return learner.id


async def ensure_list(learner_id: int, name: str) -> int:
    """Return the ID of the learner's list with this name, creating it if needed."""
    async with async_session() as db:
        stmt = select(VocabularyList).where(
            VocabularyList.learner_id == learner_id, VocabularyList.name == name
        )
        vocab_list = (await db.execute(stmt)).scalar_one_or_none()
        if vocab_list:
            return vocab_list.id

        vocab_list = VocabularyList(learner_id=learner_id, name=name)
        db.add(vocab_list)
        await db.commit()
        return vocab_list.id


async def _find_list(learner_id: int, name: str | None) -> int | None:
    if not name:
        return None
    async with async_session() as db:
        stmt = select(VocabularyList.id).where(
            VocabularyList.learner_id == learner_id, VocabularyList.name == name
        )
        return (await db.execute(stmt)).scalar_one_or_none()


def _read_rating(default: Rating) -> Rating | None:
    """Prompt for a rating; None means quit."""
    while True:
        raw = input(f"  Rate [1-4, enter={int(default)}, q=quit]: ").strip().lower()
        if raw == "q":
            return None
        if not raw:
            return default
        if raw.isdigit() and 1 <= int(raw) <= 4:
            return Rating(int(raw))
        print("  Please enter 1, 2, 3 or 4.")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive practice session."""
    await ensure_db()
    learner_id = await ensure_learner()
    list_id = await _find_list(learner_id, args.list)
    if args.list and list_id is None:
        print(f"\n  No list named '{args.list}'.")
        return

    async with async_session() as db:
        session = await start_session(db, learner_id, utcnow(), limit=args.max_words, list_id=list_id)

        if session.total == 0:
            print("\nNo words due for review. You're all caught up!")
            return

        print("\n  Practice Session")
        print(
            f"  {len(session.selection.overdue)} due + {len(session.selection.new)} new"
            f" = {session.total} words\n"
        )
        print("  Ratings: 1=Again  2=Hard  3=Good  4=Easy")
        print("  Type 'q' to quit\n")

        while not session.is_complete:
            try:
                state = await session.refresh_current(db)
            except ReviewError as exc:
                print(f"  Skipped: {exc}\n")
                continue
            item = (
                await db.execute(
                    select(VocabularyItem).where(
                        VocabularyItem.progress.any(id=state.word_id)
                    )
                )
            ).scalar_one()

            position = session.total - session.remaining + 1
            label = f"  [{position}/{session.total}]"
            if state.is_new:
                label += " (NEW)"
            print(label)
            print(f"  {item.term}")

            start_time = time.time()
            reveal = input("  (enter to reveal, q to quit) ").strip().lower()
            if reveal == "q":
                print("\n  Session ended early.")
                break
            time_ms = int((time.time() - start_time) * 1000)

            print(f"  = {item.translation}")
            if item.romanization:
                print(f"    {item.romanization}")

            labels = session.preview().labels()
            print(
                "  "
                + "  ".join(f"{r.value}={r.label} ({labels[r.name.lower()]})" for r in Rating)
            )

            rating = _read_rating(Rating.GOOD)
            if rating is None:
                print("\n  Session ended early.")
                break

            try:
                outcome = await session.submit_rating(db, rating, utcnow(), time_ms=time_ms)
            except ConcurrentReviewError:
                print("  This word was just reviewed elsewhere; showing it again.\n")
                continue
            except ReviewError as exc:
                print(f"  Skipped: {exc}\n")
                continue
            print(f"  Next review in {outcome.after.interval_days} days\n")

        now = utcnow()
        streak = await session.finish(db, now.date(), now)

    # Summary
    s = session.summary
    accuracy = (s.accuracy or 0) * 100
    print("\n  Session Complete!")
    print(f"  Reviewed: {s.words_shown}  Correct: {s.correct}  Accuracy: {accuracy:.0f}%")
    print(f"  Streak: {streak.current_streak} days (longest {streak.longest_streak})\n")


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a new word with a fresh SRS state."""
    await ensure_db()
    learner_id = await ensure_learner()
    list_ids = [await ensure_list(learner_id, args.list)] if args.list else None

    async with async_session() as db:
        existing = (
            await db.execute(
                select(VocabularyItem)
                .where(VocabularyItem.term == args.term)
                .where(VocabularyItem.progress.any(learner_id=learner_id))
            )
        ).scalar_one_or_none()
        if existing:
            print(f"  '{args.term}' already exists (id={existing.id}).")
            return

        await add_word(
            db,
            learner_id,
            args.term,
            args.translation,
            romanization=args.romanization or None,
            list_ids=list_ids,
        )

    print(f"  Added '{args.term}' = {args.translation} (ready for review)")


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many words are due."""
    await ensure_db()
    learner_id = await ensure_learner()

    async with async_session() as db:
        states = await load_states(db, learner_id)

    selection = build_due_selection(states, utcnow().date(), len(states))
    print(f"  {selection.overdue_available} words due, {selection.new_available} new words available")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show learner statistics."""
    await ensure_db()
    learner_id = await ensure_learner()
    today = utcnow().date()

    async with async_session() as db:
        learner = await db.get(Learner, learner_id)
        states = await load_states(db, learner_id)
        attempts = (
            await db.execute(
                select(func.count(WordAttempt.id)).where(WordAttempt.learner_id == learner_id)
            )
        ).scalar() or 0

    by_state = word_state_counts(states)
    due_today, due_week = due_counts(states, today)
    streak = effective_streak(learner.current_streak, learner.last_practice_date, today)

    print("\n  Vocab SRS Statistics")
    print(f"  {'Total words:':<20} {len(states)}")
    for name, count in by_state.items():
        print(f"  {name.capitalize() + ':':<20} {count}")
    print(f"  {'Due today:':<20} {due_today}")
    print(f"  {'Due this week:':<20} {due_week}")
    print(f"  {'Average ease:':<20} {average_easiness(states):.2f}")
    print(f"  {'Total attempts:':<20} {attempts}")
    print(f"  {'Current streak:':<20} {streak}")
    print(f"  {'Longest streak:':<20} {learner.longest_streak}")
    print()


async def cmd_forecast(args: argparse.Namespace) -> None:
    """Show the number of reviews due on each upcoming day."""
    await ensure_db()
    learner_id = await ensure_learner()

    async with async_session() as db:
        states = await load_states(db, learner_id)

    days = forecast(states, utcnow().date(), args.days)
    print()
    for i, day in enumerate(days):
        name = "Today" if i == 0 else day.date.strftime("%a %d %b")
        bar = "#" * min(day.count, 50)
        print(f"  {name:<12} {day.count:>4}  {bar}")
    print()


def main() -> None:
    """Entry point for the Vocab SRS CLI application."""
    parser = argparse.ArgumentParser(
        prog="vocab_srs",
        description="Vocabulary spaced repetition trainer",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Start a practice session")
    review_parser.add_argument(
        "--max-words", type=int, default=settings.max_words_per_session, help="Max words per session"
    )
    review_parser.add_argument("--list", default=None, help="Only practice words from this list")

    # add
    add_parser = subparsers.add_parser("add", help="Add a new word")
    add_parser.add_argument("term", help="The word to learn")
    add_parser.add_argument("translation", help="Its meaning")
    add_parser.add_argument("-r", "--romanization", default="", help="Romanization, e.g. pinyin")
    add_parser.add_argument("-l", "--list", default=None, help="Add the word to this list")

    # due
    subparsers.add_parser("due", help="Show words due for review")

    # stats
    subparsers.add_parser("stats", help="Show your statistics")

    # forecast
    forecast_parser = subparsers.add_parser("forecast", help="Show upcoming reviews per day")
    forecast_parser.add_argument(
        "-d", "--days", type=int, default=settings.forecast_days, help="Number of days"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "review": cmd_review,
        "add": cmd_add,
        "due": cmd_due,
        "stats": cmd_stats,
        "forecast": cmd_forecast,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()
