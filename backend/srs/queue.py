"""Due-word selection for practice sessions.

Decides which words are eligible for review on a given day, caps the
working set at a session limit, and mixes new words in with reviews.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from backend.srs.state import SrsState

logger = logging.getLogger(__name__)

DEFAULT_NEW_RATIO = 0.2  # 80% overdue / 20% new when the due set is too large


@dataclass
class DueSelection:
    """The due words chosen for a session, split by kind."""

    overdue: list[SrsState] = field(default_factory=list)
    new: list[SrsState] = field(default_factory=list)
    overdue_available: int = 0
    new_available: int = 0

    @property
    def total(self) -> int:
        return len(self.overdue) + len(self.new)

    def interleaved(self) -> list[SrsState]:
        """Return words interleaved: mostly reviews with new words mixed in.

        Strategy: Insert new words at regular intervals within the review queue
        to maintain engagement without overwhelming with unfamiliar material.
        """
        if not self.new:
            return list(self.overdue)
        if not self.overdue:
            return list(self.new)

        result: list[SrsState] = []
        new = list(self.new)

        # Insert a new word every N reviews
        interval = max(1, len(self.overdue) // (len(new) + 1))
        new_idx = 0

        for i, state in enumerate(self.overdue):
            result.append(state)
            if new_idx < len(new) and (i + 1) % interval == 0:
                result.append(new[new_idx])
                new_idx += 1

        # Append any remaining new words at the end
        result.extend(new[new_idx:])
        return result


def is_due(state: SrsState, as_of: date) -> bool:
    """Return True if the word should be reviewed on ``as_of``.

    Never-reviewed words are always due. A reviewed word with no scheduled
    date is treated as due today.
    """
    if state.is_new:
        return True
    if state.next_review_date is None:
        return True
    return state.next_review_date <= as_of


def build_due_selection(
    states: list[SrsState],
    as_of: date,
    limit: int,
    list_id: int | None = None,
    new_ratio: float = DEFAULT_NEW_RATIO,
) -> DueSelection:
    """Partition and truncate the due words for a session.

    Args:
        states: Every SRS state of the learner.
        as_of: The day to check against (reviews are not time-of-day sensitive).
        limit: Maximum number of words to return.
        list_id: Only consider words belonging to this list/course.
        new_ratio: Share of ``limit`` reserved for new words when there are
            more due words than slots.

    Returns:
        A DueSelection. Overdue words are ordered most-overdue first, new
        words keep their input order.
    """
    limit = max(0, limit)
    new_ratio = min(1.0, max(0.0, new_ratio))

    candidates = states if list_id is None else [s for s in states if list_id in s.list_ids]

    overdue: list[SrsState] = []
    new: list[SrsState] = []
    for state in candidates:
        if not is_due(state, as_of):
            continue
        if state.is_new:
            new.append(state)
        else:
            overdue.append(state)

    # Most overdue first; stable on ties so callers control secondary order
    overdue.sort(key=lambda s: s.next_review_date or as_of)

    # Reserve a share for new words, then back-fill unused slots either way
    new_quota = min(len(new), int(limit * new_ratio))
    overdue_take = min(len(overdue), limit - new_quota)
    new_take = min(len(new), limit - overdue_take)

    selection = DueSelection(
        overdue=overdue[:overdue_take],
        new=new[:new_take],
        overdue_available=len(overdue),
        new_available=len(new),
    )
    logger.debug(
        "Due on %s: %d overdue + %d new available, selected %d + %d (limit %d)",
        as_of,
        len(overdue),
        len(new),
        len(selection.overdue),
        len(selection.new),
        limit,
    )
    return selection


def select_due(
    states: list[SrsState],
    as_of: date,
    limit: int,
    list_id: int | None = None,
    new_ratio: float = DEFAULT_NEW_RATIO,
) -> list[SrsState]:
    """Return the words to review on ``as_of``, at most ``limit`` of them."""
    return build_due_selection(states, as_of, limit, list_id, new_ratio).interleaved()
