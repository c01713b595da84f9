"""SM-2 spaced repetition algorithm.

The classic SuperMemo-2 recurrence used to schedule every card.

Key concepts:
- Interval: whole days until the card is shown again.
- Repetitions: consecutive successful reviews since the last lapse.
- Ease factor (EF): multiplier for interval growth, never below 1.3.
- Rating: Again/Hard/Good/Easy, mapped to SM-2 quality 0/3/4/5.

Intervals follow the ladder 1 day -> 6 days -> previous * EF. A lapse
(quality < 3) resets the streak to zero and the interval to one day.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum

from backend.config import MS_PER_DAY, now_ms

logger = logging.getLogger(__name__)

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5

# Second step of the interval ladder (days)
SECOND_INTERVAL = 6


class Rating(Enum):
    """Self-assessed recall quality, ordered from worst to best."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


QUALITY = {
    Rating.AGAIN: 0,
    Rating.HARD: 3,
    Rating.GOOD: 4,
    Rating.EASY: 5,
}


@dataclass
class CardState:
    """The scheduling fields the algorithm reads."""

    interval: int  # Days
    repetitions: int  # Successful reviews since last lapse
    ease_factor: float


@dataclass
class ReviewUpdate:
    """Fields to merge into a card after a review."""

    interval: int
    repetitions: int
    ease_factor: float
    next_review_date: int  # Epoch ms
    last_review_date: int  # Epoch ms
    is_new: bool = False

    def as_fields(self) -> dict:
        """Return the update as a plain dict of card attributes."""
        return asdict(self)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for non-negatives.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); SM-2
    intervals round .5 upwards so ``round_half_up(2.5) == 3``.
    """
    return math.floor(value + 0.5)


def ease_delta(quality: int) -> float:
    """Change in ease factor for a given quality (0 for Good, +0.1 for Easy)."""
    return 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)


def compute_next_review(
    state: CardState,
    rating: Rating | str,
    now: int | None = None,
) -> ReviewUpdate:
    """Compute a card's new scheduling state after a review.

    Args:
        state: Current interval, repetitions and ease factor.
        rating: Review rating; plain strings ("again", "good", ...) are
            accepted. Unknown values raise ``ValueError``.
        now: Review time in epoch milliseconds (defaults to the current time).

    Returns:
        ReviewUpdate with the six fields to merge into the card.
    """
    rating = Rating(rating)
    quality = QUALITY[rating]
    now = now_ms() if now is None else now

    # A corrupted record may carry an ease factor below the floor
    ease_factor = max(MIN_EASE_FACTOR, state.ease_factor)
    repetitions = state.repetitions

    if quality < 3:
        repetitions = 0
        interval = 1
    else:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = SECOND_INTERVAL
        else:
            interval = max(1, round_half_up(state.interval * ease_factor))
        repetitions += 1

    ease_factor = max(MIN_EASE_FACTOR, ease_factor + ease_delta(quality))

    logger.debug(
        "Review %s: interval %d -> %d, reps %d -> %d, ease %.2f -> %.2f",
        rating.value,
        state.interval,
        interval,
        state.repetitions,
        repetitions,
        state.ease_factor,
        ease_factor,
    )

    return ReviewUpdate(
        interval=interval,
        repetitions=repetitions,
        ease_factor=ease_factor,
        next_review_date=now + interval * MS_PER_DAY,
        last_review_date=now,
    )
