"""Study session orchestrator.

Walks a queue of cards: show the front, flip to reveal the back, take a
rating, reschedule the card through the store, and count the rating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from backend.models.card import Card
from backend.srs.queue import QueueConfig, ReviewQueue, build_queue
from backend.srs.sm2 import Rating, round_half_up
from backend.store import CardNotFoundError, CardStore

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    """Raised when a session action does not fit the session's state."""


@dataclass
class SessionStats:
    """Per-rating counters for a study session."""

    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0

    def record(self, rating: Rating) -> None:
        name = rating.value
        setattr(self, name, getattr(self, name) + 1)

    @property
    def total_reviewed(self) -> int:
        return self.again + self.hard + self.good + self.easy

    @property
    def accuracy(self) -> int:
        """Percentage of reviews rated Good or Easy (0 if nothing reviewed)."""
        if self.total_reviewed == 0:
            return 0
        return round_half_up((self.good + self.easy) / self.total_reviewed * 100)


@dataclass
class ReviewSession:
    """Manages an active study session."""

    store: CardStore
    queue: ReviewQueue
    stats: SessionStats = field(default_factory=SessionStats)
    is_flipped: bool = False
    _card_index: int = 0
    _cards: list[Card] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Initialize the card list from the queue."""
        self._cards = self.queue.ordered()

    @property
    def total(self) -> int:
        return len(self._cards)

    @property
    def remaining(self) -> int:
        """Return the number of cards left to review."""
        return max(0, len(self._cards) - self._card_index)

    @property
    def progress(self) -> float:
        """Return the percentage of queued cards already rated."""
        if not self._cards:
            return 0.0
        return self._card_index / len(self._cards) * 100

    @property
    def is_complete(self) -> bool:
        """Return True if all cards have been reviewed."""
        return self._card_index >= len(self._cards)

    @property
    def current_card(self) -> Card | None:
        """Return the current card or None if session is complete."""
        if self._card_index < len(self._cards):
            return self._cards[self._card_index]
        return None

    def flip(self) -> bool:
        """Toggle between the front and back of the current card."""
        if self.is_complete:
            raise SessionStateError("Session is complete")
        self.is_flipped = not self.is_flipped
        return self.is_flipped

    async def rate(self, rating: Rating | str, now: int | None = None) -> Card | None:
        """Rate the current card and advance to the next one.

        Args:
            rating: The recall rating for the revealed card.
            now: Review time in epoch ms (defaults to now).

        Returns:
            The card with its updated scheduling state, or None if the card
            was deleted after the session started (it is skipped unrated).
        """
        rating = Rating(rating)
        card = self.current_card
        if card is None:
            raise SessionStateError("Session is complete")
        if not self.is_flipped:
            raise SessionStateError("Reveal the answer before rating")

        try:
            updated = await self.store.review(card.id, rating, now=now)
        except CardNotFoundError:
            logger.warning("Skipping card %s: deleted during the session", card.id)
            self._card_index += 1
            self.is_flipped = False
            return None

        self.stats.record(rating)
        self._cards[self._card_index] = updated
        self._card_index += 1
        self.is_flipped = False

        logger.debug(
            "Rated card %s %s; next in %d days (%d remaining)",
            card.id,
            rating.value,
            updated.interval,
            self.remaining,
        )
        return updated


async def start_session(
    store: CardStore,
    tag_id: str | None = None,
    config: QueueConfig | None = None,
    now: int | None = None,
) -> ReviewSession:
    """Start a new study session over the store's due and new cards.

    Args:
        store: The card store to read from and write reviews to.
        tag_id: Restrict the session to one tag.
        config: Queue configuration (session size cap).
        now: Current time in epoch ms (defaults to now).

    Returns:
        A ReviewSession ready for use.
    """
    cards = await store.get_all()
    queue = build_queue(cards, tag_id=tag_id, config=config, now=now)
    session = ReviewSession(store=store, queue=queue)

    logger.info("Started session: %d cards queued", session.total)
    return session
