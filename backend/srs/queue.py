"""Queue management for study sessions.

Due cards come first, then new cards, capped at the session size limit.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from backend.config import now_ms, settings
from backend.models.card import Card
from backend.srs.selection import due_cards, new_cards

logger = logging.getLogger(__name__)


@dataclass
class QueueConfig:
    """Configuration for queue building."""

    max_cards: int = settings.session_size_limit


@dataclass
class ReviewQueue:
    """A prepared queue of cards for a study session."""

    due_cards: list[Card] = field(default_factory=list)
    new_cards: list[Card] = field(default_factory=list)
    max_cards: int = settings.session_size_limit

    def ordered(self) -> list[Card]:
        """Return due cards then new cards, each card once, up to the cap.

        A never-reviewed card is due from creation, so it can sit in both
        lists; it keeps its first (due) position.
        """
        result: list[Card] = []
        seen: set[str] = set()
        for card in [*self.due_cards, *self.new_cards]:
            if card.id in seen:
                continue
            seen.add(card.id)
            result.append(card)
            if len(result) >= self.max_cards:
                break
        return result

    @property
    def total(self) -> int:
        return len(self.ordered())

    @property
    def new_count(self) -> int:
        """Queued cards never reviewed before."""
        return sum(1 for c in self.ordered() if c.is_new)

    @property
    def review_count(self) -> int:
        """Queued cards that have been reviewed before."""
        return self.total - self.new_count


def build_queue(
    cards: Iterable[Card],
    tag_id: str | None = None,
    config: QueueConfig | None = None,
    now: int | None = None,
) -> ReviewQueue:
    """Build a study queue from a card collection.

    Args:
        cards: The full card collection, in collection order.
        tag_id: Restrict the session to one tag.
        config: Queue configuration (size cap).
        now: Current time in epoch ms (defaults to now).

    Returns:
        A ReviewQueue with due and new cards.
    """
    config = config or QueueConfig()
    now = now_ms() if now is None else now
    cards = list(cards)

    queue = ReviewQueue(
        due_cards=due_cards(cards, tag_id=tag_id, now=now),
        new_cards=new_cards(cards, tag_id=tag_id),
        max_cards=config.max_cards,
    )

    logger.info(
        "Built queue: %d due + %d new -> %d queued (tag=%s)",
        len(queue.due_cards),
        len(queue.new_cards),
        queue.total,
        tag_id,
    )
    return queue
