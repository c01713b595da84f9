"""Card classification and selection queries.

All queries are pure filters over a card collection: they keep the input
order, never deduplicate, and can be composed (e.g. due cards within a
tag). "Due" is derived from ``next_review_date`` at call time and is
never stored on the card.
"""

from collections.abc import Iterable
from enum import Enum

from backend.config import now_ms
from backend.models.card import Card
from backend.models.tag import Tag

# Repetitions at which a card counts as mature
MATURE_REPETITIONS = 3


class CardClass(Enum):
    """Mutually exclusive study tiers."""

    NEW = "new"
    LEARNING = "learning"
    MATURE = "mature"


class CardFilter(Enum):
    """Filters offered by the card list."""

    ALL = "all"
    NEW = "new"
    LEARNING = "learning"
    MATURE = "mature"
    DUE = "due"


def is_due(card: Card, now: int | None = None) -> bool:
    now = now_ms() if now is None else now
    return card.next_review_date <= now


def is_new(card: Card) -> bool:
    return card.is_new


def is_learning(card: Card) -> bool:
    return not card.is_new and card.repetitions < MATURE_REPETITIONS


def is_mature(card: Card) -> bool:
    return card.repetitions >= MATURE_REPETITIONS


def has_tag(card: Card, tag_id: str | None) -> bool:
    """Return True if the card carries the tag (always True without a tag)."""
    return tag_id is None or tag_id in card.tags


def matches_query(card: Card, query: str) -> bool:
    """Case-insensitive substring match against front or back text."""
    if not query.strip():
        return True
    needle = query.lower()
    return needle in card.front.lower() or needle in card.back.lower()


def classify(card: Card) -> CardClass:
    """Place a card in exactly one of new, learning or mature."""
    if is_new(card):
        return CardClass.NEW
    if is_mature(card):
        return CardClass.MATURE
    return CardClass.LEARNING


def due_cards(cards: Iterable[Card], tag_id: str | None = None, now: int | None = None) -> list[Card]:
    now = now_ms() if now is None else now
    return [c for c in cards if is_due(c, now) and has_tag(c, tag_id)]


def new_cards(cards: Iterable[Card], tag_id: str | None = None) -> list[Card]:
    return [c for c in cards if is_new(c) and has_tag(c, tag_id)]


def learning_cards(cards: Iterable[Card], tag_id: str | None = None) -> list[Card]:
    return [c for c in cards if is_learning(c) and has_tag(c, tag_id)]


def mature_cards(cards: Iterable[Card], tag_id: str | None = None) -> list[Card]:
    return [c for c in cards if is_mature(c) and has_tag(c, tag_id)]


def cards_by_tag(cards: Iterable[Card], tag_id: str) -> list[Card]:
    return [c for c in cards if tag_id in c.tags]


def search_cards(cards: Iterable[Card], query: str, tag_id: str | None = None) -> list[Card]:
    """Search front/back text, optionally within a tag.

    A blank query returns every card that passes the tag filter.
    """
    return [c for c in cards if has_tag(c, tag_id) and matches_query(c, query)]


def cards_matching(
    cards: Iterable[Card],
    card_filter: CardFilter | str = CardFilter.ALL,
    tag_id: str | None = None,
    query: str = "",
    now: int | None = None,
) -> list[Card]:
    """Apply the card-list filter, tag and search text together."""
    card_filter = CardFilter(card_filter)
    now = now_ms() if now is None else now

    predicates = {
        CardFilter.ALL: lambda c: True,
        CardFilter.NEW: is_new,
        CardFilter.LEARNING: is_learning,
        CardFilter.MATURE: is_mature,
        CardFilter.DUE: lambda c: is_due(c, now),
    }
    keep = predicates[card_filter]
    return [c for c in cards if keep(c) and has_tag(c, tag_id) and matches_query(c, query)]


def resolve_tags(card: Card, tags: Iterable[Tag]) -> list[Tag]:
    """Return the card's tag records in card order, skipping deleted tags."""
    by_id = {t.id: t for t in tags}
    return [by_id[tag_id] for tag_id in card.tags if tag_id in by_id]
