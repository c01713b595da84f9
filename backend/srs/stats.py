"""Dashboard statistics over the card collection."""

from dataclasses import dataclass, field

from backend.config import now_ms
from backend.models.card import Card
from backend.models.tag import Tag
from backend.srs.selection import due_cards, learning_cards, mature_cards, new_cards
from backend.srs.sm2 import round_half_up

RECENT_CARDS = 5


@dataclass
class DashboardStats:
    total_cards: int
    total_tags: int
    due: int
    new: int
    learning: int
    mature: int
    mastery_percentage: int  # Mature share of all cards
    recent_cards: list[Card] = field(default_factory=list)


def dashboard_stats(cards: list[Card], tags: list[Tag], now: int | None = None) -> DashboardStats:
    now = now_ms() if now is None else now
    mature = len(mature_cards(cards))
    mastery = round_half_up(mature / len(cards) * 100) if cards else 0

    return DashboardStats(
        total_cards=len(cards),
        total_tags=len(tags),
        due=len(due_cards(cards, now=now)),
        new=len(new_cards(cards)),
        learning=len(learning_cards(cards)),
        mature=mature,
        mastery_percentage=mastery,
        recent_cards=cards[:RECENT_CARDS],
    )
