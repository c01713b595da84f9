"""Pydantic schemas for API request/response models.

All payloads use camelCase keys, matching the field names of the export
format; requests also accept the snake_case attribute names.
"""

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from backend.srs.sm2 import Rating
from backend.transfer import CardRecord, TagRecord


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Cards ---


class CardCreateRequest(_CamelModel):
    """Request to create a card."""

    front: str
    back: str
    front_image: str | None = None
    back_image: str | None = None
    tags: list[str] = []

    @field_validator("front", "back")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class CardUpdateRequest(_CamelModel):
    """Partial update of a card's content."""

    front: str | None = None
    back: str | None = None
    front_image: str | None = None
    back_image: str | None = None
    tags: list[str] | None = None

    @field_validator("front", "back")
    @classmethod
    def not_blank(cls, value: str | None) -> str | None:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("must not be empty")
        return value


class CardResponse(CardRecord):
    """A card with its derived classification."""

    classification: str  # new, learning, mature
    is_due: bool


class ReviewRequest(_CamelModel):
    rating: Rating


# --- Tags ---


class TagCreateRequest(_CamelModel):
    name: str
    color: str | None = None


class TagUpdateRequest(_CamelModel):
    name: str | None = None
    color: str | None = None


class TagResponse(TagRecord):
    card_count: int = 0


# --- Session ---


class SessionStartResponse(_CamelModel):
    """Response when starting a new study session."""

    session_id: str
    total_cards: int
    review_cards: int  # Reviewed before
    new_cards: int  # Never reviewed


class SessionCardResponse(_CamelModel):
    """The card currently presented in a session."""

    card_id: str
    front: str
    front_image: str | None = None
    back: str | None = None  # Only once flipped
    back_image: str | None = None
    tags: list[TagResponse]
    is_new: bool
    is_flipped: bool
    remaining: int
    progress: float


class AnswerRequest(_CamelModel):
    """Request to rate the current card."""

    card_id: str
    rating: Rating


class AnswerResponse(_CamelModel):
    """Response after rating a card with its new schedule."""

    rating: Rating
    skipped: bool = False  # Card was deleted during the session
    interval: int | None = None
    repetitions: int | None = None
    ease_factor: float | None = None
    next_review_date: int | None = None
    remaining: int
    session_complete: bool


class FlipResponse(_CamelModel):
    is_flipped: bool


class SessionStatsResponse(_CamelModel):
    """Statistics for the current study session."""

    again: int
    hard: int
    good: int
    easy: int
    total_reviewed: int
    accuracy: int


# --- Stats ---


class DashboardResponse(_CamelModel):
    """Collection overview for the dashboard."""

    total_cards: int
    total_tags: int
    cards_due: int
    cards_new: int
    cards_learning: int
    cards_mature: int  # repetitions >= 3
    mastery_percentage: int
    recent_cards: list[CardResponse]


# --- Data ---


class ImportResponse(_CamelModel):
    cards_imported: int
    tags_imported: int
