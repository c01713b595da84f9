"""Export and import of card/tag collections as JSON bundles.

Bundle format (version 1.0)::

    {"cards": [...], "tags": [...], "exportDate": "<ISO-8601>", "version": "1.0"}

Records use the camelCase field names of the persisted shape. Imports are
validated completely before the store is touched, so a malformed file
never leaves a partial import behind.
"""

import json
import logging
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from backend.config import now_ms
from backend.models.card import Card
from backend.models.tag import Tag
from backend.store import CardStore

logger = logging.getLogger(__name__)

BUNDLE_VERSION = "1.0"


class InvalidBundleError(ValueError):
    """Raised when an import payload does not have the bundle shape."""


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardRecord(_Record):
    id: str
    front: str
    back: str
    front_image: str | None = None
    back_image: str | None = None
    tags: list[str]
    created_at: int
    updated_at: int
    interval: int
    repetitions: int
    ease_factor: float
    next_review_date: int
    last_review_date: int | None = None
    is_new: bool


class TagRecord(_Record):
    id: str
    name: str
    color: str
    created_at: int


_card_list = TypeAdapter(list[CardRecord])
_tag_list = TypeAdapter(list[TagRecord])


def iso_timestamp(ms: int) -> str:
    """Format epoch milliseconds like ``2024-05-01T12:30:00.000Z``."""
    moment = datetime.fromtimestamp(ms // 1000, UTC) + timedelta(milliseconds=ms % 1000)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def backup_filename(now: int | None = None) -> str:
    now = now_ms() if now is None else now
    return f"flashmind-backup-{iso_timestamp(now)[:10]}.json"


def card_to_dict(card: Card) -> dict:
    """Serialize a card to its persisted shape, omitting absent optionals."""
    record = CardRecord(**{name: getattr(card, name) for name in CardRecord.model_fields})
    return record.model_dump(by_alias=True, exclude_none=True)


def tag_to_dict(tag: Tag) -> dict:
    record = TagRecord(**{name: getattr(tag, name) for name in TagRecord.model_fields})
    return record.model_dump(by_alias=True, exclude_none=True)


def export_bundle(cards: list[Card], tags: list[Tag], now: int | None = None) -> dict:
    now = now_ms() if now is None else now
    return {
        "cards": [card_to_dict(c) for c in cards],
        "tags": [tag_to_dict(t) for t in tags],
        "exportDate": iso_timestamp(now),
        "version": BUNDLE_VERSION,
    }


def dumps_bundle(bundle: dict) -> str:
    return json.dumps(bundle, indent=2, ensure_ascii=False)


def parse_bundle(payload: str | bytes | dict) -> tuple[list[Card], list[Tag]]:
    """Validate an import payload and build transient card and tag rows.

    Raises:
        InvalidBundleError: If the payload is not JSON, lacks a ``cards`` or
            ``tags`` array, or contains records of the wrong shape.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InvalidBundleError(f"Invalid JSON file: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidBundleError("Invalid data: expected a JSON object")
    if not isinstance(payload.get("cards"), list):
        raise InvalidBundleError("Invalid data: cards array missing")
    if not isinstance(payload.get("tags"), list):
        raise InvalidBundleError("Invalid data: tags array missing")

    try:
        card_records = _card_list.validate_python(payload["cards"])
        tag_records = _tag_list.validate_python(payload["tags"])
    except ValidationError as e:
        raise InvalidBundleError(f"Invalid data: {e}") from e

    cards = [Card(position=i, **r.model_dump()) for i, r in enumerate(card_records)]
    tags = [Tag(position=i, **r.model_dump()) for i, r in enumerate(tag_records)]
    return cards, tags


async def export_store(store: CardStore, now: int | None = None) -> dict:
    cards = await store.get_all()
    tags = await store.get_tags()
    logger.info("Exporting %d cards and %d tags", len(cards), len(tags))
    return export_bundle(cards, tags, now=now)


async def import_into_store(store: CardStore, payload: str | bytes | dict) -> tuple[int, int]:
    """Replace the store's collections with a bundle.

    Returns:
        Tuple of (cards imported, tags imported).
    """
    cards, tags = parse_bundle(payload)
    await store.replace_collections(cards, tags)
    logger.info("Imported %d cards and %d tags", len(cards), len(tags))
    return len(cards), len(tags)
