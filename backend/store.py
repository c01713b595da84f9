"""Card Store: durable card and tag collections backed by SQLite.

The store is an explicitly owned service with a lifecycle::

    store = CardStore(url)
    await store.open()     # create tables, recover from a corrupt file
    ...                    # read / write operations
    await store.close()    # release connections

Collections keep an explicit order (``position``): new cards go to the
front, tags to the back, and bulk replacement keeps the given order so
export/import round-trips are order-preserving.
"""

import logging
import random
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import DatabaseError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.config import now_ms, settings
from backend.models import Base
from backend.models.card import Card
from backend.models.tag import Tag
from backend.srs.sm2 import CardState, Rating, compute_next_review

logger = logging.getLogger(__name__)

TAG_COLORS = [
    "#ef4444",  # red
    "#f97316",  # orange
    "#f59e0b",  # amber
    "#84cc16",  # lime
    "#10b981",  # emerald
    "#06b6d4",  # cyan
    "#3b82f6",  # blue
    "#6366f1",  # indigo
    "#8b5cf6",  # violet
    "#d946ef",  # fuchsia
    "#f43f5e",  # rose
    "#64748b",  # slate
]

# Attributes callers may change through update()
CARD_UPDATABLE = {
    "front",
    "back",
    "front_image",
    "back_image",
    "tags",
    "interval",
    "repetitions",
    "ease_factor",
    "next_review_date",
    "last_review_date",
    "is_new",
}
TAG_UPDATABLE = {"name", "color"}


class StoreError(Exception):
    """Base class for card store failures."""


class CardNotFoundError(StoreError):
    """Raised when an operation requires a card that does not exist."""

    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


def require_text(value: str, field_name: str) -> str:
    """Trim a required text field, rejecting blank values."""
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} must not be empty")
    return value


@dataclass
class CardDraft:
    """Content for a new card; scheduling defaults are applied by the store."""

    front: str
    back: str
    tags: list[str] = field(default_factory=list)
    front_image: str | None = None
    back_image: str | None = None

    def __post_init__(self) -> None:
        self.front = require_text(self.front, "front")
        self.back = require_text(self.back, "back")
        self.tags = list(dict.fromkeys(self.tags))


def clone_row(row: Card | Tag, **overrides) -> Card | Tag:
    """Copy an ORM row into a fresh transient instance."""
    values = {attr.key: getattr(row, attr.key) for attr in row.__mapper__.column_attrs}
    values.update(overrides)
    if "tags" in values:
        values["tags"] = list(values["tags"] or [])
    return type(row)(**values)


class CardStore:
    """Owns the card and tag collections."""

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url or settings.database_url
        self.engine = create_async_engine(self.database_url, echo=settings.debug)
        self._sessionmaker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def __aenter__(self) -> "CardStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- Lifecycle ---

    async def open(self) -> None:
        """Create tables, moving an unreadable database file out of the way.

        A corrupt file is renamed to ``<name>.corrupt-<epoch_ms>`` so it can
        be recovered by hand, and the store starts empty.
        """
        path = self.database_path
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)

        try:
            await self._create_tables()
        except DatabaseError:
            if path is None or not path.exists():
                raise
            await self.engine.dispose()
            quarantine = path.with_name(f"{path.name}.corrupt-{now_ms()}")
            path.rename(quarantine)
            logger.error(
                "Database %s is unreadable; moved to %s and starting empty",
                path,
                quarantine,
                exc_info=True,
            )
            await self._create_tables()

        logger.info("Opened card store at %s", self.database_url)

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Closed card store at %s", self.database_url)

    @property
    def database_path(self) -> Path | None:
        """Path of the SQLite file, or None for in-memory databases."""
        database = self.engine.url.database
        if not database or database == ":memory:":
            return None
        return Path(database)

    async def _create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        """Run a trivial query to check the database is reachable."""
        async with self._sessionmaker() as db:
            await db.execute(text("SELECT 1"))

    # --- Cards ---

    async def get_all(self) -> list[Card]:
        """Return every card in collection order."""
        async with self._sessionmaker() as db:
            result = await db.execute(select(Card).order_by(Card.position.asc()))
            return list(result.scalars().all())

    async def get(self, card_id: str) -> Card | None:
        async with self._sessionmaker() as db:
            return await db.get(Card, card_id)

    async def insert(self, draft: CardDraft, now: int | None = None) -> str:
        """Add a card at the front of the collection and return its id."""
        now = now_ms() if now is None else now

        async with self._sessionmaker() as db:
            first = (await db.execute(select(func.min(Card.position)))).scalar()
            card = Card(
                id=str(uuid.uuid4()),
                position=0 if first is None else first - 1,
                front=draft.front,
                back=draft.back,
                front_image=draft.front_image,
                back_image=draft.back_image,
                tags=list(draft.tags),
                created_at=now,
                updated_at=now,
                interval=0,
                repetitions=0,
                ease_factor=settings.default_ease_factor,
                next_review_date=now,
                last_review_date=None,
                is_new=True,
            )
            db.add(card)
            await db.commit()

        logger.debug("Inserted card %s", card.id)
        return card.id

    async def update(self, card_id: str, fields: dict, now: int | None = None) -> Card | None:
        """Merge fields into a card and stamp ``updated_at``.

        Does nothing (and returns None) when the card does not exist.
        """
        unknown = set(fields) - CARD_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update card fields: {sorted(unknown)}")
        now = now_ms() if now is None else now

        async with self._sessionmaker() as db:
            card = await db.get(Card, card_id)
            if card is None:
                logger.debug("Update skipped, card %s not found", card_id)
                return None

            for name, value in fields.items():
                if name in ("front", "back"):
                    value = require_text(value, name)
                elif name == "tags":
                    value = list(dict.fromkeys(value))
                setattr(card, name, value)
            card.updated_at = now
            await db.commit()
            return card

    async def review(self, card_id: str, rating: Rating | str, now: int | None = None) -> Card:
        """Schedule a card from a review rating and store the result.

        The clock is sampled once so the due date, the review date and
        ``updated_at`` all agree.
        """
        now = now_ms() if now is None else now

        async with self._sessionmaker() as db:
            card = await db.get(Card, card_id)
            if card is None:
                raise CardNotFoundError(card_id)

            state = CardState(
                interval=card.interval,
                repetitions=card.repetitions,
                ease_factor=card.ease_factor,
            )
            update = compute_next_review(state, rating, now=now)
            for name, value in update.as_fields().items():
                setattr(card, name, value)
            card.updated_at = now
            await db.commit()
            return card

    async def delete(self, card_id: str) -> None:
        async with self._sessionmaker() as db:
            card = await db.get(Card, card_id)
            if card is not None:
                await db.delete(card)
                await db.commit()

    async def replace_all(self, cards: Iterable[Card]) -> None:
        """Replace the whole card collection, keeping the given order."""
        async with self._sessionmaker() as db:
            await db.execute(delete(Card))
            db.add_all(clone_row(c, position=i) for i, c in enumerate(cards))
            await db.commit()

    # --- Tags ---

    async def get_tags(self) -> list[Tag]:
        async with self._sessionmaker() as db:
            result = await db.execute(select(Tag).order_by(Tag.position.asc()))
            return list(result.scalars().all())

    async def get_tag(self, tag_id: str) -> Tag | None:
        async with self._sessionmaker() as db:
            return await db.get(Tag, tag_id)

    async def add_tag(self, name: str, color: str | None = None, now: int | None = None) -> str:
        """Append a tag; a palette colour is picked at random when none is given."""
        now = now_ms() if now is None else now

        async with self._sessionmaker() as db:
            last = (await db.execute(select(func.max(Tag.position)))).scalar()
            tag = Tag(
                id=str(uuid.uuid4()),
                position=0 if last is None else last + 1,
                name=require_text(name, "name"),
                color=color or random.choice(TAG_COLORS),
                created_at=now,
            )
            db.add(tag)
            await db.commit()
        return tag.id

    async def update_tag(self, tag_id: str, fields: dict) -> Tag | None:
        unknown = set(fields) - TAG_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update tag fields: {sorted(unknown)}")

        async with self._sessionmaker() as db:
            tag = await db.get(Tag, tag_id)
            if tag is None:
                return None
            for name, value in fields.items():
                if name == "name":
                    value = require_text(value, "name")
                setattr(tag, name, value)
            await db.commit()
            return tag

    async def delete_tag(self, tag_id: str) -> None:
        """Delete a tag. Cards keep the id and show as untagged for it."""
        async with self._sessionmaker() as db:
            tag = await db.get(Tag, tag_id)
            if tag is not None:
                await db.delete(tag)
                await db.commit()

    async def replace_tags(self, tags: Iterable[Tag]) -> None:
        async with self._sessionmaker() as db:
            await db.execute(delete(Tag))
            db.add_all(clone_row(t, position=i) for i, t in enumerate(tags))
            await db.commit()

    async def search_tags(self, query: str) -> list[Tag]:
        tags = await self.get_tags()
        if not query.strip():
            return tags
        needle = query.lower()
        return [t for t in tags if needle in t.name.lower()]

    # --- Bulk ---

    async def replace_collections(self, cards: Iterable[Card], tags: Iterable[Tag]) -> None:
        """Replace cards and tags together in a single transaction."""
        cards = [clone_row(c, position=i) for i, c in enumerate(cards)]
        tags = [clone_row(t, position=i) for i, t in enumerate(tags)]

        async with self._sessionmaker() as db:
            await db.execute(delete(Card))
            await db.execute(delete(Tag))
            db.add_all(cards)
            db.add_all(tags)
            await db.commit()

        logger.info("Replaced collections: %d cards, %d tags", len(cards), len(tags))
