"""Flashcard model with SM-2 scheduling state."""

from sqlalchemy import JSON, BigInteger, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base


class Card(Base):
    """A flashcard: front/back content, tag ids, and its scheduling state.

    Timestamps are epoch milliseconds so records round-trip through the
    JSON export format unchanged.
    """

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # Collection order
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    front_image: Mapped[str | None] = mapped_column(Text, nullable=True)  # Opaque data URL
    back_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Days
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    next_review_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_review_date: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_new: Mapped[bool] = mapped_column(nullable=False, default=True)
