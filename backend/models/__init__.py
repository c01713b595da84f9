"""SQLAlchemy ORM models for the FlashMind database."""

from backend.models.base import Base
from backend.models.card import Card
from backend.models.tag import Tag

__all__ = ["Base", "Card", "Tag"]
