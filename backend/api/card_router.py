"""API routes for card management and single-card reviews."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from backend.api.schemas import (
    CardCreateRequest,
    CardResponse,
    CardUpdateRequest,
    ReviewRequest,
)
from backend.config import now_ms
from backend.database import get_store
from backend.models.card import Card
from backend.srs.selection import CardFilter, cards_matching, classify, is_due
from backend.store import CardDraft, CardNotFoundError, CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cards", tags=["cards"])


def card_response(card: Card, now: int) -> CardResponse:
    """Build the API view of a card, including derived status."""
    fields = {name: getattr(card, name) for name in CardResponse.model_fields if hasattr(card, name)}
    return CardResponse(**fields, classification=classify(card).value, is_due=is_due(card, now))


@router.get("", response_model=list[CardResponse])
async def list_cards(
    filter: CardFilter = CardFilter.ALL,
    tag_id: str | None = None,
    q: str = "",
    store: CardStore = Depends(get_store),
) -> list[CardResponse]:
    """List cards, optionally filtered by status, tag and search text."""
    now = now_ms()
    cards = cards_matching(await store.get_all(), filter, tag_id=tag_id, query=q, now=now)
    return [card_response(c, now) for c in cards]


@router.post("", response_model=CardResponse, status_code=201)
async def create_card(
    request: CardCreateRequest,
    store: CardStore = Depends(get_store),
) -> CardResponse:
    now = now_ms()
    draft = CardDraft(
        front=request.front,
        back=request.back,
        tags=request.tags,
        front_image=request.front_image,
        back_image=request.back_image,
    )
    card_id = await store.insert(draft, now=now)
    card = await store.get(card_id)
    return card_response(card, now)


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, store: CardStore = Depends(get_store)) -> CardResponse:
    card = await store.get(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return card_response(card, now_ms())


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: str,
    request: CardUpdateRequest,
    store: CardStore = Depends(get_store),
) -> CardResponse:
    """Edit a card's content; scheduling state is left alone."""
    now = now_ms()
    # Images may be cleared with null; text and tags may not
    fields = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None or name in ("front_image", "back_image")
    }
    card = await store.update(card_id, fields, now=now)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return card_response(card, now)


@router.delete("/{card_id}", status_code=204)
async def delete_card(card_id: str, store: CardStore = Depends(get_store)) -> None:
    await store.delete(card_id)


@router.post("/{card_id}/review", response_model=CardResponse)
async def review_card(
    card_id: str,
    request: ReviewRequest,
    store: CardStore = Depends(get_store),
) -> CardResponse:
    """Apply a rating to a card outside of a study session."""
    now = now_ms()
    try:
        card = await store.review(card_id, request.rating, now=now)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return card_response(card, now)
