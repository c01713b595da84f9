"""API routes for tag management."""

from fastapi import APIRouter, Depends, HTTPException

from backend.api.schemas import TagCreateRequest, TagResponse, TagUpdateRequest
from backend.database import get_store
from backend.models.tag import Tag
from backend.srs.selection import cards_by_tag
from backend.store import CardStore

router = APIRouter(prefix="/api/tags", tags=["tags"])


def tag_response(tag: Tag, card_count: int = 0) -> TagResponse:
    return TagResponse(
        id=tag.id,
        name=tag.name,
        color=tag.color,
        created_at=tag.created_at,
        card_count=card_count,
    )


@router.get("", response_model=list[TagResponse])
async def list_tags(q: str = "", store: CardStore = Depends(get_store)) -> list[TagResponse]:
    """List tags with the number of cards carrying each."""
    cards = await store.get_all()
    tags = await store.search_tags(q)
    return [tag_response(t, len(cards_by_tag(cards, t.id))) for t in tags]


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(request: TagCreateRequest, store: CardStore = Depends(get_store)) -> TagResponse:
    try:
        tag_id = await store.add_tag(request.name, request.color)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return tag_response(await store.get_tag(tag_id))


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    request: TagUpdateRequest,
    store: CardStore = Depends(get_store),
) -> TagResponse:
    fields = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    try:
        tag = await store.update_tag(tag_id, fields)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    cards = await store.get_all()
    return tag_response(tag, len(cards_by_tag(cards, tag.id)))


@router.delete("/{tag_id}", status_code=204)
async def delete_tag(tag_id: str, store: CardStore = Depends(get_store)) -> None:
    await store.delete_tag(tag_id)
