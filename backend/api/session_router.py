"""API routes for study sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from backend.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    FlipResponse,
    SessionCardResponse,
    SessionStartResponse,
    SessionStatsResponse,
)
from backend.api.tag_router import tag_response
from backend.database import get_store
from backend.srs.selection import resolve_tags
from backend.srs.session import ReviewSession, SessionStateError, start_session
from backend.store import CardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store; single user, single process
_active_sessions: dict[str, ReviewSession] = {}


def _get_session(session_id: str) -> ReviewSession:
    review_session = _active_sessions.get(session_id)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")
    return review_session


def _stats_response(review_session: ReviewSession) -> SessionStatsResponse:
    s = review_session.stats
    return SessionStatsResponse(
        again=s.again,
        hard=s.hard,
        good=s.good,
        easy=s.easy,
        total_reviewed=s.total_reviewed,
        accuracy=s.accuracy,
    )


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    tag_id: str | None = None,
    store: CardStore = Depends(get_store),
) -> SessionStartResponse:
    """Start a new study session over due and new cards."""
    review_session = await start_session(store, tag_id=tag_id)

    if review_session.total == 0:
        raise HTTPException(status_code=404, detail="No cards available for review")

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = review_session

    return SessionStartResponse(
        session_id=session_id,
        total_cards=review_session.total,
        review_cards=review_session.queue.review_count,
        new_cards=review_session.queue.new_count,
    )


@router.get("/next/{session_id}", response_model=SessionCardResponse)
async def session_next(
    session_id: str,
    store: CardStore = Depends(get_store),
) -> SessionCardResponse:
    """Get the card currently presented; the back is hidden until flipped."""
    review_session = _get_session(session_id)

    card = review_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    flipped = review_session.is_flipped
    tags = resolve_tags(card, await store.get_tags())
    return SessionCardResponse(
        card_id=card.id,
        front=card.front,
        front_image=card.front_image,
        back=card.back if flipped else None,
        back_image=card.back_image if flipped else None,
        tags=[tag_response(t) for t in tags],
        is_new=card.is_new,
        is_flipped=flipped,
        remaining=review_session.remaining,
        progress=review_session.progress,
    )


@router.post("/flip/{session_id}", response_model=FlipResponse)
async def session_flip(session_id: str) -> FlipResponse:
    """Toggle between the front and the back of the current card."""
    review_session = _get_session(session_id)
    try:
        flipped = review_session.flip()
    except SessionStateError as e:
        raise HTTPException(status_code=410, detail=str(e)) from e
    return FlipResponse(is_flipped=flipped)


@router.post("/answer/{session_id}", response_model=AnswerResponse)
async def session_answer(session_id: str, request: AnswerRequest) -> AnswerResponse:
    """Rate the current card."""
    review_session = _get_session(session_id)

    card = review_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")
    if card.id != request.card_id:
        raise HTTPException(status_code=400, detail="Card ID mismatch")

    try:
        updated = await review_session.rate(request.rating)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    if updated is None:
        return AnswerResponse(
            rating=request.rating,
            skipped=True,
            remaining=review_session.remaining,
            session_complete=review_session.is_complete,
        )

    return AnswerResponse(
        rating=request.rating,
        interval=updated.interval,
        repetitions=updated.repetitions,
        ease_factor=updated.ease_factor,
        next_review_date=updated.next_review_date,
        remaining=review_session.remaining,
        session_complete=review_session.is_complete,
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    """Get stats for the current session."""
    return _stats_response(_get_session(session_id))


@router.post("/end/{session_id}", response_model=SessionStatsResponse)
async def session_end(session_id: str) -> SessionStatsResponse:
    """End a session and clean up."""
    review_session = _active_sessions.pop(session_id, None)
    if not review_session:
        raise HTTPException(status_code=404, detail="Session not found")

    logger.info(
        "Ended session %s: %d reviewed, %d%% accuracy",
        session_id,
        review_session.stats.total_reviewed,
        review_session.stats.accuracy,
    )
    return _stats_response(review_session)
