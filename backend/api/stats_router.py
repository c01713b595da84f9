"""API routes for dashboard statistics."""

from fastapi import APIRouter, Depends

from backend.api.card_router import card_response
from backend.api.schemas import DashboardResponse
from backend.config import now_ms
from backend.database import get_store
from backend.srs.stats import dashboard_stats
from backend.store import CardStore

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(store: CardStore = Depends(get_store)) -> DashboardResponse:
    """Get collection-wide counts by status and the most recent cards."""
    now = now_ms()
    stats = dashboard_stats(await store.get_all(), await store.get_tags(), now=now)

    return DashboardResponse(
        total_cards=stats.total_cards,
        total_tags=stats.total_tags,
        cards_due=stats.due,
        cards_new=stats.new,
        cards_learning=stats.learning,
        cards_mature=stats.mature,
        mastery_percentage=stats.mastery_percentage,
        recent_cards=[card_response(c, now) for c in stats.recent_cards],
    )
