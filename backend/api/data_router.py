"""API routes for backup export and import."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.api.schemas import ImportResponse
from backend.config import now_ms
from backend.database import get_store
from backend.store import CardStore
from backend.transfer import InvalidBundleError, backup_filename, export_store, import_into_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data", tags=["data"])


@router.get("/export")
async def export_data(store: CardStore = Depends(get_store)) -> JSONResponse:
    """Download all cards and tags as a backup bundle."""
    now = now_ms()
    bundle = await export_store(store, now=now)
    return JSONResponse(
        bundle,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename(now)}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_data(
    payload: Any = Body(...),
    store: CardStore = Depends(get_store),
) -> ImportResponse:
    """Replace all cards and tags with a backup bundle.

    A malformed bundle is rejected and the existing data is left untouched.
    """
    try:
        cards, tags = await import_into_store(store, payload)
    except InvalidBundleError as e:
        logger.warning("Rejected import: %s", e)
        raise HTTPException(status_code=422, detail=str(e)) from e
    return ImportResponse(cards_imported=cards, tags_imported=tags)
