"""FastAPI application entry point and configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.card_router import router as card_router
from backend.api.data_router import router as data_router
from backend.api.session_router import router as session_router
from backend.api.stats_router import router as stats_router
from backend.api.tag_router import router as tag_router
from backend.config import settings
from backend.database import get_store
from backend.store import CardStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the card store on startup and close it on shutdown."""
    store = CardStore(settings.database_url)
    await store.open()
    app.state.store = store
    yield
    await store.close()


app = FastAPI(
    title=settings.app_name,
    description="Flashcard study tool with SM-2 spaced repetition",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(card_router)
app.include_router(tag_router)
app.include_router(session_router)
app.include_router(stats_router)
app.include_router(data_router)


@app.get("/health")
async def health_check(store: CardStore = Depends(get_store)) -> dict[str, str]:
    """Check database connectivity and return status."""
    await store.ping()
    return {"status": "ok"}
