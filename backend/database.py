"""Card store access for FastAPI dependency injection."""

from fastapi import Request

from backend.store import CardStore


def get_store(request: Request) -> CardStore:
    """Return the store opened by the application lifespan."""
    return request.app.state.store
