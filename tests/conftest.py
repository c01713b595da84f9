from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from backend.database import get_store
from backend.main import app
from backend.store import CardStore


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator[CardStore, None]:
    async with CardStore(f"sqlite+aiosqlite:///{tmp_path / 'flashmind.db'}") as card_store:
        yield card_store


@pytest_asyncio.fixture
async def client(store: CardStore) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
