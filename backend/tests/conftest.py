from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from salesdesk.api.deps.context import get_snapshot, get_writer
from salesdesk.core.security import create_access_token

from factories import MemoryStore, MemoryWriter


# ---------------------------------------------------------
# Data
# ---------------------------------------------------------
@pytest.fixture()
def store() -> MemoryStore:
    """Users + catalog preloaded; sales, ledger and support start empty."""
    return MemoryStore()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(store: MemoryStore):
    from salesdesk.main import app as fastapi_app

    # a fresh snapshot per request, like load_snapshot
    fastapi_app.dependency_overrides[get_snapshot] = lambda: store.snapshot()
    fastapi_app.dependency_overrides[get_writer] = lambda: MemoryWriter(store)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture()
def auth():
    """auth(user_id) -> Authorization header for that user."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
