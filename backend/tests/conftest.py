"""
Pytest configuration and fixtures for Poker Ledger tests.

Shared fixtures for testing async FastAPI endpoints and MongoDB interactions
using mongomock-motor (no real MongoDB required).
"""

import os

# Keep tests off the real webhook before any app imports
os.environ["DISCORD_WEBHOOK_URL"] = ""

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from pokerledger.models.session import Session


@pytest.fixture
def anyio_backend():
    """Specify anyio backend for async tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def test_db():
    """In-memory MongoDB mock database for unit tests.

    The database is ephemeral -- it disappears after each test.
    """
    client = AsyncMongoMockClient()
    db = client["pokerledger_test"]
    yield db
    client.close()


@pytest.fixture
def session() -> Session:
    """An empty in-progress session."""
    return Session(session_id="20250314-1", date_prefix="20250314")


@pytest_asyncio.fixture
async def client():
    """Async HTTP client for testing FastAPI endpoints."""
    from httpx import ASGITransport, AsyncClient
    from pokerledger.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
