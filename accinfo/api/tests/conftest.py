"""
Shared fixtures for the query service test suite.

Provides an in-memory index and an async test client wrapping the FastAPI
app via ASGITransport; no sockets are opened.
"""

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from accinfo.api.service import create_app
from accinfo.config import Config
from accinfo.db.importer import import_keepass_xml
from accinfo.db.index import QueryIndex


@pytest.fixture
def index(sample_export) -> QueryIndex:
    return QueryIndex(import_keepass_xml(sample_export).collection)


@pytest.fixture
def api_config() -> Config:
    return Config(api_token="", rate_limit=0)


@pytest_asyncio.fixture
async def test_client(index, api_config):
    """Async HTTP client wrapping the query app via ASGITransport."""
    app = create_app(index, api_config)
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_client(index):
    """Factory for clients over an app built with a custom config."""
    clients = []

    async def _make(config: Config) -> httpx.AsyncClient:
        client = httpx.AsyncClient(
            transport=ASGITransport(app=create_app(index, config)), base_url="http://test"
        )
        clients.append(client)
        return client

    yield _make
    for c in clients:
        await c.aclose()
