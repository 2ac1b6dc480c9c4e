"""
pytest configuration and shared fixtures for the CoastWatch API tests.

Tests must not require a live MongoDB, Hugging Face key or news API key:
  1. connect_to_mongo / close_mongo_connection are patched to no-ops.
  2. db_client.client / db_client.db are set to None (disconnected).
  3. AI_MOCK_MODE=true so the image classifier never touches the network.
  4. Routes that need a database get FakeDB via app.dependency_overrides.
"""

import os
from itertools import count
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")


# ── In-memory Mongo double ────────────────────────────────────────────────────

class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = None

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def __aiter__(self):
        end = None if self._limit is None else self._skip + self._limit
        for doc in self._docs[self._skip:end]:
            yield doc


class FakeCollection:
    """Supports the subset of Motor calls the stores make."""

    def __init__(self):
        self._docs = {}
        self._order = count()
        self.indexes = []

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(k) == v for k, v in query.items())

    def _find_first(self, query):
        for doc in self._docs.values():
            if self._matches(doc, query):
                return doc
        return None

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return "idx"

    async def insert_one(self, doc):
        oid = doc.get("_id") or ObjectId()
        self._docs[oid] = {**doc, "_id": oid}
        return SimpleNamespace(inserted_id=oid)

    async def find_one(self, query):
        return self._find_first(query)

    def find(self, query=None):
        return FakeCursor([d for d in self._docs.values() if self._matches(d, query or {})])

    async def count_documents(self, query):
        return sum(1 for d in self._docs.values() if self._matches(d, query))

    async def update_one(self, query, update, upsert=False):
        doc = self._find_first(query)
        if doc is not None:
            doc.update(update.get("$set", {}))
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            new_doc = {**query, **update.get("$setOnInsert", {}), **update.get("$set", {})}
            result = await self.insert_one(new_doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=result.inserted_id)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def find_one_and_update(self, query, update, return_document=None):
        doc = self._find_first(query)
        if doc is None:
            return None
        doc.update(update.get("$set", {}))
        return dict(doc)

    def all(self):
        return list(self._docs.values())


class FakeDB:
    def __init__(self):
        self._cols = {}

    def __getitem__(self, name):
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
async def mock_db():
    """Patch the MongoDB lifecycle so no test reaches a real database."""
    with (
        patch("coastwatch.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("coastwatch.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import coastwatch.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX async client against the app with no database."""
    from coastwatch.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def db_client(fake_db):
    """HTTPX async client against the app backed by FakeDB."""
    from coastwatch.core.database import get_db
    from coastwatch.core.rate_limit import limiter
    from coastwatch.main import app

    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
