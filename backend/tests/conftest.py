"""Pytest fixtures."""

import asyncio
from datetime import date

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ConnectionFailure

import config
import dates
from database import MongoPool
from server import app
from supabase_client import get_media_gateway

TODAY = date(2024, 6, 15)


class FakeMediaGateway:
    """Stands in for Supabase Storage; remembers what was stored and removed"""

    def __init__(self):
        self.uploaded = []
        self.removed = []

    def upload(self, owner_id, filename, content, content_type):
        path = f"{owner_id}/{len(self.uploaded)}-{filename}"
        self.uploaded.append((path, content, content_type))
        return {"url": f"https://media.test/{path}", "public_id": path}

    def remove(self, paths):
        self.removed.extend(paths)


class FailingCollection:
    """Every call fails as if the server went away"""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise ConnectionFailure("connection refused")
        return fail


class PartlyBrokenStore:
    """Wraps a database; the named collections fail, the rest work"""

    def __init__(self, db, *broken):
        self._db = db
        self._broken = set(broken)

    def __getattr__(self, name):
        if name in self._broken:
            return FailingCollection()
        return getattr(self._db, name)

    def __getitem__(self, name):
        return getattr(self, name)


def run(coro):
    """Run one store coroutine from a sync test"""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(dates, "today", lambda: TODAY)
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    return TODAY


@pytest.fixture
def pool():
    return MongoPool(client_factory=AsyncMongoMockClient, db_name="love_nest_test", health_check=None)


@pytest.fixture
def db(pool):
    return pool.client[pool.db_name]


@pytest.fixture
def media():
    return FakeMediaGateway()


@pytest.fixture
def client(pool, media):
    """Test client over an in-memory store"""
    app.state.mongo = pool
    app.dependency_overrides[get_media_gateway] = lambda: media
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.mongo = None


def register(client, name, email=None, password="secret123"):
    """Register a user and return bearer headers plus the user id"""
    email = email or f"{name.lower()}@test.com"
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]["id"]


@pytest.fixture
def alice(client):
    return register(client, "Alice")


@pytest.fixture
def bob(client):
    return register(client, "Bob")


@pytest.fixture
def couple(client, alice, bob):
    """Alice created the couple on 2020-12-03, Bob joined"""
    created = client.post("/api/couple/create", json={"startDate": "2020-12-03"}, headers=alice[0])
    assert created.status_code == 200, created.text
    joined = client.post("/api/couple/join", json={"inviteCode": created.json()["couple"]["inviteCode"]}, headers=bob[0])
    assert joined.status_code == 200, joined.text
    return joined.json()["couple"]
