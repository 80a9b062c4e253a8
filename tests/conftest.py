"""Pytest configuration and fixtures."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SEEDING_STRATEGY"] = "weighted"

import pytest
from httpx import ASGITransport, AsyncClient

from tourney.models.base import reset_db
from tourney.services.bracket_types import Participant
from web.api.main import app


def make_teams(n, weights=None):
    """Participants with ids 1..n; weights default to the id (team 1 strongest)."""
    if weights is None:
        weights = list(range(1, n + 1))
    return [
        Participant(id=i + 1, name=f"Team {i + 1}", players=(f"P{i + 1}a", f"P{i + 1}b"), weight=w)
        for i, w in enumerate(weights)
    ]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db():
    """Fresh schema per test (ASGI lifespan doesn't run with httpx)."""
    await reset_db()


@pytest.fixture
async def client(db):
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def create_team(client):
    async def _create(name, weight=None, players=None):
        body = {"name": name, "players": players or [f"{name} A", f"{name} B"]}
        if weight is not None:
            body["weight"] = weight
        r = await client.post("/api/teams", json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _create


@pytest.fixture
def create_tournament(client):
    async def _create(name="Spring Open", seeding=None, teams=()):
        body = {"name": name, "month": "March", "year": "2026"}
        if seeding:
            body["seeding"] = seeding
        r = await client.post("/api/tournaments", json=body)
        assert r.status_code == 201, r.text
        tid = r.json()["id"]
        for team in teams:
            r = await client.post(f"/api/tournaments/{tid}/teams", json={"team_id": team["id"]})
            assert r.status_code == 200, r.text
        return tid

    return _create
