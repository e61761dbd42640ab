"""
Shared pytest fixtures

Every test gets a fresh in-memory SQLite database. Service-level tests use
the `db` session directly; HTTP tests drive the FastAPI app through
httpx.AsyncClient with the same database installed on app.state.
"""
import os

# Must be set before skillswap.config is imported
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient

from skillswap.database import Database
from skillswap.models import Skill, SwapRequest, SwapSession, User
from skillswap.models.swap_request import SwapRequestStatus
from skillswap.models.swap_session import SwapSessionStatus


@pytest.fixture(scope="function")
async def database():
    """Fresh in-memory database with the full schema"""
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture(scope="function")
async def db(database):
    """Open AsyncSession for service-level tests"""
    async with database.session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(database, tmp_path, monkeypatch):
    """HTTP client bound to the app, using the test database and a temp upload dir"""
    from main import app
    from skillswap.services import file_storage

    monkeypatch.setattr(file_storage, "_file_storage_instance", file_storage.FileStorage(root_dir=str(tmp_path)))

    app.state.db = database
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.state.db = None


@pytest.fixture
def make_user(db):
    """Factory inserting a user directly (skips password hashing)"""
    counter = {"n": 0}

    async def _make_user(username=None, is_admin=False, rating=0.0, **kwargs):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash="not-a-real-hash",
            full_name=kwargs.pop("full_name", username.title()),
            is_admin=is_admin,
            rating=rating,
            **kwargs,
        )
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def make_skill(db):
    async def _make_skill(user, name, skill_type="OFFER", proficiency_level="Beginner"):
        skill = Skill(
            user_id=user.id,
            skill_name=name,
            skill_type=skill_type,
            proficiency_level=proficiency_level,
        )
        db.add(skill)
        await db.flush()
        return skill

    return _make_skill


@pytest.fixture
def make_swap(db, make_skill):
    """Factory for an accepted request plus its swap session between two users"""

    async def _make_swap(user1, user2, status=SwapSessionStatus.ACTIVE.value, started_at=None, completed_at=None):
        skill1 = await make_skill(user1, f"Skill of {user1.username}")
        skill2 = await make_skill(user2, f"Skill of {user2.username}")
        request = SwapRequest(
            requester_id=user1.id,
            receiver_id=user2.id,
            requester_skill_id=skill1.id,
            receiver_skill_id=skill2.id,
            status=SwapRequestStatus.ACCEPTED.value,
        )
        db.add(request)
        await db.flush()

        values = {}
        if started_at is not None:
            values["started_at"] = started_at
        swap_session = SwapSession(
            swap_request_id=request.id,
            user1_id=user1.id,
            user2_id=user2.id,
            user1_skill_id=skill1.id,
            user2_skill_id=skill2.id,
            status=status,
            completed_at=completed_at,
            **values,
        )
        db.add(swap_session)
        await db.flush()
        return swap_session

    return _make_swap
