from __future__ import annotations
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from challengr.db import Base, get_session
from challengr.errors import MediaUploadFailed
from challengr.main import app
from challengr.models import admin_config, audit, challenge, ledger, notification, post, profile, report, submission  # noqa: F401 - register for create_all
from challengr.models.challenge import Challenge
from challengr.models.profile import Profile
from challengr.security import make_access_token
from challengr.services.notifications import get_notification_emitter
from challengr.services.storage import get_media_store

TEST_DB_URL = "sqlite+aiosqlite://"


class FakeMediaStore:
    def __init__(self):
        self.uploads: list[tuple[int, str]] = []
        self.fail = False

    def upload(self, data: bytes, content_type: str) -> str:
        if self.fail:
            raise MediaUploadFailed()
        self.uploads.append((len(data), content_type))
        return f"http://media.test/proofs/{uuid.uuid4().hex}"


class RecordingEmitter:
    def __init__(self):
        self.sent: list[tuple[uuid.UUID, str, dict]] = []
        self.fail = False

    def notify(self, user_id, kind, payload):
        if self.fail:
            raise ConnectionError("redis down")
        self.sent.append((user_id, kind, payload))

    def kinds_for(self, user_id) -> list[str]:
        return [k for (uid, k, _) in self.sent if uid == user_id]


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as s:
        yield s


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest_asyncio.fixture
async def client(engine, media_store, emitter):
    maker = async_sessionmaker(engine, expire_on_commit=False)

    async def _session():
        async with maker() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_media_store] = lambda: media_store
    app.dependency_overrides[get_notification_emitter] = lambda: emitter
    try:
        async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


def auth_headers(user_id: uuid.UUID, *, role: str = "user", username: str | None = None) -> dict[str, str]:
    token = make_access_token(str(user_id), role=role, username=username or f"user_{user_id.hex[:8]}")
    return {"Authorization": f"Bearer {token}"}


async def make_profile(session, *, role: str = "user", username: str | None = None, points: int = 0) -> uuid.UUID:
    uid = uuid.uuid4()
    session.add(Profile(user_id=uid, username=username or f"user_{uid.hex[:8]}", role=role, total_points=points))
    await session.commit()
    return uid


async def make_challenge(session, creator_id: uuid.UUID, *, points: int | None = 10, title: str = "Cold shower") -> uuid.UUID:
    ch = Challenge(created_by=creator_id, title=title, points_reward=points)
    session.add(ch)
    await session.commit()
    return ch.id
