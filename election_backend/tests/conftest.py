"""
Shared fixtures: a temp-file SQLite database per test, fake blob store and
notifier, a mocked upstream for manifesto relays, and an API client with
all external dependencies overridden.
"""
import os
import tempfile

# Must be set before election_backend is imported
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("INSTITUTION_EMAIL_DOMAIN", "iitk.ac.in")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="election-uploads-"))
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(), "unused.db"))

import itertools
from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.core.http_client import MAX_REDIRECTS, get_http_client
from election_backend.database import build_engine, build_sessionmaker, get_db
from election_backend.main import app
from election_backend.orm.base import Base
from election_backend.orm.otp import OTPPurpose
from election_backend.orm.user import User, UserRole
from election_backend.rbac import create_access_token, hash_password
from election_backend.services.blob_store import BlobStore, StoredBlob, get_blob_store
from election_backend.services.config_store import ConfigStore
from election_backend.services.deadline_gate import WINDOW_BOUNDS, Window
from election_backend.services.notification_service import Notifier, get_notifier

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)
BLOB_BASE_URL = "https://blobs.test"

_sequence = itertools.count(1)


class FakeBlobStore(BlobStore):
    """In-memory blob store that records every put and delete."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    def put(self, data: bytes, name: str, folder: str) -> StoredBlob:
        storage_id = f"{folder}/{next(_sequence)}_{name}"
        self.blobs[storage_id] = data
        return StoredBlob(url=f"{BLOB_BASE_URL}/{storage_id}", storage_id=storage_id)

    def delete(self, storage_id: str) -> None:
        self.deleted.append(storage_id)
        self.blobs.pop(storage_id, None)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent: List[Tuple[str, str, OTPPurpose]] = []

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        self.sent.append((email, code, purpose))

    def last_code(self, email: str) -> Optional[str]:
        for sent_email, code, _ in reversed(self.sent):
            if sent_email == email:
                return code
        return None


class Upstream:
    """
    Serves blob URLs to the relay client. By default it returns whatever the
    fake blob store holds; tests replace `handler` to simulate failures.
    """

    def __init__(self, store: FakeBlobStore):
        self.store = store
        self.handler = self.serve_blob

    def serve_blob(self, request: httpx.Request) -> httpx.Response:
        storage_id = request.url.path.lstrip("/")
        data = self.store.blobs.get(storage_id)
        if data is None:
            return httpx.Response(404)
        return httpx.Response(200, content=data, headers={"content-type": "application/pdf"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        return self.handler(request)


# ================= DATABASE =================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed database so concurrent sessions see each other's commits."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'election_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ================= FAKES =================

@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def upstream(blob_store) -> Upstream:
    return Upstream(blob_store)


@pytest_asyncio.fixture
async def relay_client(upstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(upstream),
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
    ) as client:
        yield client


@pytest_asyncio.fixture
async def client(session_factory, blob_store, notifier, relay_client) -> AsyncGenerator[httpx.AsyncClient, None]:
    """API client with database, blob store, notifier and upstream overridden."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_http_client] = lambda: relay_client

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as api:
        yield api

    app.dependency_overrides.clear()


# ================= USERS =================

@pytest.fixture
def make_user(session_factory):
    async def factory(role: UserRole = UserRole.student, name: Optional[str] = None) -> User:
        n = next(_sequence)
        user = User(
            email=f"user{n}@iitk.ac.in",
            password_hash=PASSWORD_HASH,
            role=role,
            is_verified=True,
            name=name or f"User {n}",
            roll_no=f"2{n:07d}",
            department="Computer Science",
            phone="9876543210",
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user
    return factory


@pytest.fixture
def auth_headers():
    def headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return headers


# ================= WINDOWS =================

def open_bounds(window: Window) -> Dict[str, datetime]:
    now = datetime.utcnow()
    start_field, end_field = WINDOW_BOUNDS[window]
    return {start_field: now - timedelta(hours=1), end_field: now + timedelta(hours=1)}


def closed_bounds(window: Window) -> Dict[str, datetime]:
    now = datetime.utcnow()
    start_field, end_field = WINDOW_BOUNDS[window]
    return {start_field: now - timedelta(days=2), end_field: now - timedelta(days=1)}


@pytest.fixture
def set_windows(session_factory):
    """set_windows(open=[...], closed=[...]) writes bounds through ConfigStore."""
    async def apply(open: Tuple[Window, ...] = (), closed: Tuple[Window, ...] = ()):
        windows = {}
        for window in open:
            windows.update(open_bounds(window))
        for window in closed:
            windows.update(closed_bounds(window))
        async with session_factory() as session:
            await ConfigStore(session).update_windows(windows)
    return apply
