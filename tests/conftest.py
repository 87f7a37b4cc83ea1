"""Test fixtures — a fresh, seeded SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Environment variables are set BEFORE sportshub is imported, so the
   module-level settings/engine point at a throwaway SQLite file and
   Redis is disabled (rate limiting is skipped).
2. Every test starts from drop_all/create_all + the bootstrap seed.
   Services commit for real, WebSocket handlers open their own
   sessions and concurrent joins use separate sessions, so a
   rollback-only savepoint fixture would not see or isolate their work.
3. The app's process-scoped state (realtime registry, roster locks) is
   replaced per test as well.

HTTP tests drive the app through httpx's ASGITransport. WebSocket tests
use Starlette's TestClient (see test_realtime.py).
"""

import asyncio
import concurrent.futures
import os
import tempfile
import uuid

_TMP_DIR = tempfile.mkdtemp(prefix="sportshub-tests-")
os.environ["SPORTSHUB_DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'sportshub.db')}"
)
os.environ["SPORTSHUB_REDIS_URL"] = ""
os.environ["SPORTSHUB_SEED_ON_STARTUP"] = "false"
os.environ["SPORTSHUB_ENVIRONMENT"] = "development"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from sportshub.config import settings  # noqa: E402
from sportshub.db.engine import async_session_factory, engine  # noqa: E402
from sportshub.db.models import Base  # noqa: E402
from sportshub.db.seed import seed_database  # noqa: E402
from sportshub.main import app  # noqa: E402
from sportshub.realtime.registry import RealtimeRegistry  # noqa: E402
from sportshub.services.locks import KeyedLock  # noqa: E402

DEFAULT_PASSWORD = "secret-pass-1"


def _run(coro):
    """Run a coroutine to completion on a private loop (in a thread)."""
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


async def _reset_database() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as db:
        await seed_database(db)
    await engine.dispose()


@pytest.fixture(autouse=True)
def fresh_database():
    """Seeded schema + clean app state for every test."""
    _run(_reset_database())
    app.state.realtime = RealtimeRegistry()
    app.state.roster_locks = KeyedLock()
    yield


@pytest_asyncio.fixture()
async def db_session():
    """A plain session on the test database (commits are real)."""
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client():
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ─── Helpers ─────────────────────────────────────────────


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register_and_login(
    client: AsyncClient,
    full_name: str = "Test Student",
    email: str = None,
    student_id: str = None,
    password: str = DEFAULT_PASSWORD,
) -> dict:
    """Register a student and log in. Returns the login response body."""
    suffix = uuid.uuid4().hex[:8]
    email = email or f"student-{suffix}@college.edu"
    r = await client.post(
        "/api/register",
        json={
            "fullName": full_name,
            "studentID": student_id or f"S{suffix}",
            "email": email,
            "password": password,
        },
    )
    assert r.status_code == 201, r.text
    r = await client.post("/api/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


async def admin_login(client: AsyncClient) -> dict:
    r = await client.post(
        "/api/admin/login",
        json={
            "email": settings.default_admin_email,
            "password": settings.default_admin_password,
        },
    )
    assert r.status_code == 200, r.text
    return r.json()


@pytest_asyncio.fixture()
async def student(client):
    """A registered, logged-in student: login body (user + tokens)."""
    return await register_and_login(client)


@pytest_asyncio.fixture()
async def admin_headers(client):
    body = await admin_login(client)
    return bearer(body["accessToken"])
