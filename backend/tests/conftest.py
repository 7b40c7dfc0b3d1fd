"""
Associates Backend — Test Configuration (conftest.py)
======================================================

What:  Shared fixtures: mock DB sessions, test settings, an app wired to a
       fake media host, and an HTTP client that runs the real lifespan.
How:   No real PostgreSQL or Cloudinary. The engine points at in-memory
       SQLite (only /health touches it), get_db_session is overridden with a
       mock session, and the media client talks to httpx.MockTransport.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock standing in for AsyncSession
    ├── test_settings:    Settings with a known signing secret
    ├── media_host:       FakeMediaHost recording requests, scripted responses
    ├── db_session_opens: list of sessions handed out by get_db_session
    ├── app:              create_app(test_settings) with the DB override
    ├── test_client:      httpx.AsyncClient over ASGITransport, lifespan entered
    └── auth_headers:     Cookie header carrying a valid admin session
"""

import os

# Must be set before associates_api.config builds its singleton
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET"] = "test-session-secret-0123456789"
os.environ["COOKIE_SECURE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone  # noqa: E402
from typing import Callable, List  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from associates_api.config import Settings  # noqa: E402
from associates_api.database import get_db_session  # noqa: E402
from associates_api.main import create_app  # noqa: E402
from associates_api.models.credential import Credential  # noqa: E402
from associates_api.services.media_service import MediaHostClient  # noqa: E402
from associates_api.services.passwords import hash_secret  # noqa: E402

TEST_SECRET = "test-session-secret-0123456789"
COOKIE_NAME = "access_token"


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def make_credential(identifier: str = "admin", secret: str = "correct-pw", role: str = "admin") -> Credential:
    """A detached Credential row; rounds=4 keeps bcrypt fast in tests."""
    now = datetime.now(timezone.utc)
    return Credential(
        identifier=identifier,
        secret_hash=hash_secret(secret, rounds=4),
        role=role,
        created_at=now,
        updated_at=now,
    )


def scalar_result(value) -> MagicMock:
    """Mimic the Result returned by session.execute() for a single-row query."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def cookie_header(value: str) -> dict:
    return {"Cookie": f"{COOKIE_NAME}={value}"}


class FakeMediaHost:
    """
    Scripted stand-in for the Cloudinary REST API.

    Tests set `handler` to decide the response; every request is recorded.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = self._default

    @staticmethod
    def _default(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/destroy"):
            return httpx.Response(200, json={"result": "ok"})
        return httpx.Response(
            200,
            json={
                "public_id": "abc123",
                "secure_url": "https://res.cloudinary.com/demo/image/upload/abc123.png",
                "url": "http://res.cloudinary.com/demo/image/upload/abc123.png",
                "resource_type": "image",
                "format": "png",
                "bytes": 68,
                "width": 1,
            },
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self, **overrides) -> MediaHostClient:
        kwargs = dict(
            cloud_name="demo",
            api_key="key-123",
            api_secret="host-secret",
            retry_attempts=3,
            retry_min_wait=0,
            retry_max_wait=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
            clock=lambda: 1_700_000_000,
        )
        kwargs.update(overrides)
        return MediaHostClient(**kwargs)


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value = scalar_result(document)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        session_secret=TEST_SECRET,
        cookie_secure=False,
        admin_initial_password="",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key-123",
        cloudinary_api_secret="host-secret",
        max_upload_size=1_048_576,
        retry_min_wait=0,
        retry_max_wait=0,
        log_level="WARNING",
    )


@pytest.fixture
def media_host() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture
def db_session_opens() -> list:
    return []


@pytest.fixture
def app(test_settings, mock_db_session, db_session_opens):
    application = create_app(test_settings)

    async def override_get_db_session():
        db_session_opens.append(mock_db_session)
        yield mock_db_session

    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app, media_host):
    """
    HTTP client against the app with its lifespan running.

    The media client built by the lifespan is swapped for one backed by the
    fake media host.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    async with app.router.lifespan_context(app):
        await app.state.media_client.aclose()
        app.state.media_client = media_host.client()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def auth_headers(app) -> Callable[..., dict]:
    """
    Build a Cookie header with a freshly minted session.

    Needs the lifespan running (request test_client first).
    """

    def build(subject: str = "admin", role: str = "admin") -> dict:
        token = app.state.auth_gate.codec.mint(subject=subject, role=role)
        return cookie_header(token.value)

    return build
