"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- bcrypt runs at its minimum cost so signups and logins stay fast.
- The Google OAuth client and the SMTP mailer are replaced with in-memory
  fakes through ``app.dependency_overrides``.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.mail import get_mailer
from app.main import app
from app.middleware import install_query_counter
from app.oauth import OAuthError, get_google_oauth
from app.schemas import FederatedIdentity

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Fakes for external collaborators
# ---------------------------------------------------------------------------

class FakeGoogleOAuth:
    """Maps authorization codes to identities; unknown codes fail."""

    def __init__(self) -> None:
        self.identities: dict[str, FederatedIdentity] = {}

    def get_authorize_url(self, state: str | None = None) -> str:
        return "https://accounts.example.com/authorize?client_id=test"

    async def authenticate(self, code: str) -> FederatedIdentity:
        try:
            return self.identities[code]
        except KeyError:
            raise OAuthError(f"unknown code {code!r}")


class FakeMailer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.error: Exception | None = None

    async def send(self, to: str, subject: str, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((to, subject, text))


fake_oauth = FakeGoogleOAuth()
fake_mailer = FakeMailer()


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_google_oauth] = lambda: fake_oauth
app.dependency_overrides[get_mailer] = lambda: fake_mailer


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def reset_fakes():
    fake_oauth.identities.clear()
    fake_mailer.sent.clear()
    fake_mailer.error = None
    yield


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def statements():
    """Record every SQL statement the test engine executes."""
    captured: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement)

    event.listen(engine_test.sync_engine, "before_cursor_execute", _record)
    yield captured
    event.remove(engine_test.sync_engine, "before_cursor_execute", _record)


# ---------------------------------------------------------------------------
# Helpers shared by the endpoint tests
# ---------------------------------------------------------------------------

async def signup_and_login(client: AsyncClient, name: str, password: str = "secret-pass") -> int:
    """
    Register ``name`` and log in as them, leaving their token in the
    client's cookie jar.  Returns the new user's id.
    """
    resp = await client.post("/auth/signup", json={
        "username": name,
        "email": f"{name}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["_id"]

    resp = await client.post("/auth/login", json={
        "email": f"{name}@example.com",
        "password": password,
    })
    assert resp.status_code == 200, resp.text
    return user_id


async def login_as(client: AsyncClient, name: str, password: str = "secret-pass") -> None:
    resp = await client.post("/auth/login", json={
        "email": f"{name}@example.com",
        "password": password,
    })
    assert resp.status_code == 200, resp.text


async def create_post(client: AsyncClient, title: str = "A post", content: str = "Some content") -> dict:
    resp = await client.post("/posts", json={"title": title, "content": content})
    assert resp.status_code == 201, resp.text
    return resp.json()
