"""
Pytest fixtures for ValidToT tests.

Store-backed tests run against a throwaway SQLite file through aiosqlite,
so the unique constraint on votes is real and concurrent inserts collide
the same way they do in production.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "false")

from jose import jwt  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # noqa: E402

from validtot import models  # noqa: E402,F401
from validtot.core.config import settings  # noqa: E402
from validtot.db.base import Base  # noqa: E402
from validtot.db.session import create_session_factory, get_session_factory  # noqa: E402
from validtot.models.post import Post  # noqa: E402
from validtot.repositories.base import SessionFactory  # noqa: E402
from validtot.repositories.post_repository import PostRepository  # noqa: E402
from validtot.repositories.profile_repository import ProfileRepository  # noqa: E402
from validtot.repositories.vote_repository import VoteRepository  # noqa: E402
from validtot.schemas.identity import VoterIdentity  # noqa: E402
from validtot.services.access_gate import AccessGate  # noqa: E402
from validtot.services.identity import MemoryStorage  # noqa: E402
from validtot.services.session import VoterSession  # noqa: E402
from validtot.services.vote_ledger import VoteLedger  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for window tests."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


# =============================================================================
# Store
# =============================================================================


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file per test."""
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'validtot.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def sessions(engine: AsyncEngine) -> SessionFactory:
    return create_session_factory(engine)


@pytest.fixture
def post_repo(sessions: SessionFactory) -> PostRepository:
    return PostRepository(sessions)


@pytest.fixture
def vote_repo(sessions: SessionFactory) -> VoteRepository:
    return VoteRepository(sessions)


@pytest.fixture
def profile_repo(sessions: SessionFactory) -> ProfileRepository:
    return ProfileRepository(sessions)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate(post_repo: PostRepository, vote_repo: VoteRepository) -> AccessGate:
    return AccessGate(post_repo, vote_repo)


@pytest.fixture
def ledger(
    post_repo: PostRepository,
    vote_repo: VoteRepository,
    profile_repo: ProfileRepository,
    gate: AccessGate,
    clock: FakeClock,
) -> VoteLedger:
    return VoteLedger(post_repo, vote_repo, profile_repo, gate, clock=clock)


@pytest.fixture
def make_post(post_repo: PostRepository) -> Callable[..., Awaitable[Post]]:
    """Create a post straight through the repository."""

    async def _make_post(
        labels: tuple[str, ...] = ("Cat", "Dog"),
        title: Optional[str] = None,
        owner_id: str = "owner-1",
        is_private: bool = False,
        access_code: Optional[str] = None,
        voting_starts_at: Optional[datetime] = None,
        voting_ends_at: Optional[datetime] = None,
    ) -> Post:
        return await post_repo.create(
            owner_id=owner_id,
            title=title or " or ".join(labels),
            options=[(label, f"https://img.example.com/{label.lower()}.png") for label in labels],
            is_private=is_private,
            access_code=access_code,
            voting_starts_at=voting_starts_at,
            voting_ends_at=voting_ends_at,
        )

    return _make_post


@pytest.fixture
def voter() -> Callable[..., VoterSession]:
    """Build a voter session on its own device."""

    def _voter(account_id: Optional[str] = "user-1", token: Optional[str] = None) -> VoterSession:
        identity = VoterIdentity(
            anonymous_token=token or f"anon_{account_id or 'guest'}",
            account_id=account_id,
        )
        return VoterSession(identity, MemoryStorage())

    return _voter


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
async def app(sessions: SessionFactory) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the test database."""
    from validtot.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_session_factory] = lambda: sessions
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(account_id: str, **claims: Any) -> str:
    """Session token as the identity provider would issue it."""
    payload = {
        "sub": account_id,
        "aud": settings.JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Headers for a signed-in account on its own device."""

    def _headers(account_id: str = "user-1", device: Optional[str] = None) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {make_token(account_id)}",
            "X-Anonymous-Token": device or f"anon_{account_id}",
        }

    return _headers
