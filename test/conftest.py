"""
Pytest configuration and fixtures for nobodyreads tests.

Every test that touches storage gets its own SQLite file under tmp_path,
created through init_db() like a fresh install.
"""

import os
import sys
import tempfile
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

# Settings are read at import time; keep the process-wide engine away from ./data
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.gettempdir()}/nobodyreads-test-{os.getpid()}.db")
os.environ.setdefault("EDITOR_TOKEN", "")

from nobodyreads.constants import PageKind  # noqa: E402
from nobodyreads.database import get_db, get_session_factory, init_db  # noqa: E402
from nobodyreads.schemas.page import Page  # noqa: E402


def make_page(page_id: str, **overrides) -> Page:
    """Build a published post with sensible defaults."""
    data = {
        "id": page_id,
        "slug": page_id,
        "title": page_id.replace("-", " ").title(),
        "content": f"Body of {page_id}.",
        "excerpt": f"Excerpt of {page_id}.",
        "tags": [],
        "date": "2024-01-01",
        "published": True,
        "kind": PageKind.POST,
    }
    data.update(overrides)
    return Page(**data)


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory: async_sessionmaker):
    """Application wired to the per-test database."""
    from main import create_app

    app = create_app(use_lifespan=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def editor_token(monkeypatch) -> str:
    from nobodyreads.config import settings

    monkeypatch.setattr(settings, "editor_token", "s3cret")
    return "s3cret"
