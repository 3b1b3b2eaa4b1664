import logging
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from nobodyreads.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the process-wide async engine for ``database_url``."""
    if make_url(database_url).get_backend_name() == "sqlite":
        _ensure_sqlite_directory(database_url)
        return create_async_engine(database_url, echo=echo)

    # Environment-based pool configuration
    if settings.environment == "production":
        return create_async_engine(
            database_url,
            echo=echo,
            pool_size=20,
            max_overflow=50,
            pool_timeout=60,
            pool_recycle=1800,
            pool_pre_ping=True,
        )
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
    )


engine = build_engine(settings.database_url, echo=settings.debug)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


# Columns added to tables after their first release. Older databases get them
# through init_db() when they are missing.
LEGACY_COLUMNS = {
    "site_bundle": {"current_revision_id": "INTEGER"},
}


def _add_missing_columns(sync_conn) -> list[str]:
    inspector = inspect(sync_conn)
    added = []
    for table, columns in LEGACY_COLUMNS.items():
        if not inspector.has_table(table):
            continue
        existing = {column["name"] for column in inspector.get_columns(table)}
        for name, ddl_type in columns.items():
            if name not in existing:
                sync_conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {ddl_type}"))
                added.append(f"{table}.{name}")
    return added


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create missing tables and columns. Safe to run repeatedly."""
    # Models register themselves on Base.metadata when imported
    import nobodyreads.models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        added = await conn.run_sync(_add_missing_columns)
    for column in added:
        logger.info("Added missing column %s", column)
    logger.info("Database ready (%s)", bind.url.render_as_string(hide_password=True))


async def get_db():
    async with AsyncSessionLocal() as db:
        yield db


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency returning the shared session factory."""
    return AsyncSessionLocal
