"""
Database engine and session factory.

The module-level engine serves the running app; build_engine() and
build_session_factory() let tests and scripts create isolated databases
(e.g. in-memory SQLite) with identical settings.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from autotrader.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; SQLite connections may be shared across tasks."""
    return create_async_engine(
        database_url,
        echo=False,
        connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind, class_=AsyncSession, expire_on_commit=False, autoflush=False  # Disable autoflush to avoid greenlet issues
    )


engine = build_engine(settings.database_url)
async_session_maker = build_session_factory(engine)


async def init_db(bind: AsyncEngine = None):
    """Create all tables (bot_state, trades, analysis_logs) if missing."""
    import autotrader.models  # noqa: F401  registers the tables on Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
