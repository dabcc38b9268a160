"""Database engine, sessions and schema migrations."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from alembic.command import upgrade
from alembic.config import Config
from travel_api.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()

ROOT_DIR = Path(__file__).resolve().parents[1]


def _upgrade_to_head(db_url: str) -> None:
    config = Config(str(ROOT_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", db_url)
    upgrade(config, "head")


async def init_db(db_url: str | None = None) -> None:
    """Bring the schema up to the latest migration without blocking the loop."""
    await asyncio.to_thread(_upgrade_to_head, db_url or settings.database_url)


async def ping_db(db_engine: AsyncEngine | None = None) -> None:
    """Run ``SELECT 1``; raises if the database is unreachable."""
    async with (db_engine or engine).connect() as conn:
        await conn.execute(text("SELECT 1"))


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
