"""Database utilities."""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .models import Base


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


_engine = build_engine(settings.database_url)
SessionFactory = build_session_factory(_engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency helper."""

    async with SessionFactory() as session:
        yield session


__all__ = [
    "_engine",
    "SessionFactory",
    "build_engine",
    "build_session_factory",
    "init_models",
    "get_session",
]
