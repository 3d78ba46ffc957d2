"""Database configuration and session management."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import func, insert, select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from flight_scheduler.config.settings import settings

# Import models so they are attached to Base.metadata before table creation
from flight_scheduler.models import Airport, Base, LessonType
from flight_scheduler.seeds import DEFAULT_AIRPORTS, DEFAULT_LESSON_TYPES

logger = logging.getLogger(__name__)

_SCHEMA_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _normalise_schema_name(raw_schema: str | None) -> str | None:
    """Return a sanitised schema name or None when invalid/empty."""

    if raw_schema is None:
        return None

    schema = raw_schema.strip()
    if not schema:
        return None

    if not _SCHEMA_NAME_PATTERN.fullmatch(schema):
        logger.warning(
            "Ignoring invalid schema name '%s'; falling back to default search_path.",
            raw_schema,
        )
        return None

    return schema


def _quote_identifier(identifier: str) -> str:
    """Return a double-quoted SQL identifier, escaping inner quotes."""

    return identifier.replace('"', '""')


_SCHEMA_NAME = _normalise_schema_name(settings.database.db_schema)

if _SCHEMA_NAME:
    Base.metadata.schema = _SCHEMA_NAME
    for table in Base.metadata.tables.values():
        if table.schema is None:
            table.schema = _SCHEMA_NAME


def _create_engine() -> AsyncEngine:
    """Create an async engine with environment-appropriate pooling."""

    engine_options: dict[str, Any] = {
        "echo": settings.debug,
        "future": True,
        "pool_pre_ping": True,
    }

    if settings.database.serverless or settings.debug:
        engine_options["poolclass"] = NullPool

    return create_async_engine(settings.database.url, **engine_options)


engine: AsyncEngine = _create_engine()

SessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def _ensure_search_path(target: Any) -> None:
    """Set the search_path on the given session/connection when a schema is configured."""

    if not _SCHEMA_NAME:
        return

    quoted_schema = _quote_identifier(_SCHEMA_NAME)
    await target.execute(text(f'SET search_path TO "{quoted_schema}", public'))


async def _seed_lookups(conn: Any) -> None:
    """Insert the default airports and lesson types into empty lookup tables."""

    airport_count = await conn.scalar(select(func.count()).select_from(Airport.__table__))
    if not airport_count:
        await conn.execute(
            insert(Airport.__table__),
            [
                {"code": code, "name": name, "city": city, "state": state}
                for code, name, city, state in DEFAULT_AIRPORTS
            ],
        )
        logger.info("Seeded %d airports.", len(DEFAULT_AIRPORTS))

    lesson_count = await conn.scalar(
        select(func.count()).select_from(LessonType.__table__)
    )
    if not lesson_count:
        await conn.execute(
            insert(LessonType.__table__),
            [
                {"name": name, "description": description, "category": category}
                for name, description, category in DEFAULT_LESSON_TYPES
            ],
        )
        logger.info("Seeded %d lesson types.", len(DEFAULT_LESSON_TYPES))


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Async context manager that yields a configured SQLAlchemy session."""

    async with SessionFactory() as session:
        await _ensure_search_path(session)
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency-compatible generator yielding a configured session."""

    async with session_scope() as session:
        yield session


async def init_models(seed: bool | None = None) -> None:
    """Create database tables if they do not exist and seed lookup data."""

    if seed is None:
        seed = settings.seed_lookups

    async with engine.begin() as conn:
        if _SCHEMA_NAME:
            quoted_schema = _quote_identifier(_SCHEMA_NAME)
            await conn.execute(
                text(f'CREATE SCHEMA IF NOT EXISTS "{quoted_schema}"')
            )
        await _ensure_search_path(conn)
        await conn.run_sync(Base.metadata.create_all)
        if seed:
            await _seed_lookups(conn)

    if _SCHEMA_NAME:
        logger.info("Ensured database tables in schema '%s'.", _SCHEMA_NAME)
    else:
        logger.info("Ensured database tables in default schema.")


async def drop_models() -> None:
    """Drop every table known to the metadata."""

    async with engine.begin() as conn:
        await _ensure_search_path(conn)
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Dispose of the engine and release pooled connections."""

    await engine.dispose()
