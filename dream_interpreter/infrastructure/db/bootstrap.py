# dream_interpreter/infrastructure/db/bootstrap.py
"""Async engine and session lifecycle.

``init_engine`` is called once at application start-up; everything else goes
through ``session_scope``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dream_interpreter.config import Settings

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


async def init_engine(cfg: Settings) -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = create_async_engine(cfg.db_url, echo=cfg.db_echo, pool_pre_ping=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
    logger.info("Database engine initialised")


async def dispose_engine() -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Short-lived session; rolls back on error, always closes."""
    if SessionLocal is None:
        raise RuntimeError("init_engine() has not been called")
    session = SessionLocal()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()

