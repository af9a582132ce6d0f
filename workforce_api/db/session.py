from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Union
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session

from .config import get_settings


_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None

_TENANT_INFO_KEY = "tenant_id"
_SET_TENANT_SQL = text("SELECT set_config('app.tenant_id', :tenant_id, false);")


def _ensure_engine_initialized() -> None:
    """Lazily create the AsyncEngine and session maker on first use."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_async_engine(
            settings.async_database_url,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,
            pool_size=settings.POOL_SIZE,
            max_overflow=settings.MAX_OVERFLOW,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory (used outside request scope, e.g. WebSockets and seeding)."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession suitable for FastAPI dependency injection."""
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
async def set_current_tenant(session: AsyncSession, tenant_id: Union[str, UUID]) -> None:
    """
    Set the current business for the DB session using the `app.tenant_id` setting.

    Row-Level Security policies compare every tenant-scoped row against
    current_setting('app.tenant_id', true).
    """
    session.info[_TENANT_INFO_KEY] = str(tenant_id)
    await session.execute(_SET_TENANT_SQL, {"tenant_id": str(tenant_id)})


@event.listens_for(Session, "after_begin")
def _reapply_tenant_on_begin(session: Session, transaction, connection) -> None:
    # A commit hands the connection back to the pool; the next transaction may
    # run on a different one, so the business scope is set again on every begin.
    tenant_id = session.info.get(_TENANT_INFO_KEY)
    if tenant_id:
        connection.execute(_SET_TENANT_SQL, {"tenant_id": tenant_id})


# PUBLIC_INTERFACE
@asynccontextmanager
async def tenant_context(
    session: AsyncSession, tenant_id: Union[str, UUID]
) -> AsyncGenerator[AsyncSession, None]:
    """
    Set the business context on the session for the duration of the block.

    Usage:
        async with tenant_context(session, business_id):
            ...  # every query is filtered by RLS
    """
    await set_current_tenant(session, tenant_id)
    try:
        yield session
    finally:
        # An empty setting matches no rows, so a leaked connection sees nothing.
        session.info.pop(_TENANT_INFO_KEY, None)
        await session.execute(text("SELECT set_config('app.tenant_id', '', false);"))
