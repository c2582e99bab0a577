"""Control-plane database session factory.

The tier registry and the migration repository run outside the request
scope (background migrations, the retention sweeper), so they receive a
sessionmaker and open short transactions of their own rather than a
request-bound session.
"""

from __future__ import annotations

import threading

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_control_engine
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings

_probe = DefaultConnectionProbe()

_control_engine: AsyncEngine | None = None
_control_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_control_engine() -> AsyncEngine:
    """Get the control-plane engine (singleton).

    Uses double-check locking for thread-safe initialization and creates
    the sessionmaker alongside the engine.
    """
    global _control_engine, _control_sessionmaker
    if _control_engine is None:
        with _engine_lock:
            if _control_engine is None:
                settings = get_database_settings()
                _control_engine = create_control_engine(settings)
                _control_sessionmaker = async_sessionmaker(
                    _control_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _probe.engine_created(target=settings.connection_string)
    return _control_engine


def get_control_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the control-plane sessionmaker, creating the engine if needed."""
    get_control_engine()
    assert _control_sessionmaker is not None
    return _control_sessionmaker


async def close_database_connections() -> None:
    """Dispose the control-plane engine.

    Should be called on application shutdown. Resets the sessionmaker to
    allow reinitialization.
    """
    global _control_engine, _control_sessionmaker

    if _control_engine is not None:
        await _control_engine.dispose()
        _probe.engine_disposed(target=get_database_settings().connection_string)
        _control_engine = None
        _control_sessionmaker = None
