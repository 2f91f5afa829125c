"""Database engine and session factory."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from picallback.config import Settings, get_settings
from picallback.core.logging import get_logger
from picallback.models.base import Base

logger = get_logger(__name__)

engine: Engine | None = None
SessionLocal: sessionmaker[Session] | None = None


def _engine_kwargs(database_url: str) -> dict[str, object]:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def init_engine(settings: Settings | None = None) -> Engine | None:
    """Create the process-wide engine once.

    Returns ``None`` when no ``DATABASE_URL`` is configured; the notification
    store then reports itself as unavailable instead of failing requests.
    """

    global engine, SessionLocal
    if engine is not None:
        return engine

    settings = settings or get_settings()
    if not settings.database_url:
        logger.warning("DATABASE_URL not set; notification store not initialised")
        return None

    engine = create_engine(
        settings.database_url, future=True, echo=False, **_engine_kwargs(settings.database_url)
    )
    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    logger.info("Database engine initialised", extra={"dialect": engine.dialect.name})
    return engine


def get_sessionmaker() -> sessionmaker[Session] | None:
    return SessionLocal


def create_all() -> None:
    """Create all tables from the shared declarative metadata (dev/test only)."""

    if engine is None:
        return
    Base.metadata.create_all(bind=engine)


def close_engine() -> None:
    """Dispose of the engine and reset the session factory."""

    global engine, SessionLocal
    if engine is not None:
        engine.dispose()
        engine = None
        SessionLocal = None


__all__ = [
    "SessionLocal",
    "engine",
    "close_engine",
    "create_all",
    "get_sessionmaker",
    "init_engine",
]
