from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import structlog

from resume_vault.core.config import get_settings
from resume_vault.models.base import Base

logger = structlog.get_logger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the metadata store.

    PostgreSQL gets a connection pool (5 ready, 10 overflow under load);
    SQLite is allowed for development and tests.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True, echo=echo)


@lru_cache()
def get_engine() -> Engine:
    settings = get_settings()
    return build_engine(settings.sqlalchemy_url, echo=settings.db_echo)


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured engine."""
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


@contextmanager
def get_db_session(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """
    Context manager for one metadata-store transaction.
    Usage:
        with get_db_session() as db:
            db.add(resume)
    Commits when the block exits cleanly, rolls back on any exception.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_models(engine: Optional[Engine] = None) -> None:
    """Create tables that do not exist yet."""
    Base.metadata.create_all(bind=engine or get_engine())


def test_postgres_connection(factory: Optional[sessionmaker] = None) -> bool:
    """
    Test if the metadata store is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session(factory) as db:
            return db.execute(text("SELECT 1")).scalar() == 1
    except Exception as e:
        logger.warning("metadata_store_unreachable", error=str(e))
        return False
