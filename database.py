"""
Persistence setup for DoseRhythm
Engine, session factory and declarative base shared by every service
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings


logger = logging.getLogger(__name__)


def _sqlite_engine(url: str):
    options = {"connect_args": {"check_same_thread": False}, "echo": settings.DATABASE_ECHO}
    # An in-memory database only lives as long as its single connection
    if ":memory:" in url:
        options["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, **options)

    # Dose, pattern and adjustment rows cascade with their medication
    @event.listens_for(sqlite_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


if settings.DATABASE_URL.startswith("sqlite"):
    engine = _sqlite_engine(settings.DATABASE_URL)
else:
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for work outside a request, such as the periodic pattern pass

    Commits on success and rolls back if the block raises.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables"""
    import models  # noqa: F401  registers the tables on Base

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready at {settings.DATABASE_URL}")


__all__ = ["engine", "SessionLocal", "Base", "get_db_context", "init_db"]
