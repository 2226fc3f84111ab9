# backend/venuebook/database.py
import logging
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from .core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: Optional[str] = None, **kwargs: Any) -> Engine:
    """
    Create an engine for the given URL.

    SQLite is used for local runs and tests and cannot take the pool
    settings used for PostgreSQL.
    """
    url = database_url or settings.database_url
    if url.lower().startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        sqlite_engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=kwargs.pop("pool_size", 10),  # Number of persistent connections
        max_overflow=kwargs.pop("max_overflow", 10),  # Maximum overflow connections
        pool_timeout=30,  # Timeout for getting connection
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Test connections before using
        **kwargs,
    )


engine: Engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Register models on Base.metadata
    from . import models  # noqa: F401

    target = bind or engine
    try:
        Base.metadata.create_all(bind=target)
    except SQLAlchemyError as exc:
        logger.error(f"Failed to create tables: {exc}")
        raise
    logger.info("Database tables ensured")
