"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options per dialect: pooled Postgres in deployment, SQLite locally."""
    if db_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {
            "future": True,
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        if ":memory:" in db_url or db_url.rstrip("/").endswith("sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return kwargs

    return {
        "future": True,
        "poolclass": QueuePool,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": 5,
        "pool_recycle": 300,
        "pool_pre_ping": True,
        "echo": settings.database_echo,
    }


def _use_immediate_transactions(built: Engine) -> None:
    """
    Make every SQLite transaction take the write lock at BEGIN.

    pysqlite defers BEGIN until the first write, so a read-check-insert
    sequence could interleave with another writer. BEGIN IMMEDIATE serialises
    writers the way the instructor row lock does on PostgreSQL.
    """

    @event.listens_for(built, "connect")
    def disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(built, "begin")
    def begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with pool logging attached."""
    built = create_engine(db_url, **_build_engine_kwargs(db_url))

    @event.listens_for(built, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    @event.listens_for(built, "checkout")
    def receive_checkout(
        dbapi_connection: Any, connection_record: Any, connection_proxy: Any
    ) -> None:
        logger.debug("Connection checked out from pool")

    if built.dialect.name == "sqlite":
        _use_immediate_transactions(built)

    return built


db_url = settings.get_database_url()
engine: Engine = build_engine(db_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


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


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Provide transactional scope for workers and scripts."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_db",
    "get_db_session",
]
