"""SQLAlchemy base configuration, engine and session handling.

This module provides:
- Base: SQLAlchemy declarative base for all models
- create_store_engine: Engine for a database URL, with SQLite pragmas
- init_database: Schema creation
- session_scope: Transactional session context
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from reportflow.core.config import get_settings
from reportflow.core.logging import get_logger

logger = get_logger(__name__)

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata_obj = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = metadata_obj


def create_store_engine(url: str | None = None, echo: bool = False) -> Engine:
    """Create an engine for the report store.

    Args:
        url: Database URL. Defaults to ``Settings.database_url``
        echo: Log SQL statements

    Returns:
        SQLAlchemy engine
    """
    url = url or get_settings().database_url

    kwargs: dict[str, Any] = {"echo": echo}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def configure_sqlite(dbapi_conn: Any, connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.debug("store_engine_created", dialect=engine.dialect.name)
    return engine


def init_database(engine: Engine) -> None:
    """
    Initialize database schema.

    Creates all tables defined in SQLAlchemy models.
    Safe to call multiple times - only creates missing tables.

    Args:
        engine: SQLAlchemy engine
    """
    # Import model modules to register them with Base metadata
    from reportflow.storage import db_models as _report_models  # noqa: F401

    with engine.begin() as conn:
        Base.metadata.create_all(conn)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Session that commits on success and rolls back on error.

    Example:
        with session_scope(engine) as session:
            ReportRepository(session).put(definition)
    """
    factory = sessionmaker(engine, expire_on_commit=False)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
