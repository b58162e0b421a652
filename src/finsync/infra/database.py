"""Engine construction, schema creation and the transactional session factory."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig
from .repositories.base import SessionFactory

logger = logging.getLogger("finsync.infra.database")


def create_db_engine(config: BaseConfig) -> Engine:
    """Build the engine for ``config.DATABASE_URL``.

    SQLite connections get ``config.SQLITE_PRAGMAS`` applied as they open.
    """
    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if engine.dialect.name == "sqlite":
        pragmas = dict(config.SQLITE_PRAGMAS)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            try:
                for name, value in pragmas.items():
                    cursor.execute(f"PRAGMA {name}={value}")
            finally:
                cursor.close()

    return engine


def init_database(engine: Engine) -> None:
    """Create any missing FinSync tables."""
    from .. import models  # noqa: F401  registers every table on the metadata

    SQLModel.metadata.create_all(engine)
    logger.debug(f"Schema ready with {len(SQLModel.metadata.tables)} tables")


def create_session_factory(engine: Engine) -> SessionFactory:
    """Return a factory of ``with``-able sessions, one transaction each.

    The session commits when the block exits normally and rolls back when it
    raises. Objects stay usable after commit so services can hand them to
    event subscribers.
    """

    @contextmanager
    def session_scope() -> Iterator[Session]:
        with Session(engine, expire_on_commit=False) as session:
            try:
                yield session
            except Exception:
                session.rollback()
                raise
            session.commit()

    return session_scope
