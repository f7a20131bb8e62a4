"""SQLAlchemy engine/session owner.

Usage
-----
from spendwise.db import Database

db = Database("sqlite:///spendwise.db")
db.create_all()
with db.session_scope() as s:
    s.execute(...)

A ``Database`` is built once by the application's composition point (the
CLI) and handed to the stores; nothing in the package keeps a module-level
engine.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


class Database:
    """Own one engine and its session factory."""

    def __init__(self, database_url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            engine = create_engine(_database_url(database_url), pool_pre_ping=True)
        self.engine = engine
        self._session_maker = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)

    def create_all(self) -> None:
        """Create any missing tables."""

        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = ["Database"]
