"""Database engine and helpers.

The `Database` object owns the SQLModel/SQLAlchemy engine for the
configured `DATABASE_URL` (a local SQLite file by default). If the
database cannot be reached at startup the object stays in a degraded
state with no engine: the session dependency then yields `None` and
every repository answers with empty results instead of failing.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from . import models  # noqa: F401  registers tables on SQLModel.metadata

logger = logging.getLogger("codefuture.database")


class Database:
    def __init__(self, url: str):
        self.url = url
        self.engine = None

    @property
    def available(self) -> bool:
        return self.engine is not None

    def connect(self) -> bool:
        """Create the engine and bootstrap the schema.

        Returns False (and leaves the store degraded) when the database
        cannot be opened; the process keeps running.
        """
        connect_args = {"check_same_thread": False} if self.url.startswith("sqlite") else {}
        try:
            engine = create_engine(self.url, echo=False, connect_args=connect_args)
            SQLModel.metadata.create_all(engine)
        except SQLAlchemyError as exc:
            logger.warning("database unavailable, running with a no-op store: %s", exc)
            self.engine = None
            return False
        self.engine = engine
        self._ensure_lesson_index_column()
        self._ensure_contact_user_column()
        logger.info("connected to database %s", self.url)
        return True

    def _ensure_lesson_index_column(self):
        """Add `current_lesson_index` to lesson plans created before progress tracking."""
        with self.engine.connect() as conn:
            try:
                conn.exec_driver_sql("ALTER TABLE lesson_plans ADD COLUMN current_lesson_index INTEGER DEFAULT 0")
                conn.commit()
            except SQLAlchemyError:
                # column already exists
                pass

    def _ensure_contact_user_column(self):
        with self.engine.connect() as conn:
            try:
                conn.exec_driver_sql("ALTER TABLE contact_submissions ADD COLUMN user_id INTEGER REFERENCES users(id)")
                conn.commit()
            except SQLAlchemyError:
                pass

    @contextmanager
    def session(self) -> Iterator[Optional[Session]]:
        if self.engine is None:
            yield None
            return
        with Session(self.engine) as session:
            yield session

    def close(self):
        if self.engine is not None:
            self.engine.dispose()


def get_session(request: Request):
    """Yield a database `Session` (or `None` when degraded) for FastAPI dependency injection."""
    with request.app.state.db.session() as session:
        yield session
