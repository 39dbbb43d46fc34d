"""Database connection manager via SQLAlchemy."""
import logging
import os
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine and session factory for one database URL.

    The app creates one instance and drives its lifecycle from the lifespan
    hook; tests inject their own (usually in-memory SQLite).
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialised")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _engine_kwargs(self) -> dict:
        url = make_url(self.url)
        if url.get_backend_name() != "sqlite":
            return {"pool_pre_ping": True, "pool_size": 10}
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
        else:
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)
        return kwargs

    def init(self) -> None:
        """Create the engine and all tables. Safe to call twice."""
        if self._engine is not None:
            return
        # models must be registered on Base before create_all
        from letterlab import models_db  # noqa: F401

        self._engine = create_engine(self.url, **self._engine_kwargs())
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        Base.metadata.create_all(bind=self._engine)
        logger.info("Database ready (%s)", make_url(self.url).get_backend_name())

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database closed")

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database not initialised")
        return self._session_factory()

    def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency for DB session."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
