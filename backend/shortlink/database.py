import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def _set_sqlite_pragma(dbapi_conn, connection_record):
    # Enable WAL mode and foreign keys for SQLite
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class Database:
    """
    Store client with an explicit lifecycle.

    Constructed with a URL, opened once at application startup (engine,
    session factory, tables) and disposed at shutdown.
    """

    def __init__(self, url: str, timeout: int = 30):
        self.url = url
        self.timeout = timeout
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def open(self) -> "Database":
        if self.engine is not None:
            return self

        if self.is_sqlite:
            connect_args = {"check_same_thread": False, "timeout": self.timeout}
        else:
            connect_args = {"connect_timeout": self.timeout}

        self.engine = create_engine(self.url, connect_args=connect_args, pool_pre_ping=True)
        if self.is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragma)

        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

        # Register models on Base before creating tables
        from . import models  # noqa: F401
        try:
            Base.metadata.create_all(bind=self.engine)
        except OperationalError as exc:
            raise StoreUnavailable("Database is unavailable", detail=str(exc.orig)) from exc

        logger.info("Database opened: %s", self.engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database closed")
        self.engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise StoreUnavailable("Database is not open")
        return self._session_factory()

    def ping(self) -> bool:
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except (OperationalError, StoreUnavailable):
            return False


# Dependency to get database session
def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
