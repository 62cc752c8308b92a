"""
Local durable store: SQLAlchemy engine and session handle.

The handle is created explicitly and injected into the storage layer;
there is no module-level engine. Tables are created on open.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import settings
from app.domain.exceptions import StorageFailureError

logger = logging.getLogger(__name__)

Base = declarative_base()


class OfflineStore:
    """
    Handle on the local durable database with an explicit open/close lifecycle.

    Usable as a context manager::

        with OfflineStore("sqlite:///field.db") as store:
            storage = OfflineStorage(store)
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database_url
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def open(self) -> "OfflineStore":
        """Connect to the database and create missing tables."""
        if self.is_open:
            return self

        # Register table classes on Base.metadata
        from app.infrastructure.storage import tables  # noqa: F401

        connect_args = {}
        if self.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        try:
            engine = create_engine(self.database_url, connect_args=connect_args)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise StorageFailureError(f"Could not open offline store: {e}") from e

        self.engine = engine
        self._session_factory = sessionmaker(autoflush=False, bind=engine)
        logger.info(f"Opened offline store at {self.database_url}")
        return self

    def close(self) -> None:
        """Release all pooled connections. Safe to call when already closed."""
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info(f"Closed offline store at {self.database_url}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide a database session and close it after use."""
        if self._session_factory is None:
            raise StorageFailureError("Offline store is not open")
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def __enter__(self) -> "OfflineStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
