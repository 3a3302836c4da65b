"""Pooled access to the message store."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from .config import Settings

logger = logging.getLogger(__name__)


class StoreUnreachable(Exception):
    """Raised when no usable connection can be obtained from the pool."""


class QueryFailure(Exception):
    """Raised when the store rejects a query."""


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class MessageStore:
    """Owns the connection pool used for every read against the messages table."""

    def __init__(self, database_url: str, *, pool_size: int = 10, pool_timeout: float = 30.0) -> None:
        self.database_url = database_url
        self.engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MessageStore":
        return cls(settings.database_url, pool_size=settings.pool_size, pool_timeout=settings.pool_timeout)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide a read-only session holding one pooled connection.

        The connection goes back to the pool when the block exits, whether it
        finished, raised or was abandoned.
        """
        session = self._session_factory()
        try:
            session.connection()
        except SQLAlchemyError as exc:
            session.close()
            raise StoreUnreachable(_describe(exc)) from exc

        try:
            yield session
        except SQLAlchemyError as exc:
            raise QueryFailure(_describe(exc)) from exc
        finally:
            session.close()

    def ping(self) -> None:
        with self.session() as session:
            session.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Message store connection pool disposed")
