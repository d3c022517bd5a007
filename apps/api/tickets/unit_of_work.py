"""Transactional boundary shared by the ticket store and the timeline ledger."""

from __future__ import annotations

import logging
from types import TracebackType

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import TicketConflictError, TicketStorageError
from .repository import TicketRepository, TimelineRepository

logger = logging.getLogger(__name__)


class TicketUnitOfWork:
    """Open one session, expose both repositories on it and commit or roll back as a whole.

    Leaving the ``async with`` block normally commits. Any exception rolls the
    transaction back; SQLAlchemy errors are re-raised as ``TicketStorageError``
    (``TicketConflictError`` for constraint violations) with the original
    error chained.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self.tickets: TicketRepository
        self.timeline: TimelineRepository

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work is not active")
        return self._session

    async def __aenter__(self) -> "TicketUnitOfWork":
        self._session = self._session_factory()
        self.tickets = TicketRepository(self._session)
        self.timeline = TimelineRepository(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self.session
        try:
            if exc is None:
                try:
                    await session.commit()
                except SQLAlchemyError as commit_exc:
                    await session.rollback()
                    raise _storage_error(commit_exc) from commit_exc
                return

            await session.rollback()
            if isinstance(exc, SQLAlchemyError):
                raise _storage_error(exc) from exc
        finally:
            await session.close()
            self._session = None


def _storage_error(exc: SQLAlchemyError) -> TicketStorageError:
    if isinstance(exc, IntegrityError):
        return TicketConflictError(f"Constraint violation: {exc.orig}")
    logger.error("Ticket store failure: %s", exc)
    return TicketStorageError("Ticket store failure")
