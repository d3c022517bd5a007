from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Sequence, TypeVar

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import TicketConflictError, TicketNotFoundError, TicketValidationError
from .identifiers import TicketIdAllocator
from .models import (
    ENUM_FIELDS,
    REQUIRED_FIELDS,
    FieldUpdate,
    Pipeline,
    Ticket,
    TicketDetail,
    TicketDraft,
    TicketField,
    TicketFilter,
    TicketPriority,
    TicketStats,
    TicketStatus,
    TimelineEntry,
)
from .state import TicketStateMachine
from .stats import TicketStatsAggregator
from .unit_of_work import TicketUnitOfWork

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CREATED_ACTION = "Ticket created"

MISSING: Any = object()

_EnumT = TypeVar("_EnumT", bound=Enum)


class TicketService:
    """High level orchestration for ticket lifecycle operations.

    Every mutation runs under a single write lock and inside one unit of work,
    so the ticket change and its timeline entry are committed or rolled back
    together, and id allocation cannot race with another insert from this
    process.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        state_machine: TicketStateMachine | None = None,
        allocator: TicketIdAllocator | None = None,
        id_retries: int = 3,
        unit_of_work_factory: Callable[[], TicketUnitOfWork] | None = None,
    ) -> None:
        if id_retries < 1:
            raise ValueError("id_retries must be at least 1")
        self._session_factory = session_factory
        self._state_machine = state_machine or TicketStateMachine()
        self._allocator = allocator or TicketIdAllocator()
        self._id_retries = id_retries
        self._unit_of_work = unit_of_work_factory or (lambda: TicketUnitOfWork(session_factory))
        self._stats = TicketStatsAggregator(session_factory)
        self._write_lock = asyncio.Lock()

    async def list_tickets(self, ticket_filter: TicketFilter | None = None) -> list[Ticket]:
        async with self._unit_of_work() as uow:
            return await uow.tickets.list_tickets(ticket_filter)

    async def get_ticket(self, ticket_id: str) -> TicketDetail:
        async with self._unit_of_work() as uow:
            ticket = await uow.tickets.get(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            timeline = await uow.timeline.list_for(ticket_id)
        return TicketDetail(ticket=ticket, timeline=timeline)

    async def get_timeline(self, ticket_id: str) -> Sequence[TimelineEntry]:
        async with self._unit_of_work() as uow:
            return await uow.timeline.list_for(ticket_id)

    async def get_stats(self) -> TicketStats:
        return await self._stats.compute()

    async def create_ticket(self, draft: TicketDraft, *, actor: str) -> Ticket:
        _require_actor(actor)
        missing = [
            name
            for name in ("title", "description", "pipeline", "priority")
            if not _has_text(getattr(draft, name))
        ]
        if missing:
            raise TicketValidationError(f"Missing required fields: {', '.join(missing)}")

        pipeline = _parse_enum(Pipeline, draft.pipeline, TicketField.PIPELINE)
        priority = _parse_enum(TicketPriority, draft.priority, TicketField.PRIORITY)

        with tracer.start_as_current_span("tickets.create"):
            attempt = 0
            while True:
                attempt += 1
                try:
                    async with self._write_lock:
                        async with self._unit_of_work() as uow:
                            ticket_id = await self._allocator.next_id(uow.session)
                            now = _utcnow()
                            ticket = await uow.tickets.create(
                                Ticket(
                                    id=ticket_id,
                                    title=str(draft.title),
                                    description=str(draft.description),
                                    customer=draft.customer,
                                    pipeline=pipeline,
                                    status=self._state_machine.initial_state(),
                                    priority=priority,
                                    assigned_to=draft.assigned_to,
                                    created_at=now,
                                    updated_at=now,
                                )
                            )
                            await uow.timeline.append(ticket.id, CREATED_ACTION, actor, now)
                except TicketConflictError:
                    if attempt >= self._id_retries:
                        logger.error("Giving up on ticket id allocation after %d attempts", attempt)
                        raise
                    logger.warning("Ticket id collision on attempt %d, allocating again", attempt)
                    continue

                logger.info("Created ticket %s in %s pipeline", ticket.id, ticket.pipeline.value)
                return ticket

    async def update_ticket(
        self,
        ticket_id: str,
        *,
        field: str | None,
        value: Any = MISSING,
        old_value: Any = None,
        actor: str,
    ) -> Ticket:
        _require_actor(actor)
        update = build_field_update(field, value, old_value)

        with tracer.start_as_current_span("tickets.update"):
            async with self._write_lock:
                async with self._unit_of_work() as uow:
                    if update.field is TicketField.STATUS:
                        current = await uow.tickets.get(ticket_id)
                        if current is None:
                            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
                        self._state_machine.assert_transition(current.status, TicketStatus(update.value))

                    now = _utcnow()
                    ticket = await uow.tickets.update_field(ticket_id, update, now)
                    if ticket is None:
                        raise TicketNotFoundError(f"Ticket {ticket_id} not found")
                    await uow.timeline.append(ticket_id, update.describe(), actor, ticket.updated_at)

        logger.info("Updated %s on ticket %s", update.field.value, ticket_id)
        return ticket

    async def delete_ticket(self, ticket_id: str) -> None:
        with tracer.start_as_current_span("tickets.delete"):
            async with self._write_lock:
                async with self._unit_of_work() as uow:
                    removed = await uow.timeline.delete_for(ticket_id)
                    deleted = await uow.tickets.delete(ticket_id)
                    if not deleted:
                        raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        logger.info("Deleted ticket %s with %d timeline entries", ticket_id, removed)

    async def add_timeline_entry(
        self,
        ticket_id: str,
        *,
        action: str | None,
        actor: str,
        user: str | None = None,
    ) -> TimelineEntry:
        if not _has_text(action):
            raise TicketValidationError("Missing action")
        author = user or actor
        _require_actor(author)

        with tracer.start_as_current_span("tickets.timeline.append"):
            async with self._write_lock:
                async with self._unit_of_work() as uow:
                    if await uow.tickets.get(ticket_id) is None:
                        raise TicketNotFoundError(f"Ticket {ticket_id} not found")
                    entry = await uow.timeline.append(ticket_id, str(action), author, _utcnow())

        logger.info("Added timeline entry %d to ticket %s", entry.id, ticket_id)
        return entry


def build_field_update(field: str | None, value: Any = MISSING, old_value: Any = None) -> FieldUpdate:
    """Validate a raw ``field``/``value`` pair and turn it into a ``FieldUpdate``."""

    if not field or value is MISSING:
        raise TicketValidationError("Missing field or value")

    try:
        ticket_field = TicketField(field)
    except ValueError as exc:
        raise TicketValidationError("Invalid field") from exc

    text = None if value is None else str(value)
    if ticket_field in REQUIRED_FIELDS and not _has_text(text):
        raise TicketValidationError(f"{ticket_field.label} cannot be empty")

    enum_type = ENUM_FIELDS.get(ticket_field)
    if enum_type is not None:
        text = _parse_enum(enum_type, text, ticket_field).value

    # Falsy old values get the "updated to" wording.
    previous = str(old_value) if old_value else None
    return FieldUpdate(field=ticket_field, value=text, old_value=previous)


def _parse_enum(enum_type: type[_EnumT], value: str | None, ticket_field: TicketField) -> _EnumT:
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise TicketValidationError(
            f"Invalid {ticket_field.value} {value!r}; expected one of: {allowed}"
        ) from exc


def _require_actor(actor: str | None) -> None:
    if not _has_text(actor):
        raise TicketValidationError("Missing actor")


def _has_text(value: Any) -> bool:
    return value is not None and bool(str(value).strip())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
