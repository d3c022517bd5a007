from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from packages.db.models import TicketTable, TimelineTable

from .models import (
    FieldUpdate,
    Pipeline,
    Ticket,
    TicketFilter,
    TicketPriority,
    TicketStatus,
    TimelineEntry,
)


class TicketRepository:
    """Data access for ticket rows within a single session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, ticket: Ticket) -> Ticket:
        row = TicketTable(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            customer=ticket.customer,
            pipeline=ticket.pipeline.value,
            status=ticket.status.value,
            priority=ticket.priority.value,
            assigned_to=ticket.assigned_to,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return self._row_to_ticket(row)

    async def get(self, ticket_id: str) -> Ticket | None:
        row = await self._session.get(TicketTable, ticket_id)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def list_tickets(self, ticket_filter: TicketFilter | None = None) -> list[Ticket]:
        ticket_filter = ticket_filter or TicketFilter()
        statement = select(TicketTable)

        pipeline = ticket_filter.pipeline_value
        if pipeline is not None:
            statement = statement.where(TicketTable.pipeline == pipeline)

        status = ticket_filter.status_value
        if status is not None:
            statement = statement.where(TicketTable.status == status)

        search = ticket_filter.search_value
        if search is not None:
            statement = statement.where(
                or_(
                    TicketTable.title.icontains(search, autoescape=True),
                    TicketTable.description.icontains(search, autoescape=True),
                    TicketTable.customer.icontains(search, autoescape=True),
                    TicketTable.id.icontains(search, autoescape=True),
                )
            )

        statement = statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
        result = await self._session.execute(statement)
        return [self._row_to_ticket(row) for row in result.scalars().all()]

    async def update_field(self, ticket_id: str, update: FieldUpdate, updated_at: datetime) -> Ticket | None:
        row = await self._session.get(TicketTable, ticket_id)
        if row is None:
            return None

        previous = _ensure_datetime(row.updated_at)
        if updated_at <= previous:
            updated_at = previous + timedelta(microseconds=1)

        setattr(row, update.field.value, update.value)
        row.updated_at = updated_at
        await self._session.flush()
        return self._row_to_ticket(row)

    async def delete(self, ticket_id: str) -> bool:
        row = await self._session.get(TicketTable, ticket_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True

    async def count_by_pipeline_and_status(self) -> list[tuple[str, str, int]]:
        result = await self._session.execute(
            select(TicketTable.pipeline, TicketTable.status, func.count())
            .group_by(TicketTable.pipeline, TicketTable.status)
        )
        return [(str(pipeline), str(status), int(count)) for pipeline, status, count in result.all()]

    @staticmethod
    def _row_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            title=row.title,
            description=row.description,
            customer=row.customer,
            pipeline=Pipeline(row.pipeline),
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            assigned_to=row.assigned_to,
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
        )


class TimelineRepository:
    """Append-only access to the per-ticket activity timeline."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, ticket_id: str, action: str, user: str, created_at: datetime) -> TimelineEntry:
        latest = await self._latest_timestamp(ticket_id)
        if latest is not None and created_at < latest:
            created_at = latest

        row = TimelineTable(ticket_id=ticket_id, action=action, user=user, created_at=created_at)
        self._session.add(row)
        await self._session.flush()
        return self._row_to_entry(row)

    async def list_for(self, ticket_id: str) -> list[TimelineEntry]:
        result = await self._session.execute(
            select(TimelineTable)
            .where(TimelineTable.ticket_id == ticket_id)
            .order_by(TimelineTable.created_at.asc(), TimelineTable.id.asc())
        )
        return [self._row_to_entry(row) for row in result.scalars().all()]

    async def delete_for(self, ticket_id: str) -> int:
        result = await self._session.execute(
            delete(TimelineTable).where(TimelineTable.ticket_id == ticket_id)
        )
        return int(result.rowcount or 0)

    async def _latest_timestamp(self, ticket_id: str) -> datetime | None:
        result = await self._session.execute(
            select(func.max(TimelineTable.created_at)).where(TimelineTable.ticket_id == ticket_id)
        )
        latest = result.scalar_one_or_none()
        if latest is None:
            return None
        return _ensure_datetime(latest)

    @staticmethod
    def _row_to_entry(row: TimelineTable) -> TimelineEntry:
        return TimelineEntry(
            id=int(row.id),
            ticket_id=row.ticket_id,
            action=row.action,
            user=row.user,
            created_at=_ensure_datetime(row.created_at),
        )


def _ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return _ensure_datetime(datetime.fromisoformat(str(value)))
