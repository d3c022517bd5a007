"""Sample tickets inserted into an empty store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from packages.db.models import TicketTable

from .identifiers import format_ticket_id
from .models import Pipeline, Ticket, TicketPriority, TicketStatus
from .service import CREATED_ACTION
from .unit_of_work import TicketUnitOfWork

logger = logging.getLogger(__name__)

SEED_ACTOR = "System"

SAMPLE_TICKETS: tuple[dict[str, str], ...] = (
    {
        "title": "New Product Launch Campaign",
        "description": "Plan and execute marketing campaign for new CNC machine line",
        "customer": "Internal Marketing",
        "pipeline": "marketing",
        "status": "in-progress",
        "priority": "high",
        "assigned_to": "Sarah Johnson",
    },
    {
        "title": "Quote Request - Custom Tooling",
        "description": "Customer needs quote for custom tooling for automotive parts manufacturing",
        "customer": "Acme Manufacturing Co.",
        "pipeline": "sales",
        "status": "pending",
        "priority": "high",
        "assigned_to": "Mike Chen",
    },
    {
        "title": "Process Order #5542",
        "description": "Rush order for 500 precision components",
        "customer": "TechParts Inc.",
        "pipeline": "orders",
        "status": "in-progress",
        "priority": "high",
        "assigned_to": "Production Team",
    },
    {
        "title": "Equipment Malfunction Report",
        "description": "Customer reporting issues with recently delivered milling machine",
        "customer": "Precision Metals Ltd.",
        "pipeline": "support",
        "status": "new",
        "priority": "high",
        "assigned_to": "Support Team",
    },
)


async def seed_sample_tickets(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Insert the sample tickets when the store is empty; return how many were added."""

    async with TicketUnitOfWork(session_factory) as uow:
        result = await uow.session.execute(select(func.count()).select_from(TicketTable))
        if result.scalar_one() > 0:
            return 0

        now = datetime.now(timezone.utc)
        for number, sample in enumerate(SAMPLE_TICKETS, start=1):
            ticket = Ticket(
                id=format_ticket_id(number),
                title=sample["title"],
                description=sample["description"],
                customer=sample["customer"],
                pipeline=Pipeline(sample["pipeline"]),
                status=TicketStatus(sample["status"]),
                priority=TicketPriority(sample["priority"]),
                assigned_to=sample["assigned_to"],
                created_at=now,
                updated_at=now,
            )
            await uow.tickets.create(ticket)
            await uow.timeline.append(ticket.id, CREATED_ACTION, SEED_ACTOR, now)

    logger.info("Inserted %d sample tickets", len(SAMPLE_TICKETS))
    return len(SAMPLE_TICKETS)
