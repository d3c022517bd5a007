"""Sequential ``TKT-<n>`` identifier allocation."""

from __future__ import annotations

import re
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from packages.db.models import TicketTable

TICKET_ID_PREFIX = "TKT-"
TICKET_ID_MIN_WIDTH = 3

_TICKET_ID_RE = re.compile(r"^TKT-(\d+)$")


def format_ticket_id(number: int) -> str:
    """Return ``TKT-<number>`` padded to at least three digits."""

    return f"{TICKET_ID_PREFIX}{number:0{TICKET_ID_MIN_WIDTH}d}"


def parse_ticket_number(ticket_id: str) -> int | None:
    """Extract the numeric suffix of a ticket id, or ``None`` if it does not match."""

    match = _TICKET_ID_RE.match(ticket_id or "")
    if match is None:
        return None
    return int(match.group(1))


def next_ticket_id(existing_ids: Iterable[str]) -> str:
    """Return the id following the highest numbered id in ``existing_ids``."""

    highest = 0
    for ticket_id in existing_ids:
        number = parse_ticket_number(ticket_id)
        if number is not None and number > highest:
            highest = number
    return format_ticket_id(highest + 1)


class TicketIdAllocator:
    """Derive the next ticket id from the ids currently stored.

    There is no persisted counter: every call reads the current ids inside the
    caller's session, so the caller must hold the write lock and insert the new
    row in the same transaction.
    """

    async def next_id(self, session: AsyncSession) -> str:
        result = await session.execute(
            select(TicketTable.id).where(TicketTable.id.like(f"{TICKET_ID_PREFIX}%"))
        )
        return next_ticket_id(result.scalars().all())
