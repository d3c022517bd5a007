from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Pipeline, TicketStats, TicketStatus
from .repository import TicketRepository


class TicketStatsAggregator:
    """Compute live pipeline statistics from the ticket table.

    A pipeline's count covers its tickets whose status is not ``completed``;
    ``total`` counts every ticket regardless of status or pipeline. Rows come
    from one grouped query so all numbers describe the same snapshot.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def compute(self) -> TicketStats:
        async with self._session_factory() as session:
            rows = await TicketRepository(session).count_by_pipeline_and_status()
        return summarize(rows)


def summarize(rows: list[tuple[str, str, int]]) -> TicketStats:
    known = {pipeline.value: pipeline for pipeline in Pipeline}
    active: dict[Pipeline, int] = {pipeline: 0 for pipeline in Pipeline}
    total = 0
    for pipeline_value, status_value, count in rows:
        total += count
        pipeline = known.get(pipeline_value)
        if pipeline is None or status_value == TicketStatus.COMPLETED.value:
            continue
        active[pipeline] += count
    return TicketStats(active=active, total=total)
