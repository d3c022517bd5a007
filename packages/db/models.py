"""SQLModel table definitions for the ticket data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class TicketTable(SQLModel, table=True):
    """Ticket rows, one per unit of work in a pipeline."""

    __tablename__ = "tickets"

    id: str = Field(sa_column=Column(String(32), primary_key=True))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    customer: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    pipeline: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(50), nullable=False))
    assigned_to: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TimelineTable(SQLModel, table=True):
    """Append-only activity entries belonging to a ticket."""

    __tablename__ = "timeline"
    __table_args__ = {"sqlite_autoincrement": True}

    id: int | None = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    ticket_id: str = Field(
        sa_column=Column(
            String(32),
            ForeignKey("tickets.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    action: str = Field(sa_column=Column(Text, nullable=False))
    user: str = Field(sa_column=Column(String(255), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
