"""Database models and utilities."""

from .models import TicketTable, TimelineTable

__all__ = [
    "TicketTable",
    "TimelineTable",
]
