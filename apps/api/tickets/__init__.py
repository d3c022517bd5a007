"""Ticket lifecycle, timeline and statistics."""

from .errors import (
    InvalidTicketTransitionError,
    TicketConflictError,
    TicketNotFoundError,
    TicketServiceError,
    TicketStorageError,
    TicketValidationError,
)
from .models import (
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
from .service import TicketService
from .state import TicketStateMachine

__all__ = [
    "FieldUpdate",
    "InvalidTicketTransitionError",
    "Pipeline",
    "Ticket",
    "TicketConflictError",
    "TicketDetail",
    "TicketDraft",
    "TicketField",
    "TicketFilter",
    "TicketNotFoundError",
    "TicketPriority",
    "TicketService",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStats",
    "TicketStatus",
    "TicketStorageError",
    "TicketValidationError",
    "TimelineEntry",
]
