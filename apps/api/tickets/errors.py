from __future__ import annotations


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """Raised when caller input is malformed or incomplete."""


class InvalidTicketTransitionError(TicketValidationError):
    """Raised when attempting to transition to an invalid state."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class TicketStorageError(TicketServiceError):
    """Raised when the underlying store fails."""


class TicketConflictError(TicketStorageError):
    """Raised when a write violates a uniqueness constraint."""
