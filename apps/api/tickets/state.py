from __future__ import annotations

from typing import Mapping, Sequence

from .errors import InvalidTicketTransitionError
from .models import TicketStatus

# Any status may be written from any other status.
OPEN_TRANSITIONS: Mapping[TicketStatus, Sequence[TicketStatus]] = {
    status: tuple(TicketStatus) for status in TicketStatus
}

STRICT_TRANSITIONS: Mapping[TicketStatus, Sequence[TicketStatus]] = {
    TicketStatus.NEW: (TicketStatus.IN_PROGRESS,),
    TicketStatus.IN_PROGRESS: (TicketStatus.PENDING,),
    TicketStatus.PENDING: (TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED),
    TicketStatus.COMPLETED: (),
}

WORKFLOWS: Mapping[str, Mapping[TicketStatus, Sequence[TicketStatus]]] = {
    "open": OPEN_TRANSITIONS,
    "strict": STRICT_TRANSITIONS,
}


class TicketStateMachine:
    """Validate ticket status transitions against a transition table."""

    def __init__(self, transitions: Mapping[TicketStatus, Sequence[TicketStatus]] | None = None) -> None:
        self._transitions = transitions or OPEN_TRANSITIONS

    @classmethod
    def for_workflow(cls, name: str) -> "TicketStateMachine":
        try:
            return cls(WORKFLOWS[name])
        except KeyError as exc:
            raise ValueError(f"Unknown status workflow: {name}") from exc

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.NEW

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        if current == target:
            return True
        return target in self._transitions.get(current, ())

    def assert_transition(self, current: TicketStatus, target: TicketStatus) -> None:
        if not self.can_transition(current, target):
            raise InvalidTicketTransitionError(
                f"Invalid status transition: {current.value} -> {target.value}"
            )
