import pytest

from apps.api.tickets.errors import InvalidTicketTransitionError
from apps.api.tickets.models import TicketStatus
from apps.api.tickets.state import STRICT_TRANSITIONS, TicketStateMachine


def test_open_workflow_allows_every_transition():
    machine = TicketStateMachine()
    for current in TicketStatus:
        for target in TicketStatus:
            assert machine.can_transition(current, target)


def test_strict_workflow_allows_expected_transitions():
    machine = TicketStateMachine.for_workflow("strict")
    assert machine.can_transition(TicketStatus.NEW, TicketStatus.IN_PROGRESS)
    assert machine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.PENDING)
    assert machine.can_transition(TicketStatus.PENDING, TicketStatus.COMPLETED)
    assert machine.can_transition(TicketStatus.PENDING, TicketStatus.IN_PROGRESS)
    assert machine.can_transition(TicketStatus.COMPLETED, TicketStatus.COMPLETED)


def test_strict_workflow_blocks_invalid_transitions():
    machine = TicketStateMachine(STRICT_TRANSITIONS)
    assert not machine.can_transition(TicketStatus.COMPLETED, TicketStatus.NEW)
    assert not machine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED)
    assert not machine.can_transition(TicketStatus.NEW, TicketStatus.PENDING)
    with pytest.raises(InvalidTicketTransitionError):
        machine.assert_transition(TicketStatus.NEW, TicketStatus.COMPLETED)


def test_unknown_workflow_is_rejected():
    with pytest.raises(ValueError):
        TicketStateMachine.for_workflow("chaotic")


def test_initial_state_is_new():
    assert TicketStateMachine.initial_state() is TicketStatus.NEW
